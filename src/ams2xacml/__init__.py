"""
ams2xacml - Corpus structure access rights to XACML policies

Generates one XACML policy file per archived object from the read and
write rights recorded in the corpus structure database.

Modules:
- policy: Template, rule locator, ACL normalization, expansion and output
- storage: Corpus structure metadata store
- conversion: Batch conversion of corpus subtrees
"""

__version__ = "0.1.0"

from ams2xacml.config import ConversionConfig
from ams2xacml.exceptions import (
    Ams2XacmlError,
    ConfigurationError,
    EmptyAccessListError,
    InvalidNodeIdError,
    OutputDirectoryError,
    TemplateError,
    TemplateStructureError,
    UnknownNodeError,
)
from ams2xacml.policy import (
    AccessList,
    AccessListResolver,
    AccessMode,
    PolicyGenerator,
    PolicyTemplate,
    UsernameFormat,
    derive_policy_filename,
    expand_access_list,
    load_template,
    locate,
    normalize_acl,
    write_policy,
)
from ams2xacml.storage import (
    CorpusNode,
    InMemoryCorpusStore,
    MetadataStore,
    NodeType,
    SQLiteCorpusStore,
)
from ams2xacml.conversion import (
    ConversionReport,
    ConversionResult,
    ConversionStatus,
    PolicyConverter,
)

__all__ = [
    # Version
    "__version__",
    # Config
    "ConversionConfig",
    # Errors
    "Ams2XacmlError",
    "ConfigurationError",
    "EmptyAccessListError",
    "InvalidNodeIdError",
    "OutputDirectoryError",
    "TemplateError",
    "TemplateStructureError",
    "UnknownNodeError",
    # Policy
    "AccessList",
    "AccessListResolver",
    "AccessMode",
    "PolicyGenerator",
    "PolicyTemplate",
    "UsernameFormat",
    "derive_policy_filename",
    "expand_access_list",
    "load_template",
    "locate",
    "normalize_acl",
    "write_policy",
    # Storage
    "CorpusNode",
    "InMemoryCorpusStore",
    "MetadataStore",
    "NodeType",
    "SQLiteCorpusStore",
    # Conversion
    "ConversionReport",
    "ConversionResult",
    "ConversionStatus",
    "PolicyConverter",
]
