"""
ams2xacml Policy Module

Policy generation from corpus structure access rights.

Key components:
- PolicyTemplate: Bundled XACML template, loaded once and copied per object
- locate: Find the subject prototype and the rule branch to drop
- normalize_acl / AccessListResolver: Raw store rights to AccessList
- expand_access_list: Clone subject nodes per access list entry
- write_policy: Pretty-printed XML output named after the object handle
- PolicyGenerator: Per-object glue of the above
"""

from ams2xacml.policy.acl import (
    AccessList,
    AccessListResolver,
    AccessMode,
    EntryKind,
    SubjectEntry,
    normalize_acl,
)
from ams2xacml.policy.locator import RuleTarget, locate
from ams2xacml.policy.template import PolicyTemplate, load_template, parse_template
from ams2xacml.policy.expander import (
    ANONYMOUS_SUBJECT,
    AUTHENTICATED_SUBJECT,
    UsernameFormat,
    expand_access_list,
    format_username,
)
from ams2xacml.policy.serializer import (
    derive_policy_filename,
    policy_to_string,
    write_policy,
)
from ams2xacml.policy.generator import GeneratedPolicy, PolicyGenerator, access_mode_for

__all__ = [
    # ACL
    "AccessList",
    "AccessListResolver",
    "AccessMode",
    "EntryKind",
    "SubjectEntry",
    "normalize_acl",
    # Template
    "PolicyTemplate",
    "load_template",
    "parse_template",
    "RuleTarget",
    "locate",
    # Expansion
    "ANONYMOUS_SUBJECT",
    "AUTHENTICATED_SUBJECT",
    "UsernameFormat",
    "expand_access_list",
    "format_username",
    # Output
    "derive_policy_filename",
    "policy_to_string",
    "write_policy",
    # Generation
    "GeneratedPolicy",
    "PolicyGenerator",
    "access_mode_for",
]
