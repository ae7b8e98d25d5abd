"""
ams2xacml exceptions.

Fatal errors (template, configuration) abort the run at startup.
Per-object errors (unknown node, output directory) are logged by the
converter and the batch continues.
"""


class Ams2XacmlError(Exception):
    """Base exception for ams2xacml errors."""
    pass


class TemplateError(Ams2XacmlError):
    """Raised when the bundled policy template cannot be loaded."""
    pass


class TemplateStructureError(TemplateError):
    """Raised when an expected rule node is missing from the template."""
    pass


class ConfigurationError(Ams2XacmlError):
    """Raised for invalid run configuration."""
    pass


class InvalidNodeIdError(ConfigurationError):
    """Raised when a start node ID does not look like 'MPI12345#'."""
    pass


class UnknownNodeError(Ams2XacmlError):
    """Raised by a metadata store when a node ID is not known."""

    def __init__(self, node_id: str):
        super().__init__(f"Unknown node {node_id}")
        self.node_id = node_id


class OutputDirectoryError(Ams2XacmlError):
    """Raised when the policy output directory cannot be created."""
    pass


class EmptyAccessListError(Ams2XacmlError):
    """Raised when an empty access list reaches the expander."""
    pass
