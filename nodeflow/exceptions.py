"""Base exceptions for NodeFlow."""


class NodeFlowException(Exception):
    """Base exception for all NodeFlow errors."""
    pass


class ConfigurationError(NodeFlowException):
    """Raised when there's a configuration error."""
    pass


class ValidationError(NodeFlowException):
    """Raised when validation fails."""
    pass


class NotFoundError(NodeFlowException):
    """Raised when a resource is not found."""
    pass
