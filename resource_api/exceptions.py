"""
Resource API exceptions.

Error taxonomy shared by the request pipeline and the registry.
Request-scoped errors carry the HTTP status they map to.
"""


class ResourceAPIError(Exception):
    """Base exception for resource API errors."""

    status_code: int = 500


class AuthenticationError(ResourceAPIError):
    """
    Raised by a handler's authenticate() to reject a request.

    The message is written verbatim as the response body.
    """

    status_code = 401


class UnsupportedFormatError(ResourceAPIError):
    """Raised when no serializer is registered for the requested format."""

    status_code = 501

    def __init__(self, format_name: str) -> None:
        self.format_name = format_name
        super().__init__(f"Format not implemented: {format_name}")


class HandlerError(ResourceAPIError):
    """Raised when a handler operation fails."""

    status_code = 500


class PayloadError(HandlerError):
    """Raised when a request body cannot be decoded or violates the rules."""
    pass


class ConfigurationError(ResourceAPIError):
    """
    Raised when a resource handler or its rules are wired incorrectly.

    Raised at startup by validate_rules().

    Examples:
        - Prototype resource is None or not a dataclass / pydantic model
        - Rule names a field missing from the resource
        - Rule declares a type the field does not have
    """

    def __init__(
        self,
        message: str,
        resource_name: str | None = None,
        field: str | None = None,
    ) -> None:
        self.resource_name = resource_name
        self.field = field
        super().__init__(message)
