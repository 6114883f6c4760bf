"""Chat Gateway Exception Hierarchy.

Structured exception classes shared by the core, the REST façade and the MCP server.
"""

from typing import Any


class GatewayBaseError(Exception):
    """Base exception for all gateway errors.

    Carries an optional error code and context so every layer can render the
    same structured payload for the calling agent.
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize the gateway base error.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with additional context
            cause: Optional original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for structured logging and API responses."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        parts = [self.message]
        if self.error_code:
            parts.append(f"[{self.error_code}]")
        if self.context:
            parts.append(f"Context: {self.context}")
        return " ".join(parts)


# === Configuration Errors ===
class ConfigurationError(GatewayBaseError):
    """Base class for configuration-related errors."""


class ConfigurationMissingError(ConfigurationError):
    """Required configuration is missing."""


class ConfigurationLoadError(ConfigurationError):
    """Failed to load configuration from source."""


# === Session Errors ===
class SessionError(GatewayBaseError):
    """Base class for session-related errors."""


class InvalidSessionError(SessionError):
    """Session id is unknown to the session store or has expired."""


# === Message Errors ===
class MessageError(GatewayBaseError):
    """Base class for message processing errors."""


class MessageValidationError(MessageError):
    """Message validation failed."""


# === Resource Errors ===
class ResourceError(GatewayBaseError):
    """Base class for resource management errors."""


class ResourceNotFoundError(ResourceError):
    """Required resource not found."""


# === External Service Errors ===
class ExternalServiceError(GatewayBaseError):
    """Base class for external service errors."""


class RemoteServiceError(ExternalServiceError):
    """The remote messaging service failed or could not be reached."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, error_code=error_code, context=context, cause=cause)
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["status_code"] = self.status_code
        return data


# === Utility Functions ===
def wrap_exception(
    exc: Exception,
    exception_class: type = GatewayBaseError,
    message: str | None = None,
    error_code: str | None = None,
    context: dict[str, Any] | None = None,
) -> GatewayBaseError:
    """Wrap a generic exception in a gateway exception.

    Useful for converting third-party exceptions to our hierarchy.
    """
    if isinstance(exc, GatewayBaseError):
        return exc

    wrapped_message = message or f"Wrapped exception: {exc!s}"
    wrapped_context = context or {}
    wrapped_context["original_exception"] = exc.__class__.__name__

    return exception_class(
        message=wrapped_message,
        error_code=error_code,
        context=wrapped_context,
        cause=exc,
    )
