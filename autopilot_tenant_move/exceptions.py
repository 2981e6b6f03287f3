"""
Exception hierarchy for Autopilot Tenant Move

Every fatal condition of a tenant move run is raised as a subclass of
TenantMoveError. Phases raise; the run orchestrator is the single place that
catches them and turns them into an exit status.
"""

from typing import Any, Dict, Optional


class TenantMoveError(Exception):
    """
    Base exception class for all tenant move errors.

    Provides structured error information including context, error codes,
    and optional recovery suggestions.
    """

    exit_code: int = 1

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context
            cause: Optional underlying exception that caused this error
            recovery_suggestion: Optional suggestion for error recovery
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        result = self.message
        if self.error_code:
            result = f"[{self.error_code}] {result}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (context: {context_str})"
        if self.cause:
            result += f" (caused by: {self.cause})"
        if self.recovery_suggestion:
            result += f" (suggestion: {self.recovery_suggestion})"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "recovery_suggestion": self.recovery_suggestion,
        }


class ConfigurationError(TenantMoveError):
    """Raised when required settings are missing or invalid."""

    def __init__(
        self, message: str, missing_keys: Optional[list[str]] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if missing_keys:
            context["missing_keys"] = missing_keys
        kwargs["context"] = context
        kwargs.setdefault("error_code", "INVALID_CONFIG")
        kwargs.setdefault(
            "recovery_suggestion",
            f"Set required configuration: {', '.join(missing_keys)}"
            if missing_keys
            else "Check environment variables and the .env file",
        )
        super().__init__(message, **kwargs)


class ConfigStagingError(TenantMoveError):
    """Raised when the Autopilot configuration file cannot be staged."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        destination: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if source:
            context["source"] = source
        if destination:
            context["destination"] = destination
        kwargs["context"] = context
        kwargs.setdefault("error_code", "CONFIG_STAGING_FAILED")
        super().__init__(message, **kwargs)


# Microsoft Graph related exceptions
class GraphError(TenantMoveError):
    """Base class for Microsoft Graph errors."""

    pass


class GraphAuthenticationError(GraphError):
    """Raised when the client-credentials token exchange fails."""

    def __init__(
        self, message: str, tenant_id: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if tenant_id:
            context["tenant_id"] = tenant_id
        kwargs["context"] = context
        kwargs.setdefault("error_code", "GRAPH_AUTH_FAILED")
        kwargs.setdefault(
            "recovery_suggestion",
            "Check AZURE_TENANT_ID, AZURE_CLIENT_ID and AZURE_CLIENT_SECRET",
        )
        super().__init__(message, **kwargs)


class GraphRequestError(GraphError):
    """Raised when a Graph call fails in transport or returns a non-2xx status."""

    def __init__(
        self,
        message: str,
        method: Optional[str] = None,
        uri: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if method:
            context["method"] = method
        if uri:
            context["uri"] = uri
        if status_code is not None:
            context["status_code"] = status_code
        kwargs["context"] = context
        kwargs.setdefault("error_code", "GRAPH_REQUEST_FAILED")
        super().__init__(message, **kwargs)
        self.method = method
        self.uri = uri
        self.status_code = status_code


class DeviceResolutionError(TenantMoveError):
    """Raised when the managed-device lookup does not match exactly one record."""

    def __init__(
        self,
        message: str,
        device_name: Optional[str] = None,
        match_count: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if device_name:
            context["device_name"] = device_name
        if match_count is not None:
            context["match_count"] = match_count
        kwargs["context"] = context
        kwargs.setdefault("error_code", "DEVICE_RESOLUTION_FAILED")
        super().__init__(message, **kwargs)
        self.device_name = device_name
        self.match_count = match_count


class RemoteWipeError(TenantMoveError):
    """Raised when the local MDM remote wipe cannot be invoked."""

    def __init__(
        self, message: str, returncode: Optional[int] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if returncode is not None:
            context["returncode"] = returncode
        kwargs["context"] = context
        kwargs.setdefault("error_code", "REMOTE_WIPE_FAILED")
        kwargs.setdefault(
            "recovery_suggestion",
            "Run as SYSTEM on a Windows device enrolled in MDM",
        )
        super().__init__(message, **kwargs)
