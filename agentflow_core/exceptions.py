"""
Exceptions for the Admin API client and configuration pipeline.

Callers need to tell apart four network-adjacent failures (missing
credentials, transport failure, exceeded time budget, remote application
error) plus a validation gate raised by the service layer.
"""

from typing import Any, Dict, List, Optional


class AgentFlowError(Exception):
    """
    Base exception for all agentflow errors.

    Attributes:
        message: Human-readable error description
        code: Optional machine-readable error code
        details: Optional additional error details
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, code={self.code!r})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(AgentFlowError):
    """
    Raised when the Admin API client is not configured.

    Checked before any network attempt: a missing base URL or key never
    reaches the transport.
    """

    def __init__(
        self,
        message: str = "Admin API is not configured. Set ADMIN_API_BASE_URL and ADMIN_API_KEY.",
        **kwargs
    ):
        super().__init__(message, code="configuration_error", **kwargs)


# =============================================================================
# Network Errors
# =============================================================================

class TransportError(AgentFlowError):
    """
    Raised when the orchestrator cannot be reached.

    This may happen due to:
    - Network connectivity issues
    - DNS resolution failures
    - Connection refused or reset
    """

    def __init__(
        self,
        message: str = "Failed to connect to the Admin API.",
        **kwargs
    ):
        super().__init__(message, code="transport_error", **kwargs)


class TimeoutError(AgentFlowError):
    """
    Raised when a request exceeds its time budget.

    Attributes:
        timeout: The timeout value that was exceeded (in seconds)
    """

    def __init__(
        self,
        message: str = "The request timed out.",
        timeout: Optional[float] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {}) or {}
        if timeout:
            details["timeout"] = timeout
            message = f"The request exceeded its time budget of {timeout} seconds."

        super().__init__(message, code="timeout", details=details, **kwargs)
        self.timeout = timeout


class RemoteApplicationError(AgentFlowError):
    """
    Raised when the Admin API returns a non-2xx response.

    Attributes:
        status_code: HTTP status code from the response
        response_body: Raw response body if available
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        response_body: Optional[str] = None
    ):
        super().__init__(message, code or "remote_error", details)
        self.status_code = status_code
        self.response_body = response_body

    def __str__(self) -> str:
        return f"[HTTP {self.status_code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["status_code"] = self.status_code
        return result


# =============================================================================
# Validation Gate
# =============================================================================

class WorkflowValidationError(AgentFlowError):
    """
    Raised when a workflow cannot be saved or imported because it has errors.

    Attributes:
        errors: Blocking issues
        warnings: Non-blocking issues found in the same pass
    """

    def __init__(
        self,
        errors: List[Any],
        warnings: Optional[List[Any]] = None,
        message: Optional[str] = None,
    ):
        count = len(errors)
        super().__init__(
            message or f"Workflow configuration has {count} validation error{'s' if count != 1 else ''}.",
            code="workflow_invalid",
            details={"error_count": count},
        )
        self.errors = list(errors)
        self.warnings = list(warnings or [])


class VersionNotFoundError(AgentFlowError):
    """Raised when a version store has no such agent config version."""

    def __init__(self, tenant_id: str, agent_id: str, version: int):
        super().__init__(
            f"Agent '{agent_id}' of tenant '{tenant_id}' has no version {version}.",
            code="version_not_found",
            details={"tenant_id": tenant_id, "agent_id": agent_id, "version": version},
        )


def is_retryable(error: Exception) -> bool:
    """
    Check if an error is transient.

    Timeouts, transport failures and 5xx responses are retryable;
    configuration and 4xx failures are not.
    """
    if isinstance(error, (TransportError, TimeoutError)):
        return True
    if isinstance(error, RemoteApplicationError) and error.status_code >= 500:
        return True
    return False
