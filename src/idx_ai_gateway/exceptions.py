"""Exception taxonomy for the IDX AI gateway.

Every stage of a metered request fails fast with one of these; the HTTP layer
renders them as ``{"error": message}`` with the attached status code.
"""

from typing import Any, Dict, Optional


class GatewayException(Exception):
    """Base exception for the gateway."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "INTERNAL_ERROR"
        self.status_code = status_code
        self.details = details or {}


class Unauthenticated(GatewayException):
    """Missing or unknown API key."""

    def __init__(self, message: str = "API key is required", **kwargs):
        super().__init__(message, error_code="UNAUTHENTICATED", status_code=401, **kwargs)


class Forbidden(GatewayException):
    """Client tier or dialect binding does not allow the call."""

    def __init__(self, message: str = "Client does not have access to this API", **kwargs):
        kwargs.setdefault("error_code", "FORBIDDEN")
        super().__init__(message, status_code=403, **kwargs)


class QuotaExceeded(Forbidden):
    """A limited-plan client has used up its token allowance."""

    def __init__(
        self,
        message: str = "Your token limit has been exceeded. Please upgrade your plan.",
        **kwargs,
    ):
        super().__init__(message, error_code="QUOTA_EXCEEDED", **kwargs)


class BadRequest(GatewayException):
    """Missing or malformed request fields."""

    def __init__(self, message: str = "Missing required parameters", field: Optional[str] = None, **kwargs):
        super().__init__(message, error_code="BAD_REQUEST", status_code=400, **kwargs)
        if field:
            self.details["field"] = field


class InvalidGeneratedQuery(GatewayException):
    """The synthesized query was rejected before execution."""

    def __init__(self, message: str, raw: Optional[str] = None, **kwargs):
        kwargs.setdefault("error_code", "INVALID_GENERATED_QUERY")
        super().__init__(message, status_code=400, **kwargs)
        if raw is not None:
            self.details["raw"] = raw


class PlaceholderIdentifierDetected(InvalidGeneratedQuery):
    """The synthesized query still references a placeholder table name."""

    def __init__(
        self,
        message: str = "AI returned placeholder table name. Try a clearer prompt.",
        **kwargs,
    ):
        super().__init__(message, error_code="PLACEHOLDER_IDENTIFIER", **kwargs)


class UpstreamGenerationFailed(GatewayException):
    """The upstream completion or translation service failed or returned nothing."""

    def __init__(self, message: str = "Upstream generation failed", provider: Optional[str] = None, **kwargs):
        super().__init__(message, error_code="UPSTREAM_GENERATION_FAILED", status_code=502, **kwargs)
        if provider:
            self.details["provider"] = provider


class QueryTimeout(GatewayException):
    """Target database query exceeded its wall-clock bound."""

    def __init__(self, timeout_seconds: float, **kwargs):
        super().__init__(
            f"Query timeout after {timeout_seconds:g}s",
            error_code="QUERY_TIMEOUT",
            status_code=500,
            **kwargs,
        )
        self.timeout_seconds = timeout_seconds


class ExecutionFailed(GatewayException):
    """Target database driver reported an error."""

    def __init__(self, message: str = "Query execution failed", **kwargs):
        super().__init__(message, error_code="EXECUTION_FAILED", status_code=500, **kwargs)


class InternalError(GatewayException):
    """Catch-all for unexpected failures."""

    def __init__(self, message: str = "Unexpected server error", **kwargs):
        super().__init__(message, error_code="INTERNAL_ERROR", status_code=500, **kwargs)


class NotFound(GatewayException):
    """Administrative lookup missed."""

    def __init__(self, message: str = "Not found", **kwargs):
        super().__init__(message, error_code="NOT_FOUND", status_code=404, **kwargs)


class Conflict(GatewayException):
    """Uniqueness violation on an administrative write."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, error_code="CONFLICT", status_code=409, **kwargs)


__all__ = [
    "GatewayException",
    "Unauthenticated",
    "Forbidden",
    "QuotaExceeded",
    "BadRequest",
    "InvalidGeneratedQuery",
    "PlaceholderIdentifierDetected",
    "UpstreamGenerationFailed",
    "QueryTimeout",
    "ExecutionFailed",
    "InternalError",
    "NotFound",
    "Conflict",
]
