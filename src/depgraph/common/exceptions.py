"""Custom exceptions for the dependency graph engine.

Provides a hierarchy of exceptions with HTTP status codes and structured
error responses. The transport layer maps them to status signals; the
engine only raises them.
"""

from typing import Any


class DepGraphError(Exception):
    """Base exception for all depgraph errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"
    message: str = "An internal error occurred"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize exception with optional details.

        Args:
            message: Human-readable error message.
            details: Additional error details for debugging.
            cause: Original exception that caused this error.
        """
        self.message = message or self.message
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# 400 Bad Request errors
class ValidationError(DepGraphError):
    """Malformed or incomplete input record."""

    status_code = 400
    error_code = "VALIDATION_ERROR"
    message = "Request validation failed"


# 404 Not Found errors
class NotFoundError(DepGraphError):
    """Referenced entity does not exist."""

    status_code = 404
    error_code = "NOT_FOUND"
    message = "Resource not found"


class NodeNotFoundError(NotFoundError):
    """Node not found."""

    error_code = "NODE_NOT_FOUND"
    message = "Node not found"


class ConnectionNotFoundError(NotFoundError):
    """Connection not found."""

    error_code = "CONNECTION_NOT_FOUND"
    message = "Connection not found"


class EdgeNotFoundError(NotFoundError):
    """Edge not found."""

    error_code = "EDGE_NOT_FOUND"
    message = "Edge not found"


class DependencyNotFoundError(NotFoundError):
    """No connection matches a dependency key."""

    error_code = "DEPENDENCY_NOT_FOUND"
    message = "Dependency not found"


# 409 Conflict errors
class ConflictError(DepGraphError):
    """Resource conflict."""

    status_code = 409
    error_code = "CONFLICT"
    message = "Resource conflict"


class DuplicateNodeError(ConflictError):
    """Node with identical attributes already exists."""

    error_code = "DUPLICATE_NODE"
    message = "Node with identical attributes already exists"


class NodeConflictError(ConflictError):
    """Insert-only creation hit an existing node id."""

    error_code = "NODE_CONFLICT"
    message = "Node with this identifier already exists"


# 500 Internal Server errors
class InternalError(DepGraphError):
    """Internal server error."""

    status_code = 500
    error_code = "INTERNAL_ERROR"
    message = "An internal error occurred"


class ConfigurationError(InternalError):
    """Configuration error."""

    error_code = "CONFIGURATION_ERROR"
    message = "Service configuration error"


# 503 Service Unavailable errors
class StoreUnavailableError(DepGraphError):
    """Backend connection or transport failure."""

    status_code = 503
    error_code = "STORE_UNAVAILABLE"
    message = "Graph store unavailable"


class BatchIngestError(DepGraphError):
    """A record of a batch failed; earlier records remain applied.

    Takes over the status and code of the underlying error so the
    transport reports the real failure kind.
    """

    def __init__(
        self,
        index: int,
        applied: int,
        error: DepGraphError,
        record: dict[str, Any] | None = None,
    ) -> None:
        self.index = index
        self.applied = applied
        self.error = error
        self.status_code = error.status_code
        self.error_code = error.error_code
        details = {
            "index": index,
            "applied": applied,
            **error.details,
        }
        if record is not None:
            details["record"] = record
        super().__init__(
            message=f"Record {index} failed: {error.message}",
            details=details,
            cause=error,
        )
