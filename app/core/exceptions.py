"""
Platform-wide exception hierarchy.

Services raise these types; the app-level handlers registered by
``app.utils.errors.register_error_handlers`` map each one to an HTTP status
and the ``{"success": false, "error": ...}`` envelope in one place.

Usage:
    from app.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id=42)
    raise ValidationError("estimated_cost must be a non-negative number")
"""


class AppError(Exception):
    """Base class for every error the API reports to clients."""

    status_code = 500


class Unauthorized(AppError):
    """Raised when the caller is not authenticated or lacks a capability.

    Maps to HTTP 401.

    Args:
        message: Client-facing reason.
        capability: The capability that was checked, for logs only.
    """

    status_code = 401

    def __init__(self, message: str = "Unauthorized", capability: str | None = None) -> None:
        self.capability = capability
        super().__init__(message)


class NotFoundError(AppError):
    """Raised when a requested resource does not exist.

    Maps to HTTP 404.

    Args:
        resource: Human-readable model/entity name (e.g. "Project", "Budget item").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
    """

    status_code = 404

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found")


class ValidationError(AppError):
    """Raised when input is missing, malformed or violates a business rule.

    Maps to HTTP 400.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown, logged server-side.
    """

    status_code = 400

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class GateNotSatisfied(AppError):
    """Raised when a workflow precondition is unmet.

    Maps to HTTP 400 with a hint telling the caller what to do first.
    """

    status_code = 400

    def __init__(self, message: str = "Approve at least one budget item first") -> None:
        super().__init__(message)


class PersistenceError(AppError):
    """Raised when the underlying store fails after validation passed.

    Maps to HTTP 500. ``public_message`` is what the client sees; the
    original exception is chained and logged server-side only.
    """

    status_code = 500

    def __init__(self, public_message: str = "Database error") -> None:
        self.public_message = public_message
        super().__init__(public_message)
