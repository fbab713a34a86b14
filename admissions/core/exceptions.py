"""
Platform-wide exception hierarchy.

Services raise these; ``admissions.utils.errors.register_error_handlers``
maps each type to one HTTP status and one machine-readable error code, so
blueprints never translate exceptions by hand.

Usage:
    from admissions.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Application", resource_id=42)
    raise ValidationError("Invalid section payload", details={"warmUp.bio": "unknown field"})
"""


class NotFoundError(Exception):
    """Raised when a user or application id does not resolve.

    Args:
        resource: Human-readable entity name (e.g. "User", "Application").
        resource_id: The key that was looked up. Included in the message.
    """

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input violates a length, enum or type constraint.

    Args:
        message: Human-readable explanation of what failed.
        details: Field-level breakdown. Keys are field paths
                 (``"<section>.<field>"``); values describe the constraint.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would violate a unique constraint.

    Args:
        resource: Model name.
        field: The unique field that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class NotCompleteError(Exception):
    """Raised when an application is submitted before every required field is answered.

    Carries the current percentage so the caller can render progress without
    a second round trip.
    """

    def __init__(self, completion_percentage: int) -> None:
        self.completion_percentage = completion_percentage
        super().__init__(
            f"Application is not complete. Completion: {completion_percentage}%"
        )


class TransitionError(Exception):
    """Raised when strict status transitions are enabled and a move is not allowed."""

    def __init__(self, current: str, target: str) -> None:
        self.current_status = current
        self.target_status = target
        super().__init__(f"Cannot move application from '{current}' to '{target}'")


class AuthenticationError(Exception):
    """Raised when credentials do not match an active account."""


class PermissionDeniedError(Exception):
    """Raised when an authenticated user may not perform an operation."""
