"""Domain error taxonomy shared by the directory, registry and workflow.

Authorisation failures are not part of this hierarchy; they raise
Django's `PermissionDenied` like the rest of the stack.
"""
from __future__ import annotations


class CoursedeskError(Exception):
    """Base class for errors surfaced to API callers.

    `status_code` and `code` drive the API exception handler.
    """

    status_code = 400
    code = "error"
    default_detail = "Request failed."

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(CoursedeskError):
    """Malformed input; raised before any mutation."""

    status_code = 400
    code = "invalid"
    default_detail = "Invalid input."


class NotFoundError(CoursedeskError):
    status_code = 404
    code = "not_found"
    default_detail = "Not found."


class StateError(CoursedeskError):
    """Operation is illegal in the record's current state."""

    status_code = 409
    code = "invalid_state"
    default_detail = "Operation not allowed in the current state."


class CapacityError(CoursedeskError):
    status_code = 409
    code = "capacity"
    default_detail = "Course is full."


class ConflictError(CoursedeskError):
    """Duplicate enrolment. Benign: callers report success."""

    status_code = 200
    code = "already_enrolled"
    default_detail = "Already enrolled."


class DependencyError(CoursedeskError):
    """Backing store unreachable; the operation must not be assumed applied."""

    status_code = 503
    code = "unavailable"
    default_detail = "Service temporarily unavailable. Please retry."
