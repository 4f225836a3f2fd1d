"""Role-based guards for core operations."""
from __future__ import annotations

from functools import wraps

from django.core.exceptions import PermissionDenied


def role_required(*roles: str):
    """Require the acting user to be active and to hold one of the given roles.

    The decorated function must take the `Actor` as its first argument.
    """

    def decorator(func):
        @wraps(func)
        def _wrapped(actor, *args, **kwargs):
            # Reject missing or suspended actors early
            if actor is None or not getattr(actor, "is_active", False):
                raise PermissionDenied("Account is not active.")
            if getattr(actor, "role", None) not in roles:
                raise PermissionDenied(f"Requires role: {', '.join(roles)}.")
            return func(actor, *args, **kwargs)

        return _wrapped

    return decorator
