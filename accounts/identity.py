"""Request-scoped identity passed explicitly into core operations."""
from __future__ import annotations

from dataclasses import dataclass

from django.core.exceptions import PermissionDenied

from .models import AccountStatus, Role


@dataclass(frozen=True)
class Actor:
    """Who is performing an operation.

    Built once per request by the caller; the core never looks up a
    process-wide "current user".
    """

    user_id: int
    role: str
    is_active: bool = True

    @classmethod
    def from_user(cls, user) -> "Actor":
        if not getattr(user, "is_authenticated", False):
            raise PermissionDenied("Authentication required.")
        profile = getattr(user, "profile", None)
        if profile is None:
            raise PermissionDenied("User has no profile.")
        return cls(
            user_id=user.id,
            role=profile.role,
            is_active=bool(user.is_active and profile.status == AccountStatus.ACTIVE),
        )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_lecturer(self) -> bool:
        return self.role == Role.LECTURER

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT
