"""Custom permissions for REST API v1.

Fine-grained checks (ownership, self-service) happen in the core
operations; these only gate whole endpoints by role.
"""
from __future__ import annotations

from rest_framework.permissions import BasePermission

from accounts.models import Role


def _role(user) -> str | None:
    profile = getattr(user, "profile", None)
    if not (user and user.is_authenticated and profile is not None and profile.is_active):
        return None
    return profile.role


class IsAdmin(BasePermission):
    def has_permission(self, request, view):
        return _role(request.user) == Role.ADMIN


class IsLecturerOrAdmin(BasePermission):
    def has_permission(self, request, view):
        return _role(request.user) in (Role.LECTURER, Role.ADMIN)
