"""Accounts models: user profile, role and activation status.

Defines a `UserProfile` associated one-to-one with Django's `User`,
capturing the role (student/lecturer/admin), the activation status and
the display name. The profile is created automatically on user creation.
"""
from __future__ import annotations

from django.conf import settings
from django.db import models


class Role(models.TextChoices):
    """Platform roles; the role decides which mutating operations are allowed."""

    STUDENT = "student", "Student"
    LECTURER = "lecturer", "Lecturer"
    ADMIN = "admin", "Admin"


class AccountStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    SUSPENDED = "suspended", "Suspended"


class UserProfile(models.Model):
    """Profile linked to a Django auth user.

    - `role`: exactly one per user, changed only by admins
    - `status`: mirrored onto `User.is_active` so suspended accounts cannot sign in
    """

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="profile")
    role = models.CharField(max_length=16, choices=Role.choices, default=Role.STUDENT, db_index=True)
    status = models.CharField(max_length=16, choices=AccountStatus.choices, default=AccountStatus.ACTIVE)
    full_name = models.CharField(max_length=200, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:  # pragma: no cover (string repr convenience)
        return f"Profile<{self.user.username}:{self.role}>"

    @property
    def display_name(self) -> str:
        return self.full_name or self.user.username

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE
