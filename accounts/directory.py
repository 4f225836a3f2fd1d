"""User Directory: identity, role and activation status for each account.

The course core only reads lecturer/student existence and role from here.
Authentication, sessions and password reset stay with Django's auth
framework and are not wrapped.
"""
from __future__ import annotations

import logging

from django.contrib.auth.models import User
from django.core.exceptions import PermissionDenied
from django.db import transaction
from django.db.models import QuerySet

from config.exceptions import NotFoundError, StateError, ValidationError
from config.store import guarded
from .decorators import role_required
from .identity import Actor
from .models import AccountStatus, Role, UserProfile

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"


def _normalise_email(email: str | None) -> str:
    return (email or "").strip().lower()


@guarded
def create_user(email: str, name: str = "", role: str = Role.STUDENT, password: str | None = None) -> User:
    """Provision an account with a role.

    The e-mail doubles as the username and must be unique regardless of case.
    """
    email = _normalise_email(email)
    if not email or "@" not in email:
        raise ValidationError("A valid e-mail is required.")
    if role not in Role.values:
        raise ValidationError(f"Unknown role: {role}")
    if User.objects.filter(email__iexact=email).exists() or User.objects.filter(username__iexact=email).exists():
        raise ValidationError("An account with this e-mail already exists.")
    with transaction.atomic():
        user = User.objects.create_user(username=email, email=email, password=password)
        profile = user.profile
        profile.role = role
        profile.full_name = (name or "").strip()
        profile.save(update_fields=["role", "full_name", "updated_at"])
    logger.info("Created %s account %s (id=%s)", role, email, user.id)
    return user


@guarded
def get_user(user_id: int) -> User:
    try:
        return User.objects.select_related("profile").get(pk=user_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"User {user_id} not found.")


def list_users_by_role(role: str) -> QuerySet:
    """Lazy queryset; the caller evaluates it under `store_guard()`."""
    if role not in Role.values:
        raise ValidationError(f"Unknown role: {role}")
    return User.objects.select_related("profile").filter(profile__role=role).order_by("username", "id")


def display_names(user_ids) -> dict[int, str]:
    """Resolve ids to display names; ids with no account are left out."""
    users = User.objects.select_related("profile").filter(pk__in=list(user_ids))
    out = {}
    for u in users:
        profile = getattr(u, "profile", None)
        out[u.id] = profile.display_name if profile else u.username
    return out


def has_role(user_id: int | None, role: str, *, active_only: bool = True) -> bool:
    if user_id is None:
        return False
    qs = UserProfile.objects.filter(user_id=user_id, role=role)
    if active_only:
        qs = qs.filter(status=AccountStatus.ACTIVE, user__is_active=True)
    return qs.exists()


@guarded
@role_required(Role.ADMIN)
def set_user_status(actor: Actor, user_id: int, status: str) -> User:
    """Activate or suspend an account (admin only)."""
    if status not in AccountStatus.values:
        raise ValidationError(f"Unknown status: {status}")
    if user_id == actor.user_id and status == AccountStatus.SUSPENDED:
        raise ValidationError("Admins cannot suspend their own account.")
    with transaction.atomic():
        user = get_user(user_id)
        profile = user.profile
        profile.status = status
        profile.save(update_fields=["status", "updated_at"])
        user.is_active = status == AccountStatus.ACTIVE
        user.save(update_fields=["is_active"])
    logger.info("Admin %s set user %s status to %s", actor.user_id, user_id, status)
    return user


@guarded
@role_required(Role.ADMIN)
def set_user_role(actor: Actor, user_id: int, role: str) -> User:
    """Change an account's role (admin only).

    A lecturer who still owns courses keeps the role until the courses are
    removed or the account is deleted.
    """
    if role not in Role.values:
        raise ValidationError(f"Unknown role: {role}")
    with transaction.atomic():
        user = get_user(user_id)
        profile = user.profile
        if profile.role == role:
            return user
        if profile.role == Role.LECTURER:
            owned = user.owned_courses.count()
            if owned:
                raise StateError(f"Lecturer still owns {owned} course(s).")
        if user_id == actor.user_id:
            raise ValidationError("Admins cannot change their own role.")
        profile.role = role
        profile.save(update_fields=["role", "updated_at"])
    logger.info("Admin %s changed user %s role to %s", actor.user_id, user_id, role)
    return user


@guarded
@role_required(Role.ADMIN)
def delete_user(actor: Actor, user_id: int):
    """Delete an account and fan out the dependent course updates.

    Deleting a missing id is a no-op success. Dependent updates are applied
    one by one; their failures are collected in the returned report rather
    than aborting the account removal. Failures that the account removal
    itself cleared (a student's leftover enrolment rows) move to `resolved`.
    """
    from courses.cascade import (
        CascadeReport,
        outstanding_courses,
        remove_lecturer_courses,
        remove_student_everywhere,
    )

    if user_id == actor.user_id:
        raise PermissionDenied("Admins cannot delete their own account.")
    user = User.objects.select_related("profile").filter(pk=user_id).first()
    if user is None:
        return CascadeReport(user_id=user_id)

    role = getattr(getattr(user, "profile", None), "role", None)
    if role == Role.LECTURER:
        report = remove_lecturer_courses(user_id)
    elif role == Role.STUDENT:
        report = remove_student_everywhere(user_id)
    else:
        report = CascadeReport(user_id=user_id)

    user.delete()
    if report.failed:
        report.settle(outstanding_courses(report, owned=role == Role.LECTURER))
    if report.failed:
        logger.warning(
            "Deleted user %s with %d failed dependent update(s): %s",
            user_id,
            len(report.failed),
            ", ".join(str(f.course_id) for f in report.failed),
        )
    else:
        logger.info("Deleted user %s (%d dependent update(s))", user_id, len(report.succeeded))
    return report
