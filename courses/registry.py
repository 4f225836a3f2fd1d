"""Course Registry: storage and retrieval of course records.

The registry is the only writer of course content. Status changes live in
`courses.workflow` and roster changes in `courses.enrolment`; both reuse
`lock_course` so every mutation is a single locked read-modify-write on
the course row.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from django.core.exceptions import PermissionDenied
from django.db import transaction
from django.db.models import Q, QuerySet

from accounts.decorators import role_required
from accounts.directory import has_role
from accounts.identity import Actor
from accounts.models import Role
from config.exceptions import NotFoundError, ValidationError
from config.store import guarded
from .models import Course, CourseStatus

logger = logging.getLogger(__name__)


@dataclass
class CourseFilter:
    status: str | None = None
    q: str | None = None
    lecturer_id: int | None = None
    student_id: int | None = None


def _clean_text(fields: Mapping[str, Any], name: str, *, required: bool) -> str:
    value = fields.get(name)
    value = "" if value is None else str(value).strip()
    if required and not value:
        raise ValidationError(f"{name.capitalize()} must not be empty.")
    return value


def _clean_max_students(value: Any) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError("Max students must be a positive integer.")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Max students must be a positive integer.")
    if number < 1 or str(number) != str(value).strip():
        raise ValidationError("Max students must be a positive integer.")
    return number


def clean_course_fields(fields: Mapping[str, Any], *, partial: bool) -> dict[str, Any]:
    """Validate editable course fields.

    With `partial`, only the supplied keys are validated and returned.
    """
    unknown = set(fields) - set(Course.EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(sorted(unknown))}")
    cleaned: dict[str, Any] = {}
    for name in ("title", "description"):
        if not partial or name in fields:
            cleaned[name] = _clean_text(fields, name, required=True)
    for name in ("category", "duration"):
        if not partial or name in fields:
            cleaned[name] = _clean_text(fields, name, required=False)
    if not partial or "max_students" in fields:
        cleaned["max_students"] = _clean_max_students(fields.get("max_students"))
    return cleaned


def lock_course(course_id: int) -> Course:
    """Fetch a course row for update; call inside `transaction.atomic()`."""
    try:
        return Course.objects.select_for_update().get(pk=course_id)
    except (Course.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Course {course_id} not found.")


@guarded
@role_required(Role.LECTURER, Role.ADMIN)
def create_course(actor: Actor, lecturer_id: int, fields: Mapping[str, Any]) -> Course:
    """Create a pending course with an empty roster.

    Lecturers create for themselves; admins may create on behalf of any
    active lecturer.
    """
    if actor.is_lecturer and lecturer_id != actor.user_id:
        raise PermissionDenied("Lecturers can only create their own courses.")
    cleaned = clean_course_fields(fields, partial=False)
    if not has_role(lecturer_id, Role.LECTURER):
        raise ValidationError(f"User {lecturer_id} is not an active lecturer.")
    course = Course.objects.create(lecturer_id=lecturer_id, status=CourseStatus.PENDING, **cleaned)
    logger.info("Course %s created by %s for lecturer %s", course.id, actor.user_id, lecturer_id)
    return course


@guarded
def get_course(course_id: int) -> Course:
    try:
        return Course.objects.select_related("lecturer", "lecturer__profile").get(pk=course_id)
    except (Course.DoesNotExist, ValueError, TypeError):
        raise NotFoundError(f"Course {course_id} not found.")


def visible_to(qs: QuerySet, actor: Actor) -> QuerySet:
    """Role-gated visibility: admins see all, lecturers own + approved, students approved."""
    if actor.is_admin:
        return qs
    if actor.is_lecturer:
        return qs.filter(Q(lecturer_id=actor.user_id) | Q(status=CourseStatus.APPROVED))
    return qs.filter(status=CourseStatus.APPROVED)


def can_view(actor: Actor, course: Course) -> bool:
    if actor.is_admin:
        return True
    if actor.is_lecturer and course.is_owner(actor.user_id):
        return True
    return course.status == CourseStatus.APPROVED and course.lecturer_id is not None


def list_courses(filters: CourseFilter | None = None, actor: Actor | None = None) -> QuerySet:
    """Return matching courses, newest first with ties broken by id.

    The result is a lazy queryset: nothing is read until it is iterated,
    and iterating it again re-reads the store, so callers evaluate it under
    `store_guard()`. Orphaned courses are hidden.
    """
    f = filters or CourseFilter()
    qs = (
        Course.objects.select_related("lecturer", "lecturer__profile")
        .prefetch_related("enrolments")
        .filter(lecturer__isnull=False)
    )
    if f.status:
        if f.status not in CourseStatus.values:
            raise ValidationError(f"Unknown status: {f.status}")
        qs = qs.filter(status=f.status)
    if f.lecturer_id is not None:
        qs = qs.filter(lecturer_id=f.lecturer_id)
    if f.student_id is not None:
        qs = qs.filter(enrolments__student_id=f.student_id)
    q = (f.q or "").strip()
    if q:
        qs = qs.filter(
            Q(title__icontains=q)
            | Q(description__icontains=q)
            | Q(category__icontains=q)
            | Q(lecturer__profile__full_name__icontains=q)
            | Q(lecturer__username__icontains=q)
        )
    if actor is not None:
        qs = visible_to(qs, actor)
    return qs.order_by("-created_at", "id")


@guarded
@role_required(Role.LECTURER, Role.ADMIN)
def update_course_content(actor: Actor, course_id: int, fields: Mapping[str, Any]) -> Course:
    """Merge editable fields into a course and bump `updated_at`."""
    cleaned = clean_course_fields(fields, partial=True)
    with transaction.atomic():
        course = lock_course(course_id)
        if actor.is_lecturer and not course.is_owner(actor.user_id):
            raise PermissionDenied("Only the owning lecturer can edit this course.")
        if not cleaned:
            return course
        limit = cleaned.get("max_students", course.max_students)
        if limit is not None and course.enrolments.count() > limit:
            raise ValidationError("Max students cannot be lower than the current enrolment.")
        for name, value in cleaned.items():
            setattr(course, name, value)
        course.save(update_fields=[*cleaned.keys(), "updated_at"])
    logger.info("Course %s content updated by %s: %s", course_id, actor.user_id, ", ".join(sorted(cleaned)))
    return course


@guarded
@role_required(Role.LECTURER, Role.ADMIN)
def delete_course(actor: Actor, course_id: int) -> bool:
    """Remove a course and its roster at any status.

    Idempotent: returns False when the course does not exist.
    """
    with transaction.atomic():
        course = Course.objects.select_for_update().filter(pk=course_id).first()
        if course is None:
            return False
        if actor.is_lecturer and not course.is_owner(actor.user_id):
            raise PermissionDenied("Only the owning lecturer can delete this course.")
        course.delete()
    logger.info("Course %s deleted by %s", course_id, actor.user_id)
    return True
