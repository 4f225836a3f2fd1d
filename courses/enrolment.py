"""Enrollment Manager: capacity- and status-aware roster changes.

`enroll` locks the course row before counting, so concurrent enrolments
on one course serialise around the capacity check. The unique constraint
on (course, student) backs up the duplicate check.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from django.core.exceptions import PermissionDenied
from django.db import IntegrityError, transaction

from accounts.decorators import role_required
from accounts.directory import UNKNOWN_NAME, display_names, has_role
from accounts.identity import Actor
from accounts.models import Role
from config.exceptions import CapacityError, ConflictError, StateError, ValidationError
from config.store import guarded
from .models import Course, CourseStatus, Enrolment
from .registry import get_course, lock_course
from .signals import enrolment_changed

logger = logging.getLogger(__name__)


@dataclass
class EnrolmentResult:
    course: Course
    student_id: int
    created: bool


@dataclass
class EnrolledStudent:
    id: int
    name: str
    email: str = ""


def _add_student(course: Course, student_id: int) -> None:
    """Insert the enrolment row; caller holds the course lock."""
    if Enrolment.objects.filter(course=course, student_id=student_id).exists():
        raise ConflictError()
    if course.is_full:
        raise CapacityError(f"Course is full ({course.max_students} students).")
    try:
        with transaction.atomic():
            Enrolment.objects.create(course=course, student_id=student_id)
    except IntegrityError:
        raise ConflictError()


@guarded
@role_required(Role.STUDENT, Role.ADMIN)
def enroll(actor: Actor, course_id: int, student_id: int) -> EnrolmentResult:
    """Add a student to an approved course.

    Enrolling an already-enrolled student succeeds with `created=False`.
    Students may only enrol themselves.
    """
    if actor.is_student and student_id != actor.user_id:
        raise PermissionDenied("Students can only enrol themselves.")
    with transaction.atomic():
        course = lock_course(course_id)
        if not has_role(student_id, Role.STUDENT):
            raise ValidationError(f"User {student_id} is not an active student.")
        if course.status != CourseStatus.APPROVED:
            raise StateError("Enrolment is only possible in approved courses.")
        try:
            _add_student(course, student_id)
        except ConflictError:
            logger.info("Student %s already enrolled in course %s", student_id, course_id)
            return EnrolmentResult(course=course, student_id=student_id, created=False)
        course.save(update_fields=["updated_at"])
        transaction.on_commit(
            lambda: enrolment_changed.send(
                sender=Course, course=course, student_id=student_id, actor_id=actor.user_id, added=True
            )
        )
    logger.info("Student %s enrolled in course %s by %s", student_id, course_id, actor.user_id)
    return EnrolmentResult(course=course, student_id=student_id, created=True)


def _remove_student(course_id: int, student_id: int, *, actor: Actor | None) -> bool:
    with transaction.atomic():
        course = lock_course(course_id)
        if actor is not None and not actor.is_admin:
            if actor.is_lecturer and not course.is_owner(actor.user_id):
                raise PermissionDenied("Only the owning lecturer can remove students.")
            if actor.is_student and student_id != actor.user_id:
                raise PermissionDenied("Students can only unenrol themselves.")
            if course.status != CourseStatus.APPROVED:
                raise StateError("Enrolment changes are only possible in approved courses.")
        removed, _ = Enrolment.objects.filter(course=course, student_id=student_id).delete()
        course.save(update_fields=["updated_at"])
        if removed:
            transaction.on_commit(
                lambda: enrolment_changed.send(
                    sender=Course,
                    course=course,
                    student_id=student_id,
                    actor_id=actor.user_id if actor else None,
                    added=False,
                )
            )
    return bool(removed)


@guarded
@role_required(Role.STUDENT, Role.LECTURER, Role.ADMIN)
def unenroll(actor: Actor, course_id: int, student_id: int) -> bool:
    """Remove a student from a course; a no-op when not enrolled.

    Returns True when a row was removed. `updated_at` is bumped either way.
    """
    removed = _remove_student(course_id, student_id, actor=actor)
    logger.info("Student %s unenrolled from course %s by %s (removed=%s)", student_id, course_id, actor.user_id, removed)
    return removed


@guarded
def remove_from_course(course_id: int, student_id: int) -> bool:
    """Cascade clean-up: drop a student regardless of course status."""
    return _remove_student(course_id, student_id, actor=None)


@guarded
def list_enrolled(course_id: int) -> list[EnrolledStudent]:
    """Resolve the roster against the directory; missing accounts show as Unknown."""
    course = get_course(course_id)
    ids = course.students_enrolled
    names = display_names(ids)
    emails = dict(
        course.enrolments.values_list("student_id", "student__email")
    )
    return [EnrolledStudent(id=sid, name=names.get(sid, UNKNOWN_NAME), email=emails.get(sid) or "") for sid in ids]
