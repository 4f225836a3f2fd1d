"""Approval Workflow: the admin-driven course status state machine.

    pending  --approve-->  approved
    pending  --reject--->  rejected
    approved --reject--->  rejected
    rejected --approve-->  approved
    rejected --resubmit->  pending   (owning lecturer)

No state is terminal. Re-applying the current state is a no-op success
that still refreshes `updated_at`.
"""
from __future__ import annotations

import logging

from django.core.exceptions import PermissionDenied
from django.db import transaction

from accounts.decorators import role_required
from accounts.identity import Actor
from accounts.models import Role
from config.exceptions import StateError, ValidationError
from config.store import guarded
from .models import Course, CourseStatus
from .registry import lock_course
from .signals import course_reviewed

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    CourseStatus.PENDING: {CourseStatus.APPROVED, CourseStatus.REJECTED},
    CourseStatus.APPROVED: {CourseStatus.REJECTED},
    CourseStatus.REJECTED: {CourseStatus.APPROVED, CourseStatus.PENDING},
}

STATUS_MESSAGES = {
    CourseStatus.PENDING: "Your course is waiting for admin approval. You will be notified once it's reviewed.",
    CourseStatus.APPROVED: "Your course is live and students can enrol.",
    CourseStatus.REJECTED: "Your course was not approved. Review the admin feedback, revise and resubmit.",
}


def status_message(status: str) -> str:
    return STATUS_MESSAGES.get(status, "Status unknown. Please contact support.")


def _transition(actor: Actor, course_id: int, target: str, *, feedback: str | None = None, check=None) -> Course:
    with transaction.atomic():
        course = lock_course(course_id)
        if check is not None:
            check(course)
        previous = course.status
        if previous != target and target not in ALLOWED_TRANSITIONS.get(previous, set()):
            raise StateError(f"Cannot move course from {previous} to {target}.")
        if target == CourseStatus.APPROVED:
            course.admin_feedback = ""
        elif feedback is not None:
            course.admin_feedback = feedback
        course.status = target
        course.save(update_fields=["status", "admin_feedback", "updated_at"])
        transaction.on_commit(
            lambda: course_reviewed.send(sender=Course, course=course, actor_id=actor.user_id, previous=previous)
        )
    if previous == target:
        logger.info("Course %s already %s; refreshed by %s", course_id, target, actor.user_id)
    else:
        logger.info("Course %s moved %s -> %s by %s", course_id, previous, target, actor.user_id)
    return course


@guarded
@role_required(Role.ADMIN)
def approve(actor: Actor, course_id: int) -> Course:
    """Approve a pending or rejected course; clears admin feedback."""
    return _transition(actor, course_id, CourseStatus.APPROVED)


@guarded
@role_required(Role.ADMIN)
def reject(actor: Actor, course_id: int, feedback: str | None = None, *, skip_feedback: bool = False) -> Course:
    """Reject a pending or approved course with feedback for the lecturer.

    Blank feedback is refused unless the admin explicitly confirms skipping
    it, in which case the empty string is stored.
    """
    text = (feedback or "").strip()
    if not text and not skip_feedback:
        raise ValidationError("Feedback is required when rejecting a course (or confirm skipping it).")
    return _transition(actor, course_id, CourseStatus.REJECTED, feedback=text)


@guarded
@role_required(Role.LECTURER)
def resubmit(actor: Actor, course_id: int) -> Course:
    """Send a rejected course back to review after revision (owning lecturer)."""

    def _check(course: Course) -> None:
        if not course.is_owner(actor.user_id):
            raise PermissionDenied("Only the owning lecturer can resubmit this course.")
        if course.status != CourseStatus.REJECTED:
            raise StateError("Only rejected courses can be resubmitted.")

    return _transition(actor, course_id, CourseStatus.PENDING, check=_check)
