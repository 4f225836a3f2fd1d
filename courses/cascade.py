"""Cascades triggered by deleting a user.

Each dependent course update runs in its own transaction. A failure on
one course is recorded and the fan-out carries on, so callers learn
exactly which updates to retry.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from django.db import DatabaseError, transaction

from config.exceptions import CoursedeskError
from .enrolment import remove_from_course
from .models import Course, Enrolment

logger = logging.getLogger(__name__)


@dataclass
class CascadeFailure:
    course_id: int
    error: str


@dataclass
class CascadeReport:
    user_id: int
    succeeded: list[int] = field(default_factory=list)
    failed: list[CascadeFailure] = field(default_factory=list)
    # Failed course ids that no longer need the update once the account is gone
    resolved: list[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def settle(self, outstanding: set[int]) -> None:
        """Keep only failures whose course still needs the update."""
        kept = []
        for failure in self.failed:
            if failure.course_id in outstanding:
                kept.append(failure)
            else:
                self.resolved.append(failure.course_id)
        self.failed = kept

    def as_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "succeeded": list(self.succeeded),
            "failed": [{"course_id": f.course_id, "error": f.error} for f in self.failed],
            "resolved": list(self.resolved),
        }


def _delete_owned_course(course_id: int) -> None:
    with transaction.atomic():
        Course.objects.filter(pk=course_id).delete()


def _fan_out(user_id: int, course_ids: list[int], step) -> CascadeReport:
    report = CascadeReport(user_id=user_id)
    for course_id in course_ids:
        try:
            step(course_id)
        except (CoursedeskError, DatabaseError) as exc:
            logger.warning("Cascade for user %s failed on course %s: %s", user_id, course_id, exc)
            report.failed.append(CascadeFailure(course_id=course_id, error=str(exc)))
        else:
            report.succeeded.append(course_id)
    return report


def remove_lecturer_courses(lecturer_id: int) -> CascadeReport:
    """Delete every course owned by the lecturer, one at a time."""
    course_ids = list(Course.objects.filter(lecturer_id=lecturer_id).order_by("id").values_list("id", flat=True))
    return _fan_out(lecturer_id, course_ids, _delete_owned_course)


def remove_student_everywhere(student_id: int) -> CascadeReport:
    """Unenrol the student from every course that lists them."""
    course_ids = list(
        Enrolment.objects.filter(student_id=student_id).order_by("course_id").values_list("course_id", flat=True)
    )
    return _fan_out(student_id, course_ids, lambda course_id: remove_from_course(course_id, student_id))


def outstanding_courses(report: CascadeReport, *, owned: bool) -> set[int]:
    """Failed course ids that still carry the deleted user.

    Owned courses survive a failed delete as orphans, so they stay
    outstanding while the row exists. Enrolment rows go with the account
    through the foreign key, so a student's failures normally all resolve.
    """
    ids = [f.course_id for f in report.failed]
    if not ids:
        return set()
    if owned:
        return set(Course.objects.filter(pk__in=ids).values_list("id", flat=True))
    return set(
        Enrolment.objects.filter(course_id__in=ids, student_id=report.user_id).values_list("course_id", flat=True)
    )
