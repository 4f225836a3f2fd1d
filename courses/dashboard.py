"""Per-role counters shown on the admin, lecturer and student dashboards."""
from __future__ import annotations

from django.db.models import Count, Q

from accounts.identity import Actor
from accounts.models import Role, UserProfile
from config.store import guarded
from .models import Course, CourseStatus, Enrolment


def _status_counts(qs) -> dict[str, int]:
    counts = qs.aggregate(
        total=Count("id"),
        pending=Count("id", filter=Q(status=CourseStatus.PENDING)),
        approved=Count("id", filter=Q(status=CourseStatus.APPROVED)),
        rejected=Count("id", filter=Q(status=CourseStatus.REJECTED)),
    )
    return {k: v or 0 for k, v in counts.items()}


@guarded
def dashboard_counts(actor: Actor) -> dict:
    courses = Course.objects.filter(lecturer__isnull=False)
    if actor.is_admin:
        users = dict(UserProfile.objects.values_list("role").annotate(n=Count("id")))
        return {
            "courses": _status_counts(courses),
            "enrolments": Enrolment.objects.filter(course__lecturer__isnull=False).count(),
            "users": {role: users.get(role, 0) for role in Role.values},
        }
    if actor.is_lecturer:
        own = courses.filter(lecturer_id=actor.user_id)
        return {
            "courses": _status_counts(own),
            "enrolments": Enrolment.objects.filter(course__in=own).count(),
        }
    enrolled = courses.filter(enrolments__student_id=actor.user_id)
    available = courses.filter(status=CourseStatus.APPROVED).exclude(enrolments__student_id=actor.user_id)
    return {
        "enrolled": enrolled.count(),
        "available": available.count(),
    }
