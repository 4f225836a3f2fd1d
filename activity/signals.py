from __future__ import annotations

from django.contrib.auth.models import User
from django.dispatch import receiver

from courses.models import Course, CourseStatus
from courses.signals import course_reviewed, enrolment_changed
from courses.workflow import status_message
from .models import Notification


def _truncate(text: str, limit: int = 200) -> str:
    return text if len(text) <= limit else text[: limit - 1] + "…"


@receiver(course_reviewed, sender=Course)
def notify_review(sender, course: Course, actor_id: int | None, previous: str, **kwargs):
    # Tell the lecturer how the review went
    if not course.lecturer_id or course.status == previous:
        return
    if course.status == CourseStatus.REJECTED and course.admin_feedback:
        message = f"{course.title} was rejected: {course.admin_feedback}"
    elif course.status == CourseStatus.PENDING:
        return
    else:
        message = f"{course.title}: {status_message(course.status)}"
    Notification.objects.create(
        user_id=course.lecturer_id,
        actor_id=actor_id,
        type=Notification.TYPE_REVIEW,
        course=course,
        message=_truncate(message),
    )


@receiver(enrolment_changed, sender=Course)
def notify_enrolment(sender, course: Course, student_id: int, actor_id: int | None, added: bool, **kwargs):
    if not added or not course.lecturer_id:
        return
    # Notify lecturer (course owner) about the new enrolment
    student = User.objects.select_related("profile").filter(pk=student_id).first()
    name = student.profile.display_name if student and hasattr(student, "profile") else "Unknown"
    Notification.objects.create(
        user_id=course.lecturer_id,
        actor_id=actor_id,
        type=Notification.TYPE_ENROLMENT,
        course=course,
        message=_truncate(f"New enrolment: {name} in {course.title}"),
    )
