"""Course change signals and push broadcast to WebSocket subscribers.

Every saved or deleted course is announced on the `courses` channel group
once the surrounding transaction commits. Subscribers filter the events
themselves (see `courses.consumers`).
"""
from __future__ import annotations

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.db.models.signals import post_delete, post_save
from django.dispatch import Signal, receiver

from .models import Course

logger = logging.getLogger(__name__)

COURSE_GROUP = "courses"

# Sent after an approval workflow transition commits.
# kwargs: course, actor_id, previous
course_reviewed = Signal()

# Sent after a roster change commits. kwargs: course, student_id, actor_id, added
enrolment_changed = Signal()


def course_payload(course: Course, *, deleted: bool = False, previous_status: str | None = None) -> dict:
    """Event body; `previous_status` lets subscribers notice a course leaving their view."""
    data = {
        "id": course.id,
        "title": course.title,
        "status": course.status,
        "previous_status": previous_status,
        "lecturer_id": course.lecturer_id,
        "updated_at": course.updated_at.isoformat() if course.updated_at else None,
    }
    if not deleted:
        data["admin_feedback"] = course.admin_feedback
        data["max_students"] = course.max_students
        data["students_enrolled"] = course.students_enrolled
    return data


def broadcast_course_event(event: str, payload: dict) -> None:
    """Push one course event to the group; failures are logged, never raised."""
    layer = get_channel_layer()
    if layer is None:
        return
    try:
        async_to_sync(layer.group_send)(
            COURSE_GROUP,
            {"type": "course.event", "event": event, "course": payload},
        )
    except Exception:
        logger.exception("Failed to broadcast %s for course %s", event, payload.get("id"))


@receiver(post_save, sender=Course)
def announce_course_saved(sender, instance: Course, created: bool, **kwargs):
    event = "created" if created else "updated"
    previous = None if created else getattr(instance, "_loaded_status", None)
    payload = course_payload(instance, previous_status=previous)
    instance._loaded_status = instance.status
    transaction.on_commit(lambda: broadcast_course_event(event, payload))


@receiver(post_delete, sender=Course)
def announce_course_deleted(sender, instance: Course, **kwargs):
    payload = course_payload(instance, deleted=True, previous_status=getattr(instance, "_loaded_status", None))
    transaction.on_commit(lambda: broadcast_course_event("deleted", payload))
