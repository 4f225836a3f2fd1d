from __future__ import annotations

from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.contrib.auth.models import AnonymousUser
from django.core.exceptions import PermissionDenied

from accounts.identity import Actor
from .models import CourseStatus
from .signals import COURSE_GROUP

# A viewer losing sight of a course only learns which course and why
REMOVED_FIELDS = ("id", "title", "status", "previous_status", "updated_at")


@database_sync_to_async
def _resolve_actor(user) -> Actor | None:
    if not user or isinstance(user, AnonymousUser):
        return None
    try:
        actor = Actor.from_user(user)
    except PermissionDenied:
        return None
    return actor if actor.is_active else None


class CourseFeedConsumer(AsyncJsonWebsocketConsumer):
    """Push subscription to course changes.

    One connection is one subscription; closing it cancels. Optional query
    parameters narrow it: `status=<pending|approved|rejected>` and
    `course=<id>`. Events are filtered with the same role-gated visibility
    as the course listing; a course leaving the subscription's view is
    announced once as a `removed` event.
    """

    async def connect(self):
        self.actor = await _resolve_actor(self.scope.get("user"))
        if self.actor is None:
            await self.close(code=4001)
            return
        params = parse_qs((self.scope.get("query_string") or b"").decode())
        self.status_filter = (params.get("status") or [None])[0]
        course = (params.get("course") or [None])[0]
        if self.status_filter and self.status_filter not in CourseStatus.values:
            await self.close(code=4002)
            return
        try:
            self.course_filter = int(course) if course else None
        except ValueError:
            await self.close(code=4002)
            return
        self.subscribed = True
        await self.channel_layer.group_add(COURSE_GROUP, self.channel_name)
        await self.accept()

    def _visible(self, course: dict, status: str | None = None) -> bool:
        if self.actor.is_admin:
            return True
        if self.actor.is_lecturer and course.get("lecturer_id") == self.actor.user_id:
            return True
        status = course.get("status") if status is None else status
        return status == CourseStatus.APPROVED and course.get("lecturer_id") is not None

    def _matches(self, course: dict, status: str | None) -> bool:
        if self.status_filter and status != self.status_filter:
            return False
        return self._visible(course, status)

    def route(self, event: str, course: dict) -> str | None:
        """Name of the event this subscriber gets, or None to skip it.

        A course that matched before the change but no longer does is sent
        as "removed" so the viewer can drop it.
        """
        if self.course_filter is not None and course.get("id") != self.course_filter:
            return None
        if event == "deleted":
            # Viewers only know the last visible state; tell them it is gone.
            return event if self._visible(course) or self.course_filter is not None else None
        if self._matches(course, course.get("status")):
            return event
        previous = course.get("previous_status")
        if event == "updated" and previous and self._matches(course, previous):
            return "removed"
        return None

    async def course_event(self, event):
        course = event.get("course") or {}
        name = self.route(event.get("event", ""), course)
        if name == "removed":
            course = {key: course.get(key) for key in REMOVED_FIELDS}
        if name:
            await self.send_json({"event": name, "course": course})

    async def disconnect(self, code):
        if getattr(self, "subscribed", False):
            await self.channel_layer.group_discard(COURSE_GROUP, self.channel_name)
