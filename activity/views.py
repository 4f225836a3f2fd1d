from __future__ import annotations

from rest_framework.decorators import api_view
from rest_framework.response import Response

from .models import Notification


@api_view(["GET"])
def notifications_recent(request):
    """Return recent notifications and unread count for the current user."""
    try:
        limit = int(request.query_params.get("limit", 10))
    except (TypeError, ValueError):
        limit = 10
    limit = max(1, min(limit, 100))
    qs = Notification.objects.filter(user=request.user).order_by("-created_at", "-id")
    unread = qs.filter(read=False).count()
    data = [
        {
            "id": n.id,
            "type": n.type,
            "course": n.course_id,
            "message": n.message,
            "created_at": n.created_at.isoformat(),
            "read": n.read,
        }
        for n in qs[:limit]
    ]
    return Response({"unread": unread, "results": data})


@api_view(["POST"])
def notifications_mark_all_read(request):
    updated = Notification.objects.filter(user=request.user, read=False).update(read=True)
    return Response({"updated": updated})
