from __future__ import annotations

from django.urls import re_path
from .consumers import CourseFeedConsumer


websocket_urlpatterns = [
    re_path(r"^ws/courses/$", CourseFeedConsumer.as_asgi()),
]
