"""URL routing for Coursedesk.

Admin site, the notification endpoints, and the REST API with its schema
and docs. WebSocket routes are declared in `courses.routing`.
"""
from django.contrib import admin
from django.urls import include, path


urlpatterns = [
    path("admin/", admin.site.urls),
    path("activity/", include("activity.urls")),
    # REST API, schema and docs
    path("", include("api.urls")),
]
