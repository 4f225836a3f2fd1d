from django.apps import AppConfig


class CoursesConfig(AppConfig):
    """App configuration for courses, approval and enrolments."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "courses"

    def ready(self) -> None:  # pragma: no cover (import-time hook)
        # Broadcast course changes to WebSocket subscribers.
        from . import signals  # noqa: F401
        return super().ready()
