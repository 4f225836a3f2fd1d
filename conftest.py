import logging
import pytest

from django.core.cache import cache


@pytest.fixture(autouse=True)
def silence_django_request_logger():
    """Reduce noise from expected 4xx in passing tests.

    Many tests intentionally exercise 400/403/409 paths to validate role
    gating and input handling. Django logs these at WARNING via
    'django.request'. Lower that logger to ERROR during tests to avoid
    clutter.
    """
    logger = logging.getLogger("django.request")
    old = logger.level
    logger.setLevel(logging.ERROR)
    try:
        yield
    finally:
        logger.setLevel(old)


@pytest.fixture(autouse=True)
def reset_throttle_cache():
    # Throttle counters live in the default cache and user ids repeat across tests
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    """Create a user with a role through the directory."""
    from accounts.directory import create_user

    def _make(email: str, role: str = "student", name: str = "", password: str | None = "pw-Long-enough-1"):
        return create_user(email, name=name, role=role, password=password)

    return _make


@pytest.fixture
def admin_user(make_user):
    return make_user("admin@example.com", role="admin", name="Ada Admin")


@pytest.fixture
def lecturer(make_user):
    return make_user("lecturer@example.com", role="lecturer", name="Lena Lecturer")


@pytest.fixture
def student(make_user):
    return make_user("student@example.com", role="student", name="Sam Student")


@pytest.fixture
def actor_of():
    from accounts.identity import Actor

    def _actor(user):
        user.refresh_from_db()
        user.profile.refresh_from_db()
        return Actor.from_user(user)

    return _actor


@pytest.fixture
def admin(admin_user, actor_of):
    return actor_of(admin_user)


@pytest.fixture
def lecturer_actor(lecturer, actor_of):
    return actor_of(lecturer)


@pytest.fixture
def student_actor(student, actor_of):
    return actor_of(student)


@pytest.fixture
def make_course(lecturer):
    """Create a course directly in the given status (bypassing the workflow)."""
    from courses.models import Course

    def _make(title: str = "Intro to Testing", *, owner=None, status: str = "approved", **fields):
        fields.setdefault("description", f"{title} description")
        return Course.objects.create(lecturer=owner or lecturer, title=title, status=status, **fields)

    return _make
