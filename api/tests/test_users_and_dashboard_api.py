from __future__ import annotations

import pytest
from django.contrib.auth.models import User
from django.db import OperationalError
from django.db.models.query import QuerySet
from rest_framework.test import APIClient

from api import views
from config import store
from courses import registry
from courses.models import Course, CourseStatus, Enrolment

PASSWORD = "pw-Long-enough-1"


def _client(user) -> APIClient:
    c = APIClient()
    assert c.login(username=user.username, password=PASSWORD)
    return c


@pytest.mark.django_db
@pytest.mark.security
def test_user_endpoints_are_admin_only(student, lecturer):
    assert _client(student).get("/api/v1/users/").status_code == 403
    assert _client(lecturer).get(f"/api/v1/users/{student.id}/").status_code == 403


@pytest.mark.django_db
def test_list_users_by_role_and_search(admin_user, lecturer, student, make_user):
    make_user("second-l@example.com", role="lecturer", name="Bo Brown")
    client = _client(admin_user)

    r = client.get("/api/v1/users/", {"role": "lecturer"})
    assert r.status_code == 200
    assert [u["username"] for u in r.json()["results"]] == ["lecturer@example.com", "second-l@example.com"]

    r = client.get("/api/v1/users/", {"q": "brown"})
    assert [u["name"] for u in r.json()["results"]] == ["Bo Brown"]

    r = client.get("/api/v1/users/", {"role": "moderator"})
    assert r.status_code == 400


@pytest.mark.django_db
def test_retrieve_user_shape(admin_user, student):
    r = _client(admin_user).get(f"/api/v1/users/{student.id}/")
    assert r.status_code == 200
    body = r.json()
    assert body["email"] == "student@example.com"
    assert body["role"] == "student"
    assert body["status"] == "active"
    assert body["created_at"]
    assert _client(admin_user).get("/api/v1/users/999999/").status_code == 404


@pytest.mark.django_db
def test_suspend_and_reactivate(admin_user, student):
    client = _client(admin_user)
    r = client.post(f"/api/v1/users/{student.id}/status/", {"status": "suspended"}, format="json")
    assert r.status_code == 200
    assert r.json()["status"] == "suspended"
    assert User.objects.get(pk=student.id).is_active is False
    # A suspended account can no longer sign in
    assert not APIClient().login(username=student.username, password=PASSWORD)

    r = client.post(f"/api/v1/users/{student.id}/status/", {"status": "active"}, format="json")
    assert r.json()["status"] == "active"

    r = client.post(f"/api/v1/users/{admin_user.id}/status/", {"status": "suspended"}, format="json")
    assert r.status_code == 400


@pytest.mark.django_db
def test_change_role(admin_user, student, lecturer, make_course):
    client = _client(admin_user)
    r = client.post(f"/api/v1/users/{student.id}/role/", {"role": "lecturer"}, format="json")
    assert r.status_code == 200
    assert r.json()["role"] == "lecturer"

    make_course("Still mine")
    r = client.post(f"/api/v1/users/{lecturer.id}/role/", {"role": "student"}, format="json")
    assert r.status_code == 409

    r = client.post(f"/api/v1/users/{student.id}/role/", {"role": "superuser"}, format="json")
    assert r.status_code == 400


@pytest.mark.django_db
def test_delete_user_returns_cascade_report(admin_user, student, make_course):
    c1, c2 = make_course("A"), make_course("B")
    Enrolment.objects.create(course=c1, student=student)
    Enrolment.objects.create(course=c2, student=student)
    r = _client(admin_user).delete(f"/api/v1/users/{student.id}/")
    assert r.status_code == 200
    body = r.json()
    assert sorted(body["succeeded"]) == sorted([c1.id, c2.id])
    assert body["failed"] == []
    assert not User.objects.filter(pk=student.id).exists()

    r = _client(admin_user).delete(f"/api/v1/users/{student.id}/")
    assert r.status_code == 200
    assert r.json()["succeeded"] == []


@pytest.mark.django_db
def test_dashboard_counts_per_role(admin_user, lecturer, student, make_course):
    live = make_course("Live")
    make_course("Pending", status=CourseStatus.PENDING)
    make_course("Rejected", status=CourseStatus.REJECTED)
    Enrolment.objects.create(course=live, student=student)

    body = _client(admin_user).get("/api/v1/dashboard/").json()
    assert body["role"] == "admin"
    assert body["courses"] == {"total": 3, "pending": 1, "approved": 1, "rejected": 1}
    assert body["enrolments"] == 1
    assert body["users"] == {"student": 1, "lecturer": 1, "admin": 1}

    body = _client(lecturer).get("/api/v1/dashboard/").json()
    assert body["courses"]["total"] == 3
    assert body["enrolments"] == 1

    body = _client(student).get("/api/v1/dashboard/").json()
    assert body == {"role": "student", "enrolled": 1, "available": 0}


@pytest.mark.django_db
def test_store_outage_surfaces_as_503_after_retries(lecturer, make_course, monkeypatch, settings):
    settings.COURSEDESK_STORE_RETRIES = 2
    settings.COURSEDESK_STORE_BACKOFF = 0
    make_course("Any")
    calls = []

    def broken(*args, **kwargs):
        calls.append(1)
        raise OperationalError("unable to open database file")

    monkeypatch.setattr(store.time, "sleep", lambda s: None)
    monkeypatch.setattr(registry.Course.objects, "select_related", broken)
    r = _client(lecturer).get("/api/v1/courses/")
    assert r.status_code == 503
    assert r.json()["code"] == "unavailable"
    assert len(calls) == 2
    assert Course.objects.count() == 1


@pytest.fixture
def counting_breaks(monkeypatch, settings):
    """Make every queryset count fail the way a locked SQLite file does."""
    settings.COURSEDESK_STORE_RETRIES = 3
    settings.COURSEDESK_STORE_BACKOFF = 0
    monkeypatch.setattr(store.time, "sleep", lambda s: None)
    calls = []

    def broken(self):
        calls.append(1)
        raise OperationalError("database is locked")

    monkeypatch.setattr(QuerySet, "count", broken)
    return calls


@pytest.mark.django_db
def test_course_listing_outage_while_paginating_is_503(lecturer, make_course, counting_breaks):
    make_course("Any")
    client = _client(lecturer)
    r = client.get("/api/v1/courses/")
    assert r.status_code == 503
    assert r.json() == {"detail": "Service temporarily unavailable. Please retry.", "code": "unavailable"}
    # The page read is retried as a whole
    assert len(counting_breaks) == 3


@pytest.mark.django_db
def test_user_listing_outage_while_paginating_is_503(admin_user, student, counting_breaks):
    client = _client(admin_user)
    for params in ({}, {"role": "student"}):
        r = client.get("/api/v1/users/", params)
        assert r.status_code == 503
        assert r.json()["code"] == "unavailable"


@pytest.mark.django_db
def test_raw_store_error_escaping_a_view_is_503(student, monkeypatch, caplog):
    def broken(actor):
        raise OperationalError("server closed the connection unexpectedly")

    monkeypatch.setattr(views, "dashboard_counts", broken)
    client = _client(student)
    with caplog.at_level("WARNING", logger="api.exceptions"):
        r = client.get("/api/v1/dashboard/")
    assert r.status_code == 503
    assert r.json()["code"] == "unavailable"
    assert any("Unguarded store failure" in rec.getMessage() for rec in caplog.records)
