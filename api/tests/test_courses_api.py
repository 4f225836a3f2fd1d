from __future__ import annotations

import pytest
from rest_framework.test import APIClient

from courses.models import Course, CourseStatus, Enrolment

PASSWORD = "pw-Long-enough-1"


def _client(user) -> APIClient:
    c = APIClient()
    assert c.login(username=user.username, password=PASSWORD)
    return c


@pytest.mark.django_db
def test_schema_and_docs_available():
    c = APIClient()
    assert c.get("/api/schema/").status_code == 200
    assert c.get("/docs/").status_code == 200


@pytest.mark.django_db
@pytest.mark.security
def test_courses_require_authentication():
    r = APIClient().get("/api/v1/courses/")
    assert r.status_code == 403


@pytest.mark.django_db
def test_lecturer_creates_pending_course(lecturer):
    r = _client(lecturer).post(
        "/api/v1/courses/",
        {"title": "Databases", "description": "SQL and more", "max_students": 10},
        format="json",
    )
    assert r.status_code == 201
    body = r.json()
    assert body["status"] == "pending"
    assert body["students_enrolled"] == []
    assert body["lecturer"]["id"] == lecturer.id
    assert body["lecturer"]["name"] == "Lena Lecturer"
    assert "waiting for admin approval" in body["status_message"]


@pytest.mark.django_db
def test_create_course_validation_error_shape(lecturer):
    r = _client(lecturer).post("/api/v1/courses/", {"title": " ", "description": "x"}, format="json")
    assert r.status_code == 400
    assert r.json()["code"] == "invalid"
    assert Course.objects.count() == 0


@pytest.mark.django_db
@pytest.mark.security
def test_students_cannot_create_courses(student):
    r = _client(student).post("/api/v1/courses/", {"title": "T", "description": "D"}, format="json")
    assert r.status_code == 403


@pytest.mark.django_db
def test_admin_creates_on_behalf_of_lecturer(admin_user, lecturer):
    r = _client(admin_user).post(
        "/api/v1/courses/", {"title": "T", "description": "D", "lecturer": lecturer.id}, format="json"
    )
    assert r.status_code == 201
    assert r.json()["lecturer"]["id"] == lecturer.id


@pytest.mark.django_db
def test_list_is_role_gated_and_filterable(student, lecturer, make_course):
    live = make_course("Live Python")
    make_course("Waiting", status=CourseStatus.PENDING)
    r = _client(student).get("/api/v1/courses/")
    assert r.status_code == 200
    assert [c["id"] for c in r.json()["results"]] == [live.id]

    r = _client(lecturer).get("/api/v1/courses/", {"status": "pending"})
    assert [c["title"] for c in r.json()["results"]] == ["Waiting"]

    r = _client(lecturer).get("/api/v1/courses/", {"q": "python"})
    assert [c["id"] for c in r.json()["results"]] == [live.id]

    r = _client(lecturer).get("/api/v1/courses/", {"status": "archived"})
    assert r.status_code == 400


@pytest.mark.django_db
def test_list_pagination(lecturer, make_course):
    for i in range(5):
        make_course(f"C{i}")
    r = _client(lecturer).get("/api/v1/courses/", {"page_size": 2})
    body = r.json()
    assert body["count"] == 5
    assert len(body["results"]) == 2
    assert body["next"]


@pytest.mark.django_db
def test_retrieve_hides_unapproved_course_from_students(student, make_course):
    c = make_course("Hidden", status=CourseStatus.PENDING)
    assert _client(student).get(f"/api/v1/courses/{c.id}/").status_code == 404
    assert _client(student).get("/api/v1/courses/999999/").status_code == 404


@pytest.mark.django_db
def test_partial_update_and_owner_check(lecturer, make_user, make_course):
    c = make_course("Edit me")
    r = _client(lecturer).patch(f"/api/v1/courses/{c.id}/", {"duration": "4 weeks"}, format="json")
    assert r.status_code == 200
    assert r.json()["duration"] == "4 weeks"

    other = make_user("other-l@example.com", role="lecturer")
    r = _client(other).patch(f"/api/v1/courses/{c.id}/", {"title": "Mine now"}, format="json")
    assert r.status_code == 403


@pytest.mark.django_db
def test_review_endpoints(admin_user, lecturer, make_course):
    c = make_course("Review", status=CourseStatus.PENDING)
    admin = _client(admin_user)

    r = admin.post(f"/api/v1/courses/{c.id}/reject/", {"feedback": ""}, format="json")
    assert r.status_code == 400

    r = admin.post(f"/api/v1/courses/{c.id}/reject/", {"feedback": "needs more detail"}, format="json")
    assert r.status_code == 200
    assert r.json()["status"] == "rejected"
    assert r.json()["admin_feedback"] == "needs more detail"

    r = _client(lecturer).post(f"/api/v1/courses/{c.id}/resubmit/")
    assert r.status_code == 200
    assert r.json()["status"] == "pending"

    r = admin.post(f"/api/v1/courses/{c.id}/approve/")
    assert r.json()["status"] == "approved"
    assert r.json()["admin_feedback"] == ""

    r = _client(lecturer).post(f"/api/v1/courses/{c.id}/approve/")
    assert r.status_code == 403

    r = _client(lecturer).post(f"/api/v1/courses/{c.id}/resubmit/")
    assert r.status_code == 409
    assert r.json()["code"] == "invalid_state"


@pytest.mark.django_db
def test_reject_with_explicit_skip(admin_user, make_course):
    c = make_course("Skip", status=CourseStatus.PENDING)
    r = _client(admin_user).post(f"/api/v1/courses/{c.id}/reject/", {"skip_feedback": True}, format="json")
    assert r.status_code == 200
    assert r.json()["admin_feedback"] == ""


@pytest.mark.django_db
def test_enroll_endpoint_statuses(student, make_user, make_course):
    c = make_course("Seats", max_students=1)
    pending = make_course("Later", status=CourseStatus.PENDING)
    client = _client(student)

    r = client.post(f"/api/v1/courses/{c.id}/enroll/")
    assert r.status_code == 201
    assert r.json()["course"]["students_enrolled"] == [student.id]

    r = client.post(f"/api/v1/courses/{c.id}/enroll/")
    assert r.status_code == 200
    assert r.json()["created"] is False
    assert r.json()["detail"] == "Already enrolled."

    other = make_user("late@example.com")
    r = _client(other).post(f"/api/v1/courses/{c.id}/enroll/")
    assert r.status_code == 409
    assert r.json()["code"] == "capacity"

    r = client.post(f"/api/v1/courses/{pending.id}/enroll/")
    assert r.status_code == 409
    assert r.json()["code"] == "invalid_state"

    r = client.post(f"/api/v1/courses/{c.id}/enroll/", {"student": other.id}, format="json")
    assert r.status_code == 403


@pytest.mark.django_db
def test_unenroll_and_students_roster(student, lecturer, make_course):
    c = make_course("Roster")
    Enrolment.objects.create(course=c, student=student)

    r = _client(lecturer).get(f"/api/v1/courses/{c.id}/students/")
    assert r.status_code == 200
    assert r.json() == {
        "count": 1,
        "results": [{"id": student.id, "name": "Sam Student", "email": "student@example.com"}],
    }
    assert _client(student).get(f"/api/v1/courses/{c.id}/students/").status_code == 404

    r = _client(student).post(f"/api/v1/courses/{c.id}/unenroll/")
    assert r.status_code == 200
    assert r.json()["removed"] is True
    assert r.json()["course"]["students_enrolled"] == []


@pytest.mark.django_db
def test_delete_course_is_idempotent(lecturer, make_course):
    c = make_course("Gone")
    client = _client(lecturer)
    assert client.delete(f"/api/v1/courses/{c.id}/").status_code == 204
    assert client.delete(f"/api/v1/courses/{c.id}/").status_code == 204
    assert not Course.objects.filter(pk=c.id).exists()
