"""Courses and enrolments models.

Defines a `Course` owned by a lecturer and moving through the approval
workflow, and an `Enrolment` linking students to courses. The set of
enrolled students is the course's enrolments; uniqueness is enforced by
the database.
"""
from __future__ import annotations

from django.conf import settings
from django.db import models


class CourseStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class Course(models.Model):
    """A course authored by a lecturer and reviewed by an admin.

    `lecturer` is nulled rather than cascaded so a course whose removal
    failed during a lecturer cascade stays orphaned and hidden.
    `max_students` of NULL means unbounded.
    """

    lecturer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="owned_courses",
    )
    title = models.CharField(max_length=200)
    description = models.TextField()
    category = models.CharField(max_length=100, blank=True)
    duration = models.CharField(max_length=100, blank=True)
    max_students = models.PositiveIntegerField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=CourseStatus.choices, default=CourseStatus.PENDING, db_index=True)
    admin_feedback = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    EDITABLE_FIELDS = ("title", "description", "category", "duration", "max_students")

    class Meta:
        ordering = ["-created_at", "id"]

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        # Status as last read, so a save can announce what it changed from
        instance._loaded_status = instance.__dict__.get("status")
        return instance

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.title}"

    def is_owner(self, user_id: int | None) -> bool:
        return bool(user_id is not None and self.lecturer_id == user_id)

    @property
    def students_enrolled(self) -> list[int]:
        """Enrolled student ids in enrolment order."""
        return list(self.enrolments.order_by("created_at", "id").values_list("student_id", flat=True))

    @property
    def enrolment_count(self) -> int:
        return self.enrolments.count()

    @property
    def is_full(self) -> bool:
        return self.max_students is not None and self.enrolment_count >= self.max_students


class Enrolment(models.Model):
    """Link a student to a course; one row per (course, student)."""

    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="enrolments")
    student = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="enrolments")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["course", "student"], name="unique_course_student"),
        ]
        ordering = ["course_id", "created_at", "id"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.student_id}->{self.course_id}"
