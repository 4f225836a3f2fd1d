"""Serializers for REST API v1.

Read serializers render model instances. Input serializers only parse
request bodies; business validation is left to the core operations so the
API and direct callers get the same errors.
"""
from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import serializers

from accounts.models import AccountStatus, Role
from courses.models import Course
from courses.workflow import status_message

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    name = serializers.SerializerMethodField()
    role = serializers.SerializerMethodField()
    status = serializers.SerializerMethodField()
    created_at = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ("id", "username", "email", "name", "role", "status", "created_at")

    def get_name(self, obj) -> str:
        profile = getattr(obj, "profile", None)
        return profile.display_name if profile else obj.username

    def get_role(self, obj) -> str | None:
        return getattr(getattr(obj, "profile", None), "role", None)

    def get_status(self, obj) -> str | None:
        return getattr(getattr(obj, "profile", None), "status", None)

    def get_created_at(self, obj) -> str | None:
        profile = getattr(obj, "profile", None)
        return profile.created_at.isoformat() if profile else None


class LecturerSerializer(serializers.ModelSerializer):
    name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ("id", "name", "email")

    def get_name(self, obj) -> str:
        profile = getattr(obj, "profile", None)
        return profile.display_name if profile else obj.username


class CourseSerializer(serializers.ModelSerializer):
    lecturer = LecturerSerializer(read_only=True)
    students_enrolled = serializers.SerializerMethodField()
    enrolment_count = serializers.SerializerMethodField()
    status_message = serializers.SerializerMethodField()

    class Meta:
        model = Course
        fields = (
            "id",
            "title",
            "description",
            "category",
            "duration",
            "max_students",
            "lecturer",
            "status",
            "status_message",
            "admin_feedback",
            "students_enrolled",
            "enrolment_count",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields

    def get_students_enrolled(self, obj) -> list[int]:
        # Uses prefetched enrolments when the listing provided them
        rows = sorted(obj.enrolments.all(), key=lambda e: (e.created_at, e.id))
        return [e.student_id for e in rows]

    def get_enrolment_count(self, obj) -> int:
        return len(obj.enrolments.all())

    def get_status_message(self, obj) -> str:
        return status_message(obj.status)


class CourseInputSerializer(serializers.Serializer):
    title = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    description = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    category = serializers.CharField(required=False, allow_blank=True)
    duration = serializers.CharField(required=False, allow_blank=True)
    max_students = serializers.IntegerField(required=False, allow_null=True)
    lecturer = serializers.IntegerField(required=False, help_text="Admins only: owning lecturer id.")


class RejectSerializer(serializers.Serializer):
    feedback = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    skip_feedback = serializers.BooleanField(required=False, default=False)


class EnrolSerializer(serializers.Serializer):
    student = serializers.IntegerField(required=False, help_text="Defaults to the current user.")


class EnrolledStudentSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    email = serializers.CharField(allow_blank=True)


class UserStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=AccountStatus.choices)


class UserRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=Role.choices)
