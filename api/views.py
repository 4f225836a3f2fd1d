"""REST API v1 viewsets and endpoints.

Each mutating endpoint is a thin wrapper over one core operation, called
through `with_retries` so transient store failures are retried a bounded
number of times before surfacing as 503.
"""
from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import status, viewsets
from rest_framework.decorators import action, api_view
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts import directory
from accounts.identity import Actor
from config.exceptions import NotFoundError, ValidationError
from config.store import store_guard, with_retries
from courses import enrolment, registry, workflow
from courses.dashboard import dashboard_counts
from courses.registry import CourseFilter
from .filters import UserFilter
from .permissions import IsAdmin, IsLecturerOrAdmin
from .serializers import (
    CourseInputSerializer,
    CourseSerializer,
    EnrolSerializer,
    EnrolledStudentSerializer,
    RejectSerializer,
    UserRoleSerializer,
    UserSerializer,
    UserStatusSerializer,
)

User = get_user_model()


def _actor(request) -> Actor:
    return Actor.from_user(request.user)


def _pk(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise NotFoundError(f"Invalid id: {value}")


def _int_param(request, name: str) -> int | None:
    raw = request.query_params.get(name)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer.")


class GuardedListMixin:
    """Read one page of a lazy listing inside the store guard.

    Listings are built lazily and only hit the store when paginated, so the
    guard and the retries wrap the page read, not the queryset construction.
    """

    def read_page(self, build):
        def read():
            with store_guard():
                qs = build()
                page = self.paginate_queryset(qs)
                return (list(qs), False) if page is None else (page, True)

        return with_retries(read)

    def listing_response(self, build, serializer_class) -> Response:
        rows, paged = self.read_page(build)
        data = serializer_class(rows, many=True).data
        return self.get_paginated_response(data) if paged else Response(data)


class CourseViewSet(GuardedListMixin, viewsets.GenericViewSet):
    serializer_class = CourseSerializer

    def get_permissions(self):
        if self.action == "create":
            return [IsAuthenticated(), IsLecturerOrAdmin()]
        return super().get_permissions()

    def _course_response(self, course, *, code=status.HTTP_200_OK) -> Response:
        # Re-read so nested lecturer and roster reflect the committed state
        course = registry.get_course(course.id)
        return Response(CourseSerializer(course).data, status=code)

    def list(self, request):
        filters = CourseFilter(
            status=request.query_params.get("status") or None,
            q=request.query_params.get("q") or None,
            lecturer_id=_int_param(request, "lecturer"),
            student_id=_int_param(request, "student"),
        )
        actor = _actor(request)
        return self.listing_response(lambda: registry.list_courses(filters, actor=actor), CourseSerializer)

    def retrieve(self, request, pk=None):
        actor = _actor(request)
        course = with_retries(registry.get_course, _pk(pk))
        if not registry.can_view(actor, course):
            raise NotFoundError(f"Course {pk} not found.")
        return Response(CourseSerializer(course).data)

    def create(self, request):
        actor = _actor(request)
        payload = CourseInputSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        fields = dict(payload.validated_data)
        lecturer_id = fields.pop("lecturer", None)
        if lecturer_id is None:
            lecturer_id = actor.user_id
        course = with_retries(registry.create_course, actor, lecturer_id, fields)
        return self._course_response(course, code=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        payload = CourseInputSerializer(data=request.data, partial=True)
        payload.is_valid(raise_exception=True)
        fields = dict(payload.validated_data)
        if "lecturer" in fields:
            raise ValidationError("The owning lecturer cannot be changed.")
        course = with_retries(registry.update_course_content, _actor(request), _pk(pk), fields)
        return self._course_response(course)

    def destroy(self, request, pk=None):
        with_retries(registry.delete_course, _actor(request), _pk(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def approve(self, request, pk=None):
        course = with_retries(workflow.approve, _actor(request), _pk(pk))
        return self._course_response(course)

    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        payload = RejectSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        course = with_retries(
            workflow.reject,
            _actor(request),
            _pk(pk),
            payload.validated_data.get("feedback"),
            skip_feedback=payload.validated_data.get("skip_feedback", False),
        )
        return self._course_response(course)

    @action(detail=True, methods=["post"])
    def resubmit(self, request, pk=None):
        course = with_retries(workflow.resubmit, _actor(request), _pk(pk))
        return self._course_response(course)

    @action(detail=True, methods=["post"])
    def enroll(self, request, pk=None):
        actor = _actor(request)
        payload = EnrolSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        student_id = payload.validated_data.get("student", actor.user_id)
        result = with_retries(enrolment.enroll, actor, _pk(pk), student_id)
        course = registry.get_course(result.course.id)
        data = {"course": CourseSerializer(course).data, "created": result.created}
        if not result.created:
            data["detail"] = "Already enrolled."
        return Response(data, status=status.HTTP_201_CREATED if result.created else status.HTTP_200_OK)

    @action(detail=True, methods=["post"])
    def unenroll(self, request, pk=None):
        actor = _actor(request)
        payload = EnrolSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        student_id = payload.validated_data.get("student", actor.user_id)
        removed = with_retries(enrolment.unenroll, actor, _pk(pk), student_id)
        course = registry.get_course(_pk(pk))
        return Response({"course": CourseSerializer(course).data, "removed": removed})

    @action(detail=True, methods=["get"])
    def students(self, request, pk=None):
        actor = _actor(request)
        course = with_retries(registry.get_course, _pk(pk))
        if not (actor.is_admin or (actor.is_lecturer and course.is_owner(actor.user_id))):
            raise NotFoundError(f"Course {pk} not found.")
        roster = with_retries(enrolment.list_enrolled, course.id)
        return Response({"count": len(roster), "results": EnrolledStudentSerializer(roster, many=True).data})


class UserViewSet(GuardedListMixin, viewsets.GenericViewSet):
    serializer_class = UserSerializer
    permission_classes = [IsAdmin]
    filterset_class = UserFilter

    def get_queryset(self):
        role = self.request.query_params.get("role")
        if role:
            return directory.list_users_by_role(role)
        return User.objects.select_related("profile").order_by("username", "id")

    def list(self, request):
        return self.listing_response(lambda: self.filter_queryset(self.get_queryset()), UserSerializer)

    def retrieve(self, request, pk=None):
        user = with_retries(directory.get_user, _pk(pk))
        return Response(UserSerializer(user).data)

    def destroy(self, request, pk=None):
        report = with_retries(directory.delete_user, _actor(request), _pk(pk))
        return Response(report.as_dict(), status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="status")
    def set_status(self, request, pk=None):
        payload = UserStatusSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        user = with_retries(directory.set_user_status, _actor(request), _pk(pk), payload.validated_data["status"])
        return Response(UserSerializer(user).data)

    @action(detail=True, methods=["post"], url_path="role")
    def set_role(self, request, pk=None):
        payload = UserRoleSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        user = with_retries(directory.set_user_role, _actor(request), _pk(pk), payload.validated_data["role"])
        return Response(UserSerializer(user).data)


@api_view(["GET"])
def dashboard(request):
    """Counters for the current user's dashboard (shape depends on role)."""
    actor = _actor(request)
    return Response({"role": actor.role, **with_retries(dashboard_counts, actor)})
