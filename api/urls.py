"""API routes for Coursedesk.

Versioned REST endpoints live under /api/v1/; the OpenAPI schema and the
interactive documentation are served alongside them.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularSwaggerView,
    SpectacularRedocView,
)


from .views import (
    UserViewSet,
    CourseViewSet,
    dashboard,
)

router = DefaultRouter()
router.register(r"api/v1/users", UserViewSet, basename="users")
router.register(r"api/v1/courses", CourseViewSet, basename="courses")

urlpatterns = [
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("redoc/", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("api/v1/dashboard/", dashboard, name="dashboard"),
    path("", include(router.urls)),
]
