from django.contrib import admin

from .models import Course, Enrolment


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ("title", "lecturer", "status", "max_students", "created_at", "updated_at")
    list_filter = ("status", "category")
    search_fields = ("title", "description", "category", "lecturer__username", "lecturer__profile__full_name")


@admin.register(Enrolment)
class EnrolmentAdmin(admin.ModelAdmin):
    list_display = ("course", "student", "created_at")
    search_fields = ("course__title", "student__username")
