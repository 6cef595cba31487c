from django.contrib import admin, messages
from django.db.models import Count
from django.urls import reverse
from django.utils.html import format_html

from .models import AttendanceRecord, Student


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ("roll_no", "name", "is_active", "record_count", "created_at", "history_button")
    list_filter = ("is_active",)
    search_fields = ("roll_no", "name")
    readonly_fields = ("id", "created_at")
    actions = ["deactivate_selected"]

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(_record_count=Count("attendance_records"))

    @admin.display(description="Records", ordering="_record_count")
    def record_count(self, obj):
        return obj._record_count

    @admin.display(description="History")
    def history_button(self, obj):
        url = reverse('attendance:student_history', args=[obj.pk])
        return format_html('<a class="button" href="{}" target="_blank">History</a>', url)

    @admin.action(description="Deactivate selected students (keeps attendance history)")
    def deactivate_selected(self, request, queryset):
        updated = queryset.filter(is_active=True).update(is_active=False)
        self.message_user(request, f"Deactivated {updated} student(s).", messages.SUCCESS)

    def has_delete_permission(self, request, obj=None):
        # Students are soft-deleted; only superusers may remove rows outright
        return request.user.is_superuser


@admin.register(AttendanceRecord)
class AttendanceRecordAdmin(admin.ModelAdmin):
    list_display = ("student", "date", "status", "leave_form_submitted", "updated_at")
    list_filter = ("date", "status", "leave_form_submitted", "student__is_active")
    search_fields = ("student__roll_no", "student__name")
    readonly_fields = ("id", "created_at", "updated_at")
    autocomplete_fields = ("student",)
    date_hierarchy = "date"
