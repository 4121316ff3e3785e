from django.contrib import admin

from .models import Attendance


@admin.register(Attendance)
class AttendanceAdmin(admin.ModelAdmin):
    list_display = ('date', 'student', 'school_class', 'status', 'is_low_attendance', 'marked_by')
    list_filter = ('status', 'is_low_attendance', 'date')
    search_fields = ('student__email', 'student__name', 'school_class__class_name')
    date_hierarchy = 'date'
