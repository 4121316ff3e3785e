from django.contrib import admin

from .models import AuditLog, Counter, User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'name', 'role', 'teacher_id', 'is_active')
    list_filter = ('role', 'is_active', 'program', 'semester')
    search_fields = ('email', 'name', 'teacher_id')
    exclude = ('password',)


@admin.register(Counter)
class CounterAdmin(admin.ModelAdmin):
    list_display = ('key', 'seq')


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'action', 'attendance_id', 'performed_by', 'method', 'path')
    list_filter = ('action', 'method', 'created_at')
    search_fields = ('path', 'performed_by__email')
