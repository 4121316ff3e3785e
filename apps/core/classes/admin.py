from django.contrib import admin

from .models import ClassTeacherOverride, SchoolClass


@admin.register(SchoolClass)
class SchoolClassAdmin(admin.ModelAdmin):
    list_display = ('class_name', 'subject', 'teacher', 'academic_semester', 'group_label', 'updated_at')
    list_filter = ('program', 'session', 'branch', 'academic_semester')
    search_fields = ('class_name', 'subject', 'teacher__email', 'teacher__name')


@admin.register(ClassTeacherOverride)
class ClassTeacherOverrideAdmin(admin.ModelAdmin):
    list_display = ('school_class', 'teacher', 'date', 'assigned_by')
    list_filter = ('date',)
    search_fields = ('school_class__class_name', 'teacher__email')
