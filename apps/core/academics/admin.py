from django.contrib import admin

from .models import AcademicBranch, AcademicProgram, AcademicSession, AcademicSubject, Semester


@admin.register(AcademicProgram)
class AcademicProgramAdmin(admin.ModelAdmin):
    list_display = ('name', 'code', 'is_active', 'created_at')
    list_filter = ('is_active',)
    search_fields = ('name', 'code')


@admin.register(AcademicSession)
class AcademicSessionAdmin(admin.ModelAdmin):
    list_display = ('label', 'program', 'is_active', 'created_at')
    list_filter = ('program', 'is_active')
    search_fields = ('label', 'program__name', 'program__code')


@admin.register(AcademicBranch)
class AcademicBranchAdmin(admin.ModelAdmin):
    list_display = ('name', 'code', 'program', 'session', 'is_active')
    list_filter = ('program', 'session', 'is_active')
    search_fields = ('name', 'code', 'program__name')


@admin.register(AcademicSubject)
class AcademicSubjectAdmin(admin.ModelAdmin):
    list_display = ('name', 'code', 'branch', 'semester', 'is_active')
    list_filter = ('program', 'session', 'branch', 'semester', 'is_active')
    search_fields = ('name', 'code', 'branch__name')


@admin.register(Semester)
class SemesterAdmin(admin.ModelAdmin):
    list_display = ('name', 'start_date', 'end_date')
    search_fields = ('name',)
