from django.conf import settings
from django.db import models
from django.db.models import Q

from apps.core.academics.models import (
    SEMESTER_VALIDATORS,
    AcademicBranch,
    AcademicProgram,
    AcademicSession,
    AcademicSubject,
    Semester,
)


class SchoolClass(models.Model):
    class_name = models.CharField(max_length=200)
    subject = models.CharField(max_length=120)
    teacher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='classes',
    )
    semester = models.ForeignKey(
        Semester,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='classes',
    )

    # Academic scope; unset for classes created without an allocation scope.
    program = models.ForeignKey(
        AcademicProgram,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='classes',
    )
    session = models.ForeignKey(
        AcademicSession,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='classes',
    )
    branch = models.ForeignKey(
        AcademicBranch,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='classes',
    )
    subject_ref = models.ForeignKey(
        AcademicSubject,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='classes',
    )
    academic_semester = models.PositiveSmallIntegerField(null=True, blank=True, validators=SEMESTER_VALIDATORS)
    group_label = models.CharField(max_length=10, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['class_name', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['program', 'session', 'branch', 'subject_ref', 'academic_semester', 'group_label'],
                condition=Q(program__isnull=False),
                name='unique_class_academic_scope',
            ),
        ]
        indexes = [
            models.Index(fields=['teacher'], name='class_teacher_idx'),
        ]

    @property
    def has_academic_scope(self):
        return self.program_id is not None

    def __str__(self):
        return self.class_name


class ClassTeacherOverride(models.Model):
    school_class = models.ForeignKey(
        SchoolClass,
        on_delete=models.CASCADE,
        related_name='teacher_overrides',
    )
    teacher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='class_overrides',
    )
    date = models.DateField()
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='assigned_class_overrides',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-date', '-id']
        constraints = [
            models.UniqueConstraint(fields=['school_class', 'date'], name='unique_class_override_date'),
        ]
        indexes = [
            models.Index(fields=['teacher', 'date'], name='override_teacher_date_idx'),
        ]

    def __str__(self):
        return f"{self.school_class} -> {self.teacher} on {self.date}"
