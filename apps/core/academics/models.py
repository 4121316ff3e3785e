from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q

from apps.core.utils.managers import ActiveManager


SEMESTER_VALIDATORS = [MinValueValidator(1), MaxValueValidator(8)]


class AcademicProgram(models.Model):
    name = models.CharField(max_length=120)  # e.g. Bachelor of Technology
    code = models.CharField(max_length=20, blank=True)  # e.g. BTECH
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ActiveManager()

    class Meta:
        ordering = ['name', 'id']
        indexes = [
            models.Index(fields=['is_active', 'name'], name='acad_program_active_name_idx'),
        ]

    def __str__(self):
        return self.code or self.name


class AcademicSession(models.Model):
    program = models.ForeignKey(
        AcademicProgram,
        on_delete=models.CASCADE,
        related_name='sessions',
    )
    label = models.CharField(max_length=40)  # e.g. 2024-28
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ActiveManager()

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['program', 'is_active'], name='acad_session_program_idx'),
        ]

    def __str__(self):
        return f"{self.program} - {self.label}"


class AcademicBranch(models.Model):
    program = models.ForeignKey(
        AcademicProgram,
        on_delete=models.CASCADE,
        related_name='branches',
    )
    session = models.ForeignKey(
        AcademicSession,
        on_delete=models.CASCADE,
        related_name='branches',
    )
    name = models.CharField(max_length=120)
    code = models.CharField(max_length=20, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ActiveManager()

    class Meta:
        ordering = ['name', 'id']
        indexes = [
            models.Index(fields=['program', 'session', 'is_active'], name='acad_branch_scope_idx'),
        ]

    def clean(self):
        super().clean()
        if self.session_id and self.program_id and self.session.program_id != self.program_id:
            raise ValidationError({'session': 'Session must belong to the selected program.'})

    def __str__(self):
        return self.code or self.name


class AcademicSubject(models.Model):
    program = models.ForeignKey(
        AcademicProgram,
        on_delete=models.CASCADE,
        related_name='subjects',
    )
    session = models.ForeignKey(
        AcademicSession,
        on_delete=models.CASCADE,
        related_name='subjects',
    )
    branch = models.ForeignKey(
        AcademicBranch,
        on_delete=models.CASCADE,
        related_name='subjects',
    )
    semester = models.PositiveSmallIntegerField(validators=SEMESTER_VALIDATORS)
    name = models.CharField(max_length=120)
    code = models.CharField(max_length=20, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ActiveManager()

    class Meta:
        ordering = ['name', 'id']
        constraints = [
            models.CheckConstraint(
                condition=Q(semester__gte=1) & Q(semester__lte=8),
                name='academic_subject_semester_range',
            ),
        ]
        indexes = [
            models.Index(fields=['branch', 'semester', 'is_active'], name='acad_subject_scope_idx'),
        ]

    def clean(self):
        super().clean()
        if self.branch_id:
            if self.branch.program_id != self.program_id or self.branch.session_id != self.session_id:
                raise ValidationError({'branch': 'Branch must belong to the selected program/session.'})

    def __str__(self):
        return f"{self.name} (Sem {self.semester})"


class Semester(models.Model):
    name = models.CharField(max_length=60)
    start_date = models.DateField()
    end_date = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['start_date', 'id']
        constraints = [
            models.CheckConstraint(
                condition=Q(end_date__gte=F('start_date')),
                name='semester_end_not_before_start',
            ),
        ]

    def __str__(self):
        return self.name
