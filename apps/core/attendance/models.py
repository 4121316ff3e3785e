from django.conf import settings
from django.db import models

from apps.core.classes.models import SchoolClass


class Attendance(models.Model):
    STATUS_PRESENT = 'Present'
    STATUS_ABSENT = 'Absent'
    STATUS_CHOICES = (
        (STATUS_PRESENT, 'Present'),
        (STATUS_ABSENT, 'Absent'),
    )

    student = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='attendance_records',
    )
    school_class = models.ForeignKey(
        SchoolClass,
        on_delete=models.CASCADE,
        related_name='attendance_records',
    )
    date = models.DateField()
    status = models.CharField(max_length=10, choices=STATUS_CHOICES)
    # Derived from the student's overall percentage; rewritten on every change.
    is_low_attendance = models.BooleanField(default=False)
    marked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='marked_attendance',
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='updated_attendance',
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-date', '-id']
        constraints = [
            models.UniqueConstraint(
                fields=['student', 'school_class', 'date'],
                name='unique_attendance_per_student_class_date',
            ),
        ]
        indexes = [
            models.Index(fields=['school_class', 'date'], name='attendance_class_date_idx'),
            models.Index(fields=['student', 'status'], name='attendance_student_status_idx'),
        ]

    def __str__(self):
        return f"{self.student_id} - {self.school_class_id} - {self.date} - {self.status}"
