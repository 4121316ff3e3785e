from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.db.models import Q

from apps.core.academics.models import (
    SEMESTER_VALIDATORS,
    AcademicBranch,
    AcademicProgram,
    AcademicSession,
)


class UserManager(BaseUserManager):
    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError('Email is required.')
        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields['role'] = User.ROLE_ADMIN
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('name', email.split('@', 1)[0])
        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    ROLE_ADMIN = 'admin'
    ROLE_TEACHER = 'teacher'
    ROLE_STUDENT = 'student'

    ROLE_CHOICES = (
        (ROLE_ADMIN, 'Admin'),
        (ROLE_TEACHER, 'Teacher'),
        (ROLE_STUDENT, 'Student'),
    )

    username = None
    name = models.CharField(max_length=150)
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_STUDENT)
    teacher_id = models.CharField(max_length=20, null=True, blank=True)
    subject = models.CharField(max_length=120, blank=True)

    program = models.ForeignKey(
        AcademicProgram,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='students',
    )
    session = models.ForeignKey(
        AcademicSession,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='students',
    )
    branch = models.ForeignKey(
        AcademicBranch,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='students',
    )
    semester = models.PositiveSmallIntegerField(null=True, blank=True, validators=SEMESTER_VALIDATORS)
    group_label = models.CharField(max_length=10, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    objects = UserManager()

    class Meta:
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(
                fields=['teacher_id'],
                condition=Q(teacher_id__isnull=False),
                name='unique_teacher_id',
            ),
        ]
        indexes = [
            models.Index(fields=['role', 'is_active'], name='user_role_active_idx'),
        ]

    def save(self, *args, **kwargs):
        if self.is_superuser and self.role != self.ROLE_ADMIN:
            self.role = self.ROLE_ADMIN

        if self.role != self.ROLE_TEACHER:
            self.subject = ''
            self.teacher_id = None

        if self.email:
            self.email = self.email.strip().lower()

        super().save(*args, **kwargs)

    @property
    def is_admin(self):
        return self.role == self.ROLE_ADMIN

    @property
    def is_teacher(self):
        return self.role == self.ROLE_TEACHER

    @property
    def is_student(self):
        return self.role == self.ROLE_STUDENT

    def __str__(self):
        return f"{self.email} ({self.role})"


class Counter(models.Model):
    key = models.CharField(max_length=50, unique=True)
    seq = models.PositiveBigIntegerField(default=0)

    def __str__(self):
        return f"{self.key}={self.seq}"


class AuditLog(models.Model):
    ACTION_MARK = 'mark'
    ACTION_BULK_MARK = 'bulk_mark'
    ACTION_UPDATE = 'update'
    ACTION_DELETE = 'delete'

    ACTION_CHOICES = (
        (ACTION_MARK, 'Mark'),
        (ACTION_BULK_MARK, 'Bulk mark'),
        (ACTION_UPDATE, 'Update'),
        (ACTION_DELETE, 'Delete'),
    )

    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    # Plain id so the entry outlives a deleted attendance row.
    attendance_id = models.BigIntegerField(null=True, blank=True)
    performed_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        related_name='audit_entries',
    )
    details = models.JSONField(default=dict, blank=True)

    method = models.CharField(max_length=10, blank=True)
    path = models.CharField(max_length=255, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['performed_by', '-created_at'], name='audit_actor_created_idx'),
            models.Index(fields=['action'], name='audit_action_idx'),
        ]

    def __str__(self):
        return f"{self.action} by {self.performed_by_id or 'system'}"
