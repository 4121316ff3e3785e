from __future__ import annotations

from datetime import date

from django.db import transaction

from apps.core.academics.models import AcademicSubject, Semester
from apps.core.academics.services import active_branch, active_program, active_session
from apps.core.api.errors import BadRequest, NotFound
from apps.core.api.http import normalize_text, optional_id, parse_id, parse_semester
from apps.core.users.models import User
from apps.core.users.services import parse_group_label
from apps.core.utils.dates import normalize_date

from .models import ClassTeacherOverride, SchoolClass


MODE_FULL_SEMESTER = 'full_sem'
MODE_ONE_DAY = 'one_day'


def _override_date_filter(*, start=None, end=None, target_date=None, include_all_overrides=False):
    """Return the override date lookup, or ``None`` when the dates cannot be parsed."""
    if include_all_overrides:
        return {}

    if start and end:
        start_date = normalize_date(start)
        end_date = normalize_date(end)
        if start_date is None or end_date is None:
            return None
        return {'date__range': (start_date, end_date)}

    exact_date = normalize_date(target_date)
    if exact_date is None:
        return None
    return {'date': exact_date}


def teacher_class_ids(teacher, *, start=None, end=None, target_date=None, include_all_overrides=False) -> set[int]:
    class_ids = set(SchoolClass.objects.filter(teacher=teacher).values_list('id', flat=True))

    date_filter = _override_date_filter(
        start=start,
        end=end,
        target_date=target_date,
        include_all_overrides=include_all_overrides,
    )
    if date_filter is not None:
        class_ids.update(
            ClassTeacherOverride.objects.filter(teacher=teacher, **date_filter)
            .values_list('school_class_id', flat=True)
        )
    return class_ids


def is_teacher_authorized_for_class(teacher, school_class, target_date=None) -> bool:
    if school_class is None or teacher is None:
        return False

    if school_class.teacher_id == teacher.pk:
        return True

    exact_date = normalize_date(target_date)
    if exact_date is None:
        return False

    return ClassTeacherOverride.objects.filter(
        school_class=school_class,
        teacher=teacher,
        date=exact_date,
    ).exists()


def resolve_class(class_ref):
    """Find a class by primary key or by its exact name."""
    text = normalize_text(class_ref)
    if not text:
        raise BadRequest('Class is required')

    school_class = None
    if text.isdigit():
        school_class = SchoolClass.objects.filter(pk=int(text)).first()
    if school_class is None:
        school_class = SchoolClass.objects.filter(class_name=text).first()
    if school_class is None:
        raise NotFound('Class not found')
    return school_class


def active_teacher(teacher_id):
    if not normalize_text(teacher_id).isdigit():
        raise BadRequest('Valid teacher is required')
    teacher = User.objects.filter(pk=int(teacher_id), role=User.ROLE_TEACHER, is_active=True).first()
    if teacher is None:
        raise NotFound('Active teacher not found')
    return teacher


def _semester_or_404(semester_id):
    semester_pk = optional_id(semester_id, 'semester id')
    if semester_pk is None:
        return None
    semester = Semester.objects.filter(pk=semester_pk).first()
    if semester is None:
        raise NotFound('Semester not found')
    return semester


def build_academic_class_name(*, program, session, branch, semester, group_label):
    return ' | '.join([
        program.code or program.name,
        session.label,
        branch.code or branch.name,
        f'Sem {semester}',
        f'Group {group_label}',
    ])


def create_simple_class(*, teacher, class_name, subject, semester_id=None):
    class_name = normalize_text(class_name)
    subject = normalize_text(subject)
    if not class_name or not subject:
        raise BadRequest('Class name and subject are required')

    return SchoolClass.objects.create(
        class_name=class_name,
        subject=subject,
        teacher=teacher,
        semester=_semester_or_404(semester_id),
    )


def _has_scope(data):
    return all(normalize_text(data.get(key)) for key in ('programId', 'sessionId', 'branchId', 'subjectId'))


@transaction.atomic
def allocate_class(data):
    """
    Assign a teacher to a class.

    With a full academic scope the class for that scope is created or
    reassigned; otherwise a simple class is created.
    Returns ``(school_class, created, reassigned)``.
    """
    teacher = active_teacher(data.get('teacherId'))

    if not _has_scope(data):
        school_class = create_simple_class(
            teacher=teacher,
            class_name=data.get('className'),
            subject=data.get('subject'),
            semester_id=data.get('semesterId'),
        )
        return school_class, True, False

    program_id = parse_id(data.get('programId'), 'allocation scope ids')
    session_id = parse_id(data.get('sessionId'), 'allocation scope ids')
    branch_id = parse_id(data.get('branchId'), 'allocation scope ids')
    subject_id = parse_id(data.get('subjectId'), 'allocation scope ids')
    academic_semester = parse_semester(data.get('semester'))
    group_label = parse_group_label(data.get('groupLabel'))

    try:
        program = active_program(program_id)
        session = active_session(program_id, session_id)
        branch = active_branch(program_id, session_id, branch_id)
    except NotFound:
        raise NotFound('Selected program/session/branch/semester/subject scope not found')

    subject = AcademicSubject.objects.active().filter(
        pk=subject_id,
        branch=branch,
        semester=academic_semester,
    ).first()
    if subject is None:
        raise NotFound('Selected program/session/branch/semester/subject scope not found')

    class_name = build_academic_class_name(
        program=program,
        session=session,
        branch=branch,
        semester=academic_semester,
        group_label=group_label,
    )

    school_class, created = SchoolClass.objects.select_for_update().get_or_create(
        program=program,
        session=session,
        branch=branch,
        subject_ref=subject,
        academic_semester=academic_semester,
        group_label=group_label,
        defaults={
            'class_name': class_name,
            'subject': subject.name,
            'teacher': teacher,
        },
    )
    if created:
        return school_class, True, False

    reassigned = school_class.teacher_id != teacher.pk
    school_class.teacher = teacher
    school_class.class_name = class_name
    school_class.subject = subject.name
    school_class.save(update_fields=['teacher', 'class_name', 'subject', 'updated_at'])
    return school_class, False, reassigned


@transaction.atomic
def change_class_teacher(*, school_class, teacher_id, mode, target_date=None, assigned_by=None):
    """
    Returns ``(changed, override)``; ``override`` is set only for one-day assignments.
    """
    mode = normalize_text(mode).lower()
    teacher = active_teacher(teacher_id)
    if mode not in (MODE_FULL_SEMESTER, MODE_ONE_DAY):
        raise BadRequest('Mode must be full_sem or one_day')

    if mode == MODE_FULL_SEMESTER:
        changed = school_class.teacher_id != teacher.pk
        if changed:
            school_class.teacher = teacher
            school_class.save(update_fields=['teacher', 'updated_at'])
        return changed, None

    override_date = normalize_date(target_date) if target_date else None
    if not isinstance(override_date, date):
        raise BadRequest('Valid date is required for one_day mode')

    override, _ = ClassTeacherOverride.objects.update_or_create(
        school_class=school_class,
        date=override_date,
        defaults={'teacher': teacher, 'assigned_by': assigned_by},
    )
    return True, override
