from django.db import transaction

from apps.core.api.errors import BadRequest, Conflict, NotFound
from apps.core.api.http import normalize_text, parse_semester

from .models import AcademicBranch, AcademicProgram, AcademicSession, AcademicSubject, Semester


def _has_active_duplicate(queryset, field, value, exclude_pk=None):
    queryset = queryset.filter(is_active=True, **{f'{field}__iexact': value})
    if exclude_pk is not None:
        queryset = queryset.exclude(pk=exclude_pk)
    return queryset.exists()


def get_or_404(model, pk, message):
    instance = model.objects.filter(pk=pk).first()
    if instance is None:
        raise NotFound(message)
    return instance


def active_program(program_id):
    program = AcademicProgram.objects.active().filter(pk=program_id).first()
    if program is None:
        raise NotFound('Active program not found')
    return program


def active_session(program_id, session_id):
    session = AcademicSession.objects.active().filter(pk=session_id, program_id=program_id).first()
    if session is None:
        raise NotFound('Active session not found for program')
    return session


def active_branch(program_id, session_id, branch_id):
    branch = AcademicBranch.objects.active().filter(
        pk=branch_id,
        program_id=program_id,
        session_id=session_id,
    ).first()
    if branch is None:
        raise NotFound('Active branch not found for selected scope')
    return branch


# Programs

def create_program(*, name, code='', description=''):
    name = normalize_text(name)
    if not name:
        raise BadRequest('Program name is required')
    if _has_active_duplicate(AcademicProgram.objects.all(), 'name', name):
        raise Conflict('Program already exists')

    return AcademicProgram.objects.create(
        name=name,
        code=normalize_text(code).upper(),
        description=normalize_text(description),
    )


def update_program(program, data):
    name = normalize_text(data.get('name') or program.name)
    code = program.code if 'code' not in data else data.get('code')
    description = program.description if 'description' not in data else data.get('description')

    if not name:
        raise BadRequest('Program name is required')
    if _has_active_duplicate(AcademicProgram.objects.all(), 'name', name, exclude_pk=program.pk):
        raise Conflict('Program with same name exists')

    program.name = name
    program.code = normalize_text(code).upper()
    program.description = normalize_text(description)
    program.save(update_fields=['name', 'code', 'description', 'updated_at'])
    return program


@transaction.atomic
def deactivate_program(program):
    program.is_active = False
    program.save(update_fields=['is_active', 'updated_at'])
    AcademicSession.objects.filter(program=program).deactivate()
    AcademicBranch.objects.filter(program=program).deactivate()
    AcademicSubject.objects.filter(program=program).deactivate()


# Sessions

def create_session(*, program_id, label):
    label = normalize_text(label)
    if not label:
        raise BadRequest('Session label is required')

    program = active_program(program_id)
    if _has_active_duplicate(program.sessions.all(), 'label', label):
        raise Conflict('Session already exists for this program')

    return AcademicSession.objects.create(program=program, label=label)


def update_session(session, data):
    label = normalize_text(data.get('label') or session.label)
    if not label:
        raise BadRequest('Session label is required')

    siblings = AcademicSession.objects.filter(program_id=session.program_id)
    if _has_active_duplicate(siblings, 'label', label, exclude_pk=session.pk):
        raise Conflict('Session already exists for this program')

    session.label = label
    session.save(update_fields=['label', 'updated_at'])
    return session


@transaction.atomic
def deactivate_session(session):
    session.is_active = False
    session.save(update_fields=['is_active', 'updated_at'])
    AcademicBranch.objects.filter(session=session).deactivate()
    AcademicSubject.objects.filter(session=session).deactivate()


# Branches

def create_branch(*, program_id, session_id, name, code=''):
    name = normalize_text(name)
    if not name:
        raise BadRequest('Branch name is required')

    program = active_program(program_id)
    session = active_session(program.pk, session_id)

    siblings = AcademicBranch.objects.filter(program=program, session=session)
    if _has_active_duplicate(siblings, 'name', name):
        raise Conflict('Branch already exists for selected program/session')

    return AcademicBranch.objects.create(
        program=program,
        session=session,
        name=name,
        code=normalize_text(code).upper(),
    )


def update_branch(branch, data):
    name = normalize_text(data.get('name') or branch.name)
    code = branch.code if 'code' not in data else data.get('code')
    if not name:
        raise BadRequest('Branch name is required')

    siblings = AcademicBranch.objects.filter(program_id=branch.program_id, session_id=branch.session_id)
    if _has_active_duplicate(siblings, 'name', name, exclude_pk=branch.pk):
        raise Conflict('Branch already exists for selected program/session')

    branch.name = name
    branch.code = normalize_text(code).upper()
    branch.save(update_fields=['name', 'code', 'updated_at'])
    return branch


@transaction.atomic
def deactivate_branch(branch):
    branch.is_active = False
    branch.save(update_fields=['is_active', 'updated_at'])
    AcademicSubject.objects.filter(branch=branch).deactivate()


# Subjects

def create_subject(*, program_id, session_id, branch_id, semester, name, code=''):
    semester = parse_semester(semester)
    name = normalize_text(name)
    if not name:
        raise BadRequest('Subject name is required')

    branch = active_branch(program_id, session_id, branch_id)
    siblings = AcademicSubject.objects.filter(branch=branch, semester=semester)
    if _has_active_duplicate(siblings, 'name', name):
        raise Conflict('Subject already exists for selected branch and semester')

    return AcademicSubject.objects.create(
        program_id=branch.program_id,
        session_id=branch.session_id,
        branch=branch,
        semester=semester,
        name=name,
        code=normalize_text(code).upper(),
    )


def update_subject(subject, data):
    name = normalize_text(data.get('name') or subject.name)
    code = subject.code if 'code' not in data else data.get('code')
    semester = parse_semester(subject.semester if 'semester' not in data else data.get('semester'))
    if not name:
        raise BadRequest('Subject name is required')

    siblings = AcademicSubject.objects.filter(branch_id=subject.branch_id, semester=semester)
    if _has_active_duplicate(siblings, 'name', name, exclude_pk=subject.pk):
        raise Conflict('Subject already exists for selected branch and semester')

    subject.name = name
    subject.code = normalize_text(code).upper()
    subject.semester = semester
    subject.save(update_fields=['name', 'code', 'semester', 'updated_at'])
    return subject


def deactivate_subject(subject):
    subject.is_active = False
    subject.save(update_fields=['is_active', 'updated_at'])


def academic_summary(program_id=None, session_id=None):
    scoped = {}
    if program_id:
        scoped['program_id'] = program_id
    if session_id:
        scoped['session_id'] = session_id

    return {
        'totalPrograms': AcademicProgram.objects.active().count(),
        'totalSessions': AcademicSession.objects.active().count(),
        'totalBranches': AcademicBranch.objects.active().filter(**scoped).count(),
        'totalSubjects': AcademicSubject.objects.active().filter(**scoped).count(),
    }


def create_semester(*, name, start_date, end_date):
    name = normalize_text(name)
    if not name:
        raise BadRequest('Semester name is required')
    if start_date is None or end_date is None:
        raise BadRequest('Valid startDate and endDate are required')
    if end_date < start_date:
        raise BadRequest('endDate cannot be before startDate')
    return Semester.objects.create(name=name, start_date=start_date, end_date=end_date)
