from django.db import transaction
from django.db.models import F

from apps.core.academics.services import active_branch, active_program, active_session
from apps.core.api.errors import BadRequest, Forbidden
from apps.core.api.http import normalize_text, optional_id, parse_semester

from .models import Counter, User


TEACHER_COUNTER_KEY = 'teacher_id'
TEACHER_ID_PREFIX = 'TCH'
TEACHER_ID_PAD = 4

GROUP_LABELS = ('1', '2', '3', '4')
MIN_PASSWORD_LENGTH = 6


@transaction.atomic
def next_sequence(key):
    counter, _ = Counter.objects.select_for_update().get_or_create(key=key)
    Counter.objects.filter(pk=counter.pk).update(seq=F('seq') + 1)
    counter.refresh_from_db(fields=['seq'])
    return counter.seq


def generate_teacher_id():
    return f'{TEACHER_ID_PREFIX}{next_sequence(TEACHER_COUNTER_KEY):0{TEACHER_ID_PAD}d}'


def parse_group_label(value):
    group_label = normalize_text(value)
    if not group_label:
        raise BadRequest('Group is required')
    if group_label not in GROUP_LABELS:
        raise BadRequest('Group must be between 1 and 4')
    return group_label


def authenticate_user(email, password):
    user = User.objects.filter(email__iexact=normalize_text(email)).first()
    if user is None:
        raise BadRequest('Invalid email or password')
    if not user.is_active:
        raise Forbidden('Account is deactivated. Contact admin.')
    if not user.check_password(password or ''):
        raise BadRequest('Invalid email or password')
    return user


def _student_scope(data):
    program_id = optional_id(data.get('programId'), 'program id')
    session_id = optional_id(data.get('sessionId'), 'session id')
    branch_id = optional_id(data.get('branchId'), 'branch id')

    scope = {}
    if program_id:
        scope['program'] = active_program(program_id)
        if session_id:
            scope['session'] = active_session(program_id, session_id)
            if branch_id:
                scope['branch'] = active_branch(program_id, session_id, branch_id)
    elif session_id or branch_id:
        raise BadRequest('Program is required for academic scope')

    semester = parse_semester(data.get('semester'), required=False)
    if semester is not None:
        scope['semester'] = semester
    if normalize_text(data.get('groupLabel')):
        scope['group_label'] = parse_group_label(data.get('groupLabel'))
    return scope


@transaction.atomic
def create_user(*, actor, data):
    role = normalize_text(data.get('role')) or User.ROLE_STUDENT

    if actor.is_student:
        raise Forbidden('Students cannot create users')
    if actor.is_teacher and role != User.ROLE_STUDENT:
        raise Forbidden('Teachers can create only students')
    if role not in dict(User.ROLE_CHOICES):
        raise BadRequest('Invalid role')

    name = normalize_text(data.get('name'))
    email = normalize_text(data.get('email')).lower()
    password = data.get('password') or ''
    if not name or not email or not password:
        raise BadRequest('Name, email and password are required')
    if len(password) < MIN_PASSWORD_LENGTH:
        raise BadRequest('Password must be at least 6 characters')

    if User.objects.filter(email__iexact=email).exists():
        raise BadRequest('User already exists')

    extra = {}
    if role == User.ROLE_TEACHER:
        extra['teacher_id'] = generate_teacher_id()
        extra['subject'] = normalize_text(data.get('subject'))
    elif role == User.ROLE_STUDENT:
        extra.update(_student_scope(data))

    return User.objects.create_user(email=email, password=password, name=name, role=role, **extra)


@transaction.atomic
def change_role(user, role):
    role = normalize_text(role)
    if role not in dict(User.ROLE_CHOICES):
        raise BadRequest('Invalid role')

    user.role = role
    if role == User.ROLE_TEACHER and not user.teacher_id:
        user.teacher_id = generate_teacher_id()
    user.save()
    return user


def set_active(user, is_active, *, actor=None):
    if not is_active and actor is not None and actor.pk == user.pk:
        raise BadRequest('You cannot deactivate your own account')
    user.is_active = is_active
    user.save(update_fields=['is_active', 'updated_at'])
    return user


def reset_password(user, new_password):
    if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
        raise BadRequest('New password is required and must be at least 6 characters')
    user.set_password(new_password)
    user.save(update_fields=['password', 'updated_at'])
    return user


def assign_student_group(user, data):
    if not user.is_student:
        raise BadRequest('Only students can be assigned a group')

    group_label = parse_group_label(data.get('groupLabel'))
    semester = parse_semester(data.get('semester'), required=False)

    user.group_label = group_label
    fields = ['group_label', 'updated_at']
    if semester is not None:
        user.semester = semester
        fields.append('semester')
    user.save(update_fields=fields)
    return user
