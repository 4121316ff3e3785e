from django.views.decorators.http import require_http_methods

from apps.core.api.errors import Forbidden
from apps.core.api.http import (
    json_response,
    message_response,
    optional_id,
    parse_id,
    parse_json_body,
    parse_semester,
    query_flag,
)
from apps.core.users.decorators import role_required, token_required
from apps.core.utils.dates import normalize_date

from . import services
from .models import AcademicBranch, AcademicProgram, AcademicSession, AcademicSubject, Semester
from .serializers import (
    branch_payload,
    program_payload,
    semester_payload,
    session_payload,
    subject_payload,
)


@require_http_methods(['GET', 'POST'])
@role_required('admin')
def programs(request):
    if request.method == 'POST':
        data = parse_json_body(request)
        program = services.create_program(
            name=data.get('name'),
            code=data.get('code'),
            description=data.get('description'),
        )
        return json_response(program_payload(program), status=201)

    queryset = AcademicProgram.objects.visible(query_flag(request, 'includeInactive'))
    return json_response([program_payload(program) for program in queryset.order_by('name')])


@require_http_methods(['PATCH', 'DELETE'])
@role_required('admin')
def program_detail(request, pk):
    program = services.get_or_404(AcademicProgram, parse_id(pk, 'program id'), 'Program not found')

    if request.method == 'DELETE':
        services.deactivate_program(program)
        return message_response('Program deactivated')

    program = services.update_program(program, parse_json_body(request))
    return json_response(program_payload(program))


@require_http_methods(['GET', 'POST'])
@role_required('admin')
def sessions(request):
    if request.method == 'POST':
        data = parse_json_body(request)
        session = services.create_session(
            program_id=parse_id(data.get('programId'), 'program id'),
            label=data.get('label'),
        )
        return json_response(session_payload(session), status=201)

    queryset = AcademicSession.objects.visible(query_flag(request, 'includeInactive')).select_related('program')
    program_id = optional_id(request.GET.get('programId'), 'program id')
    if program_id:
        queryset = queryset.filter(program_id=program_id)
    return json_response([session_payload(session) for session in queryset.order_by('-created_at', '-id')])


@require_http_methods(['PATCH', 'DELETE'])
@role_required('admin')
def session_detail(request, pk):
    session = services.get_or_404(AcademicSession, parse_id(pk, 'session id'), 'Session not found')

    if request.method == 'DELETE':
        services.deactivate_session(session)
        return message_response('Session deactivated')

    session = services.update_session(session, parse_json_body(request))
    return json_response(session_payload(session))


@require_http_methods(['GET', 'POST'])
@role_required('admin')
def branches(request):
    if request.method == 'POST':
        data = parse_json_body(request)
        branch = services.create_branch(
            program_id=parse_id(data.get('programId'), 'program id'),
            session_id=parse_id(data.get('sessionId'), 'session id'),
            name=data.get('name'),
            code=data.get('code'),
        )
        return json_response(branch_payload(branch), status=201)

    queryset = AcademicBranch.objects.visible(query_flag(request, 'includeInactive')).select_related('program', 'session')
    program_id = optional_id(request.GET.get('programId'), 'program id')
    session_id = optional_id(request.GET.get('sessionId'), 'session id')
    if program_id:
        queryset = queryset.filter(program_id=program_id)
    if session_id:
        queryset = queryset.filter(session_id=session_id)
    return json_response([branch_payload(branch) for branch in queryset.order_by('name')])


@require_http_methods(['PATCH', 'DELETE'])
@role_required('admin')
def branch_detail(request, pk):
    branch = services.get_or_404(AcademicBranch, parse_id(pk, 'branch id'), 'Branch not found')

    if request.method == 'DELETE':
        services.deactivate_branch(branch)
        return message_response('Branch deactivated')

    branch = services.update_branch(branch, parse_json_body(request))
    return json_response(branch_payload(branch))


@require_http_methods(['GET', 'POST'])
@role_required('admin')
def subjects(request):
    if request.method == 'POST':
        data = parse_json_body(request)
        subject = services.create_subject(
            program_id=parse_id(data.get('programId'), 'program id'),
            session_id=parse_id(data.get('sessionId'), 'session id'),
            branch_id=parse_id(data.get('branchId'), 'branch id'),
            semester=data.get('semester'),
            name=data.get('name'),
            code=data.get('code'),
        )
        return json_response(subject_payload(subject), status=201)

    branch_id = parse_id(request.GET.get('branchId'), 'branch id')
    semester = parse_semester(request.GET.get('semester'))
    queryset = (
        AcademicSubject.objects.visible(query_flag(request, 'includeInactive'))
        .filter(branch_id=branch_id, semester=semester)
        .select_related('program', 'session', 'branch')
        .order_by('name')
    )
    return json_response([subject_payload(subject) for subject in queryset])


@require_http_methods(['PATCH', 'DELETE'])
@role_required('admin')
def subject_detail(request, pk):
    subject = services.get_or_404(AcademicSubject, parse_id(pk, 'subject id'), 'Subject not found')

    if request.method == 'DELETE':
        services.deactivate_subject(subject)
        return message_response('Subject deactivated')

    subject = services.update_subject(subject, parse_json_body(request))
    return json_response(subject_payload(subject))


@require_http_methods(['GET'])
@role_required('admin')
def summary(request):
    return json_response(services.academic_summary(
        program_id=optional_id(request.GET.get('programId'), 'program id'),
        session_id=optional_id(request.GET.get('sessionId'), 'session id'),
    ))


@require_http_methods(['GET', 'POST'])
@token_required
def semesters(request):
    if request.method == 'POST':
        if not request.api_user.is_admin:
            raise Forbidden('Access denied for this role')
        data = parse_json_body(request)
        start_date = normalize_date(data.get('startDate')) if data.get('startDate') else None
        end_date = normalize_date(data.get('endDate')) if data.get('endDate') else None
        semester = services.create_semester(
            name=data.get('name'),
            start_date=start_date,
            end_date=end_date,
        )
        return json_response(semester_payload(semester), status=201)

    return json_response([semester_payload(semester) for semester in Semester.objects.order_by('start_date', 'id')])
