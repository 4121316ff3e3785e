from django.http import HttpResponse, StreamingHttpResponse
from django.views.decorators.http import require_http_methods

from apps.core.api.errors import Forbidden
from apps.core.api.http import (
    json_response,
    message_response,
    optional_id,
    parse_id,
    parse_json_body,
)
from apps.core.users.decorators import role_required, token_required

from . import services
from .realtime import event_stream, get_hub
from .serializers import attendance_payload


def _student_scope_guard(actor, student_id):
    if actor.is_student and actor.pk != student_id:
        raise Forbidden('Access denied')


@require_http_methods(['GET', 'POST'])
@token_required
def attendance_root(request):
    actor = request.api_user

    if request.method == 'POST':
        if actor.is_student:
            return message_response('Access denied for this role', status=403)
        data = parse_json_body(request)
        record = services.mark_attendance(
            actor=actor,
            student_id=data.get('studentId'),
            class_ref=data.get('classId'),
            target_date=data.get('date'),
            status=data.get('status'),
            request=request,
        )
        return json_response(attendance_payload(record), status=201)

    records = services.attendance_listing(
        actor,
        start=request.GET.get('start'),
        end=request.GET.get('end'),
        class_id=optional_id(request.GET.get('classId'), 'class id'),
    )
    return json_response([attendance_payload(record) for record in records])


@require_http_methods(['POST'])
@role_required('teacher')
def bulk_mark(request):
    data = parse_json_body(request)
    result = services.bulk_mark_attendance(
        actor=request.api_user,
        class_id=data.get('classId'),
        target_date=data.get('date'),
        entries=data.get('attendance'),
        request=request,
    )
    return message_response('Bulk attendance marked successfully', status=201, **result)


@require_http_methods(['PUT', 'DELETE'])
@role_required(['teacher', 'admin'])
def attendance_detail(request, pk):
    if request.method == 'DELETE':
        services.delete_attendance(actor=request.api_user, record_id=pk, request=request)
        return message_response('Attendance deleted successfully')

    record = services.update_attendance(
        actor=request.api_user,
        record_id=pk,
        status=parse_json_body(request).get('status'),
        request=request,
    )
    return json_response(attendance_payload(record))


@require_http_methods(['GET'])
@role_required(['admin', 'teacher'])
def low_attendance(request):
    try:
        limit = int(request.GET.get('limit', ''))
    except ValueError:
        limit = None
    return json_response(services.low_attendance_report(limit=limit or None))


@require_http_methods(['GET'])
@token_required
def monthly(request):
    return json_response(services.monthly_report(
        request.api_user,
        month=request.GET.get('month'),
        year=request.GET.get('year'),
        class_id=optional_id(request.GET.get('classId'), 'class id'),
        student_id=optional_id(request.GET.get('studentId'), 'student id'),
    ))


@require_http_methods(['GET'])
@role_required(['admin', 'teacher'])
def ranking(request):
    return json_response(services.attendance_ranking(request.api_user, request.GET))


@require_http_methods(['GET'])
@token_required
def class_wise_percentage(request):
    if not request.api_user.is_student:
        raise Forbidden('Access denied')
    return json_response(services.student_class_breakdown(request.api_user))


@require_http_methods(['GET'])
@token_required
def student_percentage(request, student_id):
    student_id = parse_id(student_id, 'student id')
    _student_scope_guard(request.api_user, student_id)
    return json_response(services.student_overall_percentage(student_id))


@require_http_methods(['GET'])
@token_required
def student_class_percentage(request, student_id):
    student_id = parse_id(student_id, 'student id')
    _student_scope_guard(request.api_user, student_id)
    return json_response(services.student_class_breakdown(student_id))


@require_http_methods(['GET'])
@role_required('admin')
def export_csv(request):
    response = HttpResponse(services.attendance_csv_bytes(), content_type='text/csv')
    response['Content-Disposition'] = 'attachment; filename="attendance.csv"'
    return response


@require_http_methods(['GET'])
@role_required('admin')
def export_pdf(request):
    response = HttpResponse(services.attendance_pdf_bytes(), content_type='application/pdf')
    response['Content-Disposition'] = 'attachment; filename="attendance.pdf"'
    return response


@require_http_methods(['GET'])
@token_required
def events(request):
    hub = get_hub()
    response = StreamingHttpResponse(event_stream(hub, hub.subscribe()), content_type='text/event-stream')
    response['Cache-Control'] = 'no-cache'
    response['X-Accel-Buffering'] = 'no'
    return response
