from django.views.decorators.http import require_http_methods

from apps.core.api.errors import NotFound
from apps.core.api.http import json_response, message_response, normalize_text, parse_id, parse_json_body
from apps.core.users.decorators import role_required

from . import services
from .models import SchoolClass
from .serializers import CLASS_RELATED_FIELDS, class_payload, override_payload


@require_http_methods(['POST'])
@role_required(['teacher', 'admin'])
def create_class(request):
    data = parse_json_body(request)
    school_class = services.create_simple_class(
        teacher=request.api_user,
        class_name=data.get('className'),
        subject=data.get('subject'),
        semester_id=data.get('semesterId'),
    )
    return message_response('Class created', status=201, **{'class': class_payload(school_class)})


@require_http_methods(['GET'])
@role_required('teacher')
def my_classes(request):
    class_ids = services.teacher_class_ids(request.api_user, target_date=request.GET.get('date'))
    queryset = (
        SchoolClass.objects.filter(pk__in=class_ids)
        .select_related(*CLASS_RELATED_FIELDS)
        .order_by('class_name', 'id')
    )
    return json_response([class_payload(school_class) for school_class in queryset])


@require_http_methods(['POST'])
@role_required('admin')
def allocate(request):
    school_class, created, reassigned = services.allocate_class(parse_json_body(request))

    if created:
        message = 'Class allocated'
    elif reassigned:
        message = 'Teacher updated for selected class scope'
    else:
        message = 'Class scope already assigned to this teacher'

    return message_response(
        message,
        status=201 if created else 200,
        reassigned=reassigned,
        **{'class': class_payload(school_class)},
    )


@require_http_methods(['PATCH'])
@role_required('admin')
def change_teacher(request, pk):
    school_class = SchoolClass.objects.filter(pk=parse_id(pk, 'class id')).first()
    if school_class is None:
        raise NotFound('Class not found')

    data = parse_json_body(request)
    changed, override = services.change_class_teacher(
        school_class=school_class,
        teacher_id=data.get('teacherId'),
        mode=data.get('mode'),
        target_date=data.get('date'),
        assigned_by=request.api_user,
    )
    school_class.refresh_from_db()

    payload = {'mode': normalize_text(data.get('mode')).lower(), 'changed': changed, 'class': class_payload(school_class)}
    if override is None:
        message = 'Teacher changed for full semester' if changed else 'Teacher already assigned'
    else:
        message = f'Teacher assigned for {override.date.isoformat()}'
        payload['override'] = override_payload(override)
    return message_response(message, **payload)


@require_http_methods(['GET'])
@role_required('admin')
def all_classes(request):
    queryset = SchoolClass.objects.select_related(*CLASS_RELATED_FIELDS).order_by('-updated_at', '-id')
    return json_response([class_payload(school_class) for school_class in queryset])
