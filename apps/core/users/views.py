from django.contrib.auth.signals import user_logged_in
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from apps.core.api.errors import NotFound
from apps.core.api.http import json_response, message_response, parse_id, parse_json_body

from . import services
from .decorators import role_required, token_required
from .models import User
from .serializers import teacher_summary, user_payload, user_summary
from .tokens import create_access_token


def _user_or_404(pk):
    user = User.objects.filter(pk=parse_id(pk, 'user id')).first()
    if user is None:
        raise NotFound('User not found')
    return user


@csrf_exempt
@require_http_methods(['POST'])
def login(request):
    data = parse_json_body(request)
    user = services.authenticate_user(data.get('email'), data.get('password'))
    user_logged_in.send(sender=user.__class__, request=request, user=user)
    return message_response('Login successful', token=create_access_token(user))


@require_http_methods(['GET', 'POST'])
@token_required
def users(request):
    if request.method == 'POST':
        user = services.create_user(actor=request.api_user, data=parse_json_body(request))
        return json_response(user_payload(user), status=201)

    if not request.api_user.is_admin:
        return message_response('Access denied for this role', status=403)
    return json_response([user_payload(user) for user in User.objects.order_by('-created_at', '-id')])


@require_http_methods(['GET'])
@token_required
def profile(request):
    return json_response(user_payload(request.api_user))


@require_http_methods(['GET'])
@role_required('admin')
def teachers(request):
    queryset = User.objects.filter(role=User.ROLE_TEACHER, is_active=True).order_by('name')
    return json_response([teacher_summary(user) for user in queryset])


@require_http_methods(['GET'])
@role_required(['teacher', 'admin'])
def students(request):
    queryset = User.objects.filter(role=User.ROLE_STUDENT, is_active=True).order_by('name')
    return json_response([
        {**user_summary(user), 'semester': user.semester, 'groupLabel': user.group_label}
        for user in queryset
    ])


@require_http_methods(['PATCH'])
@role_required('admin')
def change_role(request, pk):
    user = services.change_role(_user_or_404(pk), parse_json_body(request).get('role'))
    return message_response('Role updated', user=user_payload(user))


@require_http_methods(['PATCH'])
@role_required('admin')
def deactivate(request, pk):
    services.set_active(_user_or_404(pk), False, actor=request.api_user)
    return message_response('User deactivated successfully')


@require_http_methods(['PATCH'])
@role_required('admin')
def activate(request, pk):
    services.set_active(_user_or_404(pk), True, actor=request.api_user)
    return message_response('User activated successfully')


@require_http_methods(['PATCH'])
@role_required('admin')
def reset_password(request, pk):
    services.reset_password(_user_or_404(pk), parse_json_body(request).get('newPassword'))
    return message_response('Password reset successfully')


@require_http_methods(['PATCH'])
@role_required('admin')
def student_group(request, pk):
    user = services.assign_student_group(_user_or_404(pk), parse_json_body(request))
    return message_response('Student group updated', user=user_payload(user))
