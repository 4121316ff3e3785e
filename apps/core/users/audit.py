import logging

from django.core.serializers.json import DjangoJSONEncoder
from django.db import transaction

from apps.core.users.models import AuditLog


logger = logging.getLogger(__name__)


def _extract_ip(request):
    forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR', '')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def _json_safe(details):
    encoder = DjangoJSONEncoder()
    safe = {}
    for key, value in (details or {}).items():
        if isinstance(value, (str, int, float, bool)) or value is None:
            safe[key] = value
        elif isinstance(value, (list, tuple)):
            safe[key] = [item if isinstance(item, (str, int, float, bool)) else encoder.default(item) for item in value]
        else:
            safe[key] = encoder.default(value)
    return safe


def log_audit_event(*, action, performed_by, attendance_id=None, details=None, request=None):
    try:
        with transaction.atomic():
            AuditLog.objects.create(
                action=action,
                attendance_id=attendance_id,
                performed_by=performed_by,
                details=_json_safe(details),
                method=request.method if request is not None else '',
                path=request.path[:255] if request is not None else '',
                ip_address=_extract_ip(request) if request is not None else None,
            )
    except Exception:
        # Logging must never break business actions.
        logger.exception('Audit log write failed for action %s', action)
