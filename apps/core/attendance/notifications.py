import logging
import threading

from django.conf import settings
from django.core.mail import send_mail


logger = logging.getLogger(__name__)


def _format_percentage(percentage):
    text = f'{float(percentage):.2f}'
    return text.rstrip('0').rstrip('.')


def _deliver(to_email, subject, body):
    try:
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [to_email])
    except Exception:
        logger.exception('Low attendance email to %s failed', to_email)


def send_low_attendance_email(*, to_email, name, percentage):
    """
    Warn a student about low attendance. Returns ``False`` when email is disabled.

    Delivery happens on a background thread unless LOW_ATTENDANCE_EMAIL_ASYNC is off.
    """
    if not getattr(settings, 'LOW_ATTENDANCE_EMAIL_ENABLED', False) or not to_email:
        return False

    body = (
        f'Hello {name or "Student"}, your attendance is {_format_percentage(percentage)}%. '
        'Please improve it as soon as possible.'
    )

    if getattr(settings, 'LOW_ATTENDANCE_EMAIL_ASYNC', True):
        threading.Thread(target=_deliver, args=(to_email, 'Attendance Warning', body), daemon=True).start()
    else:
        _deliver(to_email, 'Attendance Warning', body)
    return True
