import logging

from django.dispatch import Signal, receiver
from django.utils import timezone

from .realtime import get_hub


logger = logging.getLogger(__name__)

ATTENDANCE_CHANGED_EVENT = 'attendance:changed'

# Sent after every attendance mutation with ``payload`` describing the change.
attendance_changed = Signal()


def notify_attendance_change(payload):
    payload = {'event': ATTENDANCE_CHANGED_EVENT, **payload, 'at': timezone.now().isoformat()}
    for receiver_func, response in attendance_changed.send_robust(sender=None, payload=payload):
        if isinstance(response, Exception):
            logger.warning('Attendance change receiver %r failed: %s', receiver_func, response)
    return payload


@receiver(attendance_changed)
def broadcast_attendance_change(sender, payload, **kwargs):
    get_hub().publish(ATTENDANCE_CHANGED_EVENT, payload)
