import atexit

from django.apps import AppConfig


class AttendanceConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core.attendance'
    label = 'attendance'

    def ready(self):
        from . import signals  # noqa: F401
        from .realtime import BroadcastHub

        self.hub = BroadcastHub()
        atexit.register(self.hub.close)
