from django.apps import AppConfig


class ApiConfig(AppConfig):
    name = 'apps.core.api'
    label = 'core_api'

    def ready(self):
        from . import checks  # noqa: F401
