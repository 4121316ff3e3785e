from django.apps import apps
from django.test.runner import DiscoverRunner


class InstalledAppsOnlyDiscoverRunner(DiscoverRunner):
    """Runs the project apps' tests when no labels are given, skipping contrib apps."""

    project_prefix = 'apps.core.'

    def build_suite(self, test_labels=None, **kwargs):
        if not test_labels:
            test_labels = [
                app_config.name
                for app_config in apps.get_app_configs()
                if app_config.name.startswith(self.project_prefix)
            ]
        return super().build_suite(test_labels=test_labels, **kwargs)
