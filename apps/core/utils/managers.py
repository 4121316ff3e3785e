from django.db import models


class ActiveQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def visible(self, include_inactive=False):
        if include_inactive:
            return self
        return self.active()

    def deactivate(self):
        return self.filter(is_active=True).update(is_active=False)


class ActiveManager(models.Manager.from_queryset(ActiveQuerySet)):
    pass
