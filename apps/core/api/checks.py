from django.conf import settings
from django.core.checks import Error, Tags, Warning, register


@register(Tags.security, deploy=False)
def required_environment_check(app_configs, **kwargs):
    errors = []

    if not settings.JWT_SECRET:
        errors.append(Error(
            'JWT_SECRET is not set.',
            hint='Set JWT_SECRET (or DJANGO_SECRET_KEY) in the environment or in .env.',
            id='attendance.E001',
        ))

    if settings.DB_NAME_REQUIRED and not settings.DB_NAME:
        errors.append(Error(
            'DB_NAME is not set.',
            hint='Set DB_NAME (and DB_USER/DB_PASSWORD/DB_HOST/DB_PORT for PostgreSQL) in the environment.',
            id='attendance.E002',
        ))

    if settings.IS_PRODUCTION and not (settings.CORS_ALLOW_ALL_ORIGINS or settings.CORS_ALLOWED_ORIGINS):
        errors.append(Warning(
            'CORS_ORIGINS is empty; browsers will not be able to call the API.',
            id='attendance.W002',
        ))

    return errors
