import logging
import time

from django.db import DatabaseError, connection
from django.http import JsonResponse
from django.views.decorators.http import require_GET


logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()


@require_GET
def health(request):
    database = 'up'
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
    except DatabaseError:
        logger.exception('Health check could not reach the database')
        database = 'down'

    status = 200 if database == 'up' else 503
    return JsonResponse({
        'status': 'ok' if status == 200 else 'degraded',
        'uptime': round(time.monotonic() - STARTED_AT, 2),
        'database': database,
    }, status=status)


def not_found(request, exception=None):
    return JsonResponse({'message': f'Route not found: {request.path}'}, status=404)


def server_error(request):
    return JsonResponse({'success': False, 'message': 'Internal server error'}, status=500)
