import logging
import traceback

from django.conf import settings
from django.core.exceptions import PermissionDenied, ValidationError
from django.db import IntegrityError
from django.http import JsonResponse

from .errors import ApiError
from .views import not_found


logger = logging.getLogger(__name__)


def _validation_message(exc):
    if hasattr(exc, 'message_dict'):
        for field, messages in exc.message_dict.items():
            if messages:
                return messages[0] if field == '__all__' else f'{field}: {messages[0]}'
    if exc.messages:
        return exc.messages[0]
    return 'Invalid request'


class JsonErrorMiddleware:
    """
    Turns exceptions raised by views into JSON error bodies.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)
        if (
            response.status_code == 404
            and request.path.startswith('/api/')
            and not response.get('Content-Type', '').startswith('application/json')
        ):
            # Django renders its own HTML page for unmatched routes while DEBUG is on.
            return not_found(request)
        return response

    def process_exception(self, request, exception):
        if isinstance(exception, ApiError):
            return JsonResponse(exception.as_payload(), status=exception.status_code)

        if isinstance(exception, ValidationError):
            return JsonResponse({'message': _validation_message(exception)}, status=400)

        if isinstance(exception, PermissionDenied):
            return JsonResponse({'message': str(exception) or 'Access denied'}, status=403)

        if isinstance(exception, IntegrityError):
            logger.warning('Integrity error on %s %s: %s', request.method, request.path, exception)
            return JsonResponse({'message': 'Conflicting record already exists'}, status=409)

        if not request.path.startswith('/api/') and request.path != '/health':
            return None

        logger.exception('Unhandled error on %s %s', request.method, request.path)
        payload = {
            'success': False,
            'message': str(exception) or 'Internal server error',
        }
        if not settings.IS_PRODUCTION:
            payload['stack'] = ''.join(
                traceback.format_exception(type(exception), exception, exception.__traceback__)
            )
        return JsonResponse(payload, status=500)
