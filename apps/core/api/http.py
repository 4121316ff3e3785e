import json

from django.http import JsonResponse

from .errors import BadRequest


def json_response(data, status=200):
    return JsonResponse(data, status=status, safe=False)


def message_response(message, status=200, **extra):
    return JsonResponse({'message': message, **extra}, status=status)


def parse_json_body(request):
    if not request.body:
        return {}
    try:
        payload = json.loads(request.body)
    except (TypeError, ValueError):
        raise BadRequest('Request body must be valid JSON')
    if not isinstance(payload, dict):
        raise BadRequest('Request body must be a JSON object')
    return payload


def normalize_text(value):
    if value is None:
        return ''
    return str(value).strip()


def parse_id(value, label='id'):
    """Parse a primary key coming from a URL, query string or body."""
    text = normalize_text(value)
    if not text.isdigit() or int(text) <= 0:
        raise BadRequest(f'Invalid {label}')
    return int(text)


def optional_id(value, label='id'):
    if normalize_text(value) == '':
        return None
    return parse_id(value, label)


def parse_semester(value, required=True):
    text = normalize_text(value)
    if not text and not required:
        return None
    try:
        semester = int(text)
    except ValueError:
        semester = None
    if semester is None or semester < 1 or semester > 8:
        raise BadRequest('Semester must be between 1 and 8')
    return semester


def query_flag(request, name):
    return normalize_text(request.GET.get(name, 'false')).lower() == 'true'
