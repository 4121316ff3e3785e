from datetime import timedelta

import jwt
from django.conf import settings
from django.utils import timezone


def create_access_token(user, expires_delta=None):
    expire = timezone.now() + (expires_delta or timedelta(minutes=settings.JWT_EXPIRY_MINUTES))
    payload = {
        'id': user.pk,
        'role': user.role,
        'exp': expire,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token):
    """Return the token payload, raising ``jwt.InvalidTokenError`` when invalid or expired."""
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])


def token_from_request(request):
    auth = request.headers.get('Authorization', '')
    if auth.lower().startswith('bearer '):
        token = auth.split(' ', 1)[1].strip()
        if token:
            return token
    return request.GET.get('token') or None
