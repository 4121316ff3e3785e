import jwt

from .models import User
from .tokens import decode_access_token, token_from_request


class TokenAuthenticationMiddleware:
    """
    Resolves the API caller from a bearer token (or ``?token=``).

    Sets ``request.api_user`` to the active user or ``None`` and
    ``request.token_error`` to the reason authentication failed.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.api_user = None
        request.token_error = None

        token = token_from_request(request)
        if not token:
            request.token_error = 'No token provided'
            return self.get_response(request)

        try:
            payload = decode_access_token(token)
        except jwt.InvalidTokenError:
            request.token_error = 'Invalid or expired token'
            return self.get_response(request)

        user = User.objects.filter(pk=payload.get('id'), is_active=True).first()
        if user is None:
            request.token_error = 'Invalid or expired token'
        else:
            request.api_user = user

        return self.get_response(request)
