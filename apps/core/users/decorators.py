from functools import wraps

from django.views.decorators.csrf import csrf_exempt

from apps.core.api.errors import Forbidden, Unauthorized


def _normalize_roles(allowed_roles):
    if isinstance(allowed_roles, str):
        return {allowed_roles}
    return set(allowed_roles)


def token_required(view_func):
    @wraps(view_func)
    def wrapper(request, *args, **kwargs):
        if getattr(request, 'api_user', None) is None:
            raise Unauthorized(getattr(request, 'token_error', None) or 'No token provided')
        return view_func(request, *args, **kwargs)

    return csrf_exempt(wrapper)


def role_required(allowed_roles):
    normalized_roles = _normalize_roles(allowed_roles)

    def decorator(view_func):
        @token_required
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            if request.api_user.role not in normalized_roles:
                raise Forbidden('Access denied for this role')

            return view_func(request, *args, **kwargs)

        return wrapper

    return decorator
