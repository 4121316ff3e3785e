class ApiError(Exception):
    status_code = 400
    default_message = 'Request failed'

    def __init__(self, message=None, *, status_code=None, extra=None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra or {}
        super().__init__(self.message)

    def as_payload(self):
        return {'message': self.message, **self.extra}


class BadRequest(ApiError):
    status_code = 400
    default_message = 'Invalid request'


class Unauthorized(ApiError):
    status_code = 401
    default_message = 'Not authenticated'


class Forbidden(ApiError):
    status_code = 403
    default_message = 'Access denied'


class NotFound(ApiError):
    status_code = 404
    default_message = 'Not found'


class Conflict(ApiError):
    status_code = 409
    default_message = 'Conflict'
