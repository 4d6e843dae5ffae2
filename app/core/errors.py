"""Typed failures raised by the service layer.

Routes never build error responses themselves; ``app.main`` maps every
``AppError`` to its status code and a ``{"message": ...}`` body.
"""


class AppError(Exception):
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class AuthenticationError(AppError):
    status_code = 401
    default_message = "Invalid credentials"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Conflict"


class ExpiredError(AppError):
    status_code = 400
    default_message = "Expired"


class ServerError(AppError):
    status_code = 500
