"""
Domain errors

Services raise these; the app turns them into {"error": message} responses
with the carried HTTP status.
"""


class CareCompassError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationFailed(CareCompassError):
    status_code = 400


class AuthenticationFailed(CareCompassError):
    status_code = 401


class NotFound(CareCompassError):
    status_code = 404


class Conflict(CareCompassError):
    status_code = 409
