"""Typed failures raised by the game services.

Each carries the HTTP status and machine-readable code the API returns,
so routes never translate them by hand.
"""


class GameError(Exception):
    status_code = 400
    code = 'BAD_REQUEST'
    default_message = 'Bad request'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(GameError):
    status_code = 400
    code = 'VALIDATION_ERROR'
    default_message = 'Invalid request'


class NotFound(GameError):
    status_code = 404
    code = 'NOT_FOUND'
    default_message = 'Resource not found'


class Unauthorized(GameError):
    status_code = 403
    code = 'UNAUTHORIZED'
    default_message = 'Only the game owner may do that'


class InvalidState(GameError):
    status_code = 409
    code = 'INVALID_STATE'
    default_message = 'Action not allowed in the current game state'


class SquareTaken(GameError):
    status_code = 409
    code = 'SQUARE_TAKEN'
    default_message = 'Square already taken'


class QuotaExceeded(GameError):
    status_code = 409
    code = 'QUOTA_EXCEEDED'
    default_message = 'Square limit reached'


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (ValidationError, NotFound, Unauthorized, InvalidState, SquareTaken, QuotaExceeded)
}


def error_for(code: str, message=None) -> GameError:
    return ERRORS_BY_CODE.get(code, GameError)(message)
