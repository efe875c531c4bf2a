"""
Engine error taxonomy.

Every failing operation raises exactly one of these. The HTTP layer renders
them as ``{"reason": message}`` with the class' ``status_code``.
"""


class EngineError(Exception):
    """Base class for all engine failures"""
    status_code = 500
    default_message = "internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(EngineError):
    """Malformed, missing or out-of-range caller arguments"""
    status_code = 400
    default_message = "invalid input"


class InvalidEnum(EngineError):
    """A closed-set field got a value outside its set"""
    status_code = 400
    default_message = "invalid enum value"


class InvalidTransition(EngineError):
    """Requested status is not reachable from the current one"""
    status_code = 400
    default_message = "invalid status transition"


class Unauthenticated(EngineError):
    """Actor identity does not exist"""
    status_code = 401
    default_message = "user does not exist"


class Forbidden(EngineError):
    """Actor exists but lacks the capability"""
    status_code = 403
    default_message = "not authorized"


class NotFound(EngineError):
    """Referenced entity or history version is absent"""
    status_code = 404
    default_message = "not found"


class StoreFailure(EngineError):
    """Persistence error. The message never carries driver details."""
    status_code = 500
    default_message = "internal server error"


class DeadlineExceeded(StoreFailure):
    """Request deadline elapsed before the transaction could commit"""
    status_code = 504
    default_message = "request deadline exceeded"
