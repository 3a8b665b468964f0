"""Application error hierarchy.

Services raise these on the first violated precondition; the handlers
registered in the application factory turn them into the JSON envelope.
"""

class AppError(Exception):
    """Base class for errors surfaced to API clients."""
    
    status_code = 500
    default_code = 'internal_error'
    
    def __init__(self, message: str, code: str = None, status_code: int = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        if status_code is not None:
            self.status_code = status_code
    
    def to_dict(self) -> dict:
        return {
            'success': False,
            'message': self.message,
            'error': self.code
        }

class ValidationError(AppError):
    """Missing or malformed input."""
    status_code = 400
    default_code = 'validation_error'

class NotFoundError(AppError):
    status_code = 404
    default_code = 'not_found'

class ForbiddenError(AppError):
    status_code = 403
    default_code = 'forbidden'

class ConflictError(AppError):
    """Uniqueness or capacity violation."""
    status_code = 409
    default_code = 'conflict'

class StateError(AppError):
    """The target is not in a state that allows the operation."""
    status_code = 400
    default_code = 'invalid_state'
