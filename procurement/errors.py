"""
Error taxonomy for the procurement API.

Services raise these; the application factory renders them as JSON with the
matching HTTP status so routes never build error responses by hand.
"""


class ProcurementError(Exception):
    status_code = 500
    code = 'INTERNAL_ERROR'

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class NotFound(ProcurementError):
    """Referenced entity does not exist."""
    status_code = 404
    code = 'NOT_FOUND'


class Forbidden(ProcurementError):
    """Role or ownership mismatch."""
    status_code = 403
    code = 'FORBIDDEN'


class InvalidState(ProcurementError):
    """Deadline, ordering or status-transition violation."""
    status_code = 400
    code = 'INVALID_STATE'


class ValidationError(ProcurementError):
    """Malformed or missing request fields."""
    status_code = 400
    code = 'VALIDATION_ERROR'


class Conflict(ProcurementError):
    """Duplicate offer or a lost award race."""
    status_code = 409
    code = 'CONFLICT'


class Unavailable(ProcurementError):
    """Store or transport failure."""
    status_code = 503
    code = 'UNAVAILABLE'
