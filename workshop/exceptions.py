"""
Error taxonomy for the workshop workflows.

Service functions raise these; WorkshopErrorMiddleware renders them as JSON.
"""


class WorkshopError(Exception):
    """Base class carrying an HTTP status and a machine-readable code."""
    status_code = 400
    code = 'error'

    def __init__(self, message, **extra):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def as_dict(self):
        data = {'success': False, 'error': self.message, 'code': self.code}
        data.update(self.extra)
        return data


class ValidationError(WorkshopError):
    """Malformed input or unmet precondition. Nothing was written."""
    status_code = 400
    code = 'validation_error'


class NotFoundError(WorkshopError):
    status_code = 404
    code = 'not_found'


class ConflictError(WorkshopError):
    """The record is not in the status the requested transition needs."""
    status_code = 409
    code = 'conflict'

    def __init__(self, message, current_status=None, expected_status=None):
        super().__init__(message, currentStatus=current_status, expectedStatus=expected_status)
        self.current_status = current_status
        self.expected_status = expected_status


class AccessTokenInvalid(WorkshopError):
    """Public PDF token missing or not matching. Treat as forged."""
    status_code = 403
    code = 'token_invalid'


class AccessTokenExpired(WorkshopError):
    """Public PDF token matched but its expiry has passed; the link must be re-requested."""
    status_code = 403
    code = 'token_expired'


class ExternalServiceFailure(WorkshopError):
    """PDF rendering or outbound delivery failed."""
    status_code = 502
    code = 'external_service_failure'
