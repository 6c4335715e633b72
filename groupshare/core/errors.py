"""
Domain errors. Each carries the HTTP status the API layer answers with
and a short machine-readable code.
"""


class GroupShareError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details


class AuthenticationError(GroupShareError):
    """No valid caller identity."""
    status_code = 401
    code = "unauthorized"


class AuthorizationError(GroupShareError):
    """Caller is authenticated but not entitled to the resource."""
    status_code = 403
    code = "forbidden"


ForbiddenError = AuthorizationError


class NotFoundError(GroupShareError):
    status_code = 404
    code = "not_found"


class ValidationError(GroupShareError):
    status_code = 400
    code = "validation_error"


class InvalidStateError(GroupShareError):
    """The entity is not in a state that allows the requested transition."""
    status_code = 400
    code = "invalid_state"


class ConflictError(GroupShareError):
    status_code = 409
    code = "conflict"


class UnavailableError(ConflictError):
    """Offer is inactive or has no free slots."""
    status_code = 400
    code = "offer_unavailable"


class ExhaustedError(ConflictError):
    """Conditional slot decrement matched no row."""
    code = "offer_exhausted"


class RateLimitedError(GroupShareError):
    status_code = 429
    code = "rate_limited"


class DependencyError(GroupShareError):
    status_code = 502
    code = "dependency_error"


class PaymentError(DependencyError):
    """Payment processor rejected or failed the charge; message is shown to the caller as is."""
    status_code = 500
    code = "payment_failed"
