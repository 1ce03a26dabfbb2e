"""
Error taxonomy for the Sweet Shop service.

Every failure the service reports to a caller is one of these exceptions.
Each class carries the HTTP status it maps to and a stable `reason` string
so clients can tell, for example, an out-of-stock sweet from an order that
is simply too large.
"""


class SweetShopError(Exception):
    """Base class for all errors reported to API callers."""
    status_code = 500
    reason = "InternalError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SweetShopError):
    """Field values are malformed or out of range."""
    status_code = 400
    reason = "ValidationError"


class InvalidArgument(SweetShopError):
    """A quantity is missing, non-integer or not positive."""
    status_code = 400
    reason = "InvalidArgument"


class NotFound(SweetShopError):
    status_code = 404
    reason = "NotFound"


class OutOfStock(SweetShopError):
    """Purchase attempted against a sweet with zero quantity."""
    status_code = 400
    reason = "OutOfStock"


class InsufficientQuantity(SweetShopError):
    """Purchase quantity exceeds the available stock."""
    status_code = 400
    reason = "InsufficientQuantity"


class Unauthorized(SweetShopError):
    status_code = 401
    reason = "Unauthorized"


class Forbidden(SweetShopError):
    status_code = 403
    reason = "Forbidden"


class Conflict(SweetShopError):
    status_code = 409
    reason = "Conflict"
