"""
Domain exceptions

Every error raised by the auth flows carries an HTTP status, a stable code
and optionally the offending field names and values so clients can render
field-level errors without parsing the message.
"""

from typing import Any, List, Optional


class MarketplaceError(Exception):
    """Base exception for all marketplace errors"""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        fields: Optional[List[str]] = None,
        values: Optional[List[Any]] = None,
    ):
        self.message = message
        self.fields = fields
        self.values = values
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": True,
            "message": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "fields": self.fields,
            "values": self.values,
        }


class InvalidFormatError(MarketplaceError):
    """Malformed input such as a bad email, phone number or verification code"""
    status_code = 400
    code = "INVALID_FORMAT"


class InvalidRequestError(MarketplaceError):
    """Request is well-formed but not allowed for this account"""
    status_code = 400
    code = "INVALID_REQUEST"


class UnauthorizedError(MarketplaceError):
    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(MarketplaceError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(MarketplaceError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(MarketplaceError):
    """Duplicate email, phone, identity or vendor profile"""
    status_code = 409
    code = "CONFLICT"


class UpstreamFailureError(MarketplaceError):
    """Identity provider error not otherwise classified; message passed through"""
    status_code = 400
    code = "UPSTREAM_FAILURE"
