"""
Domain exceptions for the booking core.

Each exception knows how it should surface over HTTP so routers and the
application-level handler never have to guess a status code. The taxonomy
keeps the three user-correctable failures apart: someone else took the slot
(ConflictError), the input was invalid (ValidationError), or the coupon did
not qualify (CouponRejected).
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.to_dict())


class ValidationError(DomainException):
    """Malformed or missing input; retrying the same request cannot succeed"""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(DomainException):
    """Unknown cart, item, service, coupon or booking id"""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(DomainException):
    """Requested slot is taken; the caller should pick another window"""

    status_code = status.HTTP_409_CONFLICT


class InvalidStateTransition(DomainException):
    """Booking cannot move to the requested status from its current one"""

    status_code = status.HTTP_409_CONFLICT


class CouponRejected(DomainException):
    """Coupon did not qualify; ``reason`` is meant to be shown to the customer"""

    status_code = 422

    def __init__(self, reason: str, reason_code: str, details: Optional[Dict[str, Any]] = None):
        self.reason = reason
        self.reason_code = reason_code
        merged = {"reason_code": reason_code}
        merged.update(details or {})
        super().__init__(reason, code="COUPON_REJECTED", details=merged)


class TransientStorageError(DomainException):
    """Connection loss, lock wait or statement timeout; safe to retry later"""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class StaleAdmissionToken(Exception):
    """Internal signal: a concurrent admission committed first, start over"""
