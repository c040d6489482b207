"""
Coupons Module

Discount coupon validation for booking orders:

- service.py: Ordered coupon checks and discount computation
- router.py: FastAPI endpoint for read-only coupon validation
- schemas.py: Coupon enums, request and response models

Validation never records a redemption. A CouponUsage row is written only by
booking admission, in the same transaction that creates the booking.
"""

from .router import router
from .service import CouponEvaluator, CouponDecision, evaluate_coupon, compute_discount, to_money
from .schemas import (
    CouponType, CouponStatus, RejectionCode,
    CouponValidationRequest, CouponValidationResponse
)

__all__ = [
    "router",
    "CouponEvaluator",
    "CouponDecision",
    "evaluate_coupon",
    "compute_discount",
    "to_money",
    "CouponType",
    "CouponStatus",
    "RejectionCode",
    "CouponValidationRequest",
    "CouponValidationResponse"
]
