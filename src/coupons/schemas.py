from pydantic import BaseModel, Field, validator
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum

class CouponType(str, Enum):
    """Coupon discount type"""
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"

class CouponStatus(str, Enum):
    """Coupon status"""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"

class RejectionCode(str, Enum):
    """Why a coupon did not qualify, in evaluation order"""
    NOT_FOUND = "NOT_FOUND"
    INACTIVE = "INACTIVE"
    NOT_YET_VALID = "NOT_YET_VALID"
    EXPIRED = "EXPIRED"
    BELOW_MINIMUM = "BELOW_MINIMUM"
    USAGE_LIMIT_REACHED = "USAGE_LIMIT_REACHED"
    CART_NOT_ELIGIBLE = "CART_NOT_ELIGIBLE"
    SERVICE_NOT_ELIGIBLE = "SERVICE_NOT_ELIGIBLE"

class CouponValidationRequest(BaseModel):
    """Request to check a coupon against an order"""
    coupon_code: str = Field(..., min_length=1)
    order_amount: Decimal = Field(..., ge=0)
    cart_ids: List[int] = Field(default_factory=list)
    service_ids: List[int] = Field(default_factory=list)

    @validator('coupon_code')
    def normalize_code(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Coupon code is required')
        return v.upper()

class CouponSummary(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    type: CouponType
    value: Decimal

    class Config:
        from_attributes = True

class CouponValidationResponse(BaseModel):
    """Coupon decision; reason is set only when valid is False"""
    valid: bool
    original_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    reason: Optional[str] = None
    reason_code: Optional[RejectionCode] = None
    coupon: Optional[CouponSummary] = None
    message: Optional[str] = None
    checked_at: datetime = Field(default_factory=datetime.now)
