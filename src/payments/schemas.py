from pydantic import BaseModel, Field, validator
from typing import Optional
from decimal import Decimal
from enum import Enum

from src.bookings.schemas import BookingOut

class PaymentOutcome(str, Enum):
    """Result reported by an admin review or the payment provider"""
    VERIFIED = "verified"   # bank slip accepted
    REJECTED = "rejected"   # bank slip refused
    CAPTURED = "captured"   # provider capture completed
    FAILED = "failed"       # provider capture failed

    @property
    def is_positive(self) -> bool:
        return self in (PaymentOutcome.VERIFIED, PaymentOutcome.CAPTURED)

    @property
    def is_capture(self) -> bool:
        return self in (PaymentOutcome.CAPTURED, PaymentOutcome.FAILED)

class SlipStatus(str, Enum):
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"

class CaptureStatus(str, Enum):
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

class PaymentEvent(BaseModel):
    """One payment outcome to apply to a booking"""
    booking_id: int
    outcome: PaymentOutcome
    external_reference_id: Optional[str] = Field(
        None, description="Provider capture id, or the payment slip id for slip outcomes"
    )
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    notes: Optional[str] = None
    verified_by: Optional[str] = None

    @validator('external_reference_id', always=True)
    def capture_needs_reference(cls, v, values):
        outcome = values.get('outcome')
        if outcome is not None and outcome.is_capture and not v:
            raise ValueError('external_reference_id is required for capture outcomes')
        return v

class ReconciliationResponse(BaseModel):
    success: bool = True
    booking: BookingOut
    applied: bool = Field(..., description="False when the event was an idempotent replay")
    message: str

class BookingStatusResponse(BaseModel):
    success: bool = True
    booking: BookingOut
    message: str
