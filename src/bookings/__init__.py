"""
Booking Module

Booking admission for food cart events:

- booking_service.py: Admission transaction (per-date slot tokens, overlap re-check, coupon redemption)
- validation.py: Request checks that run before any storage access
- pricing.py: Server-side quote from the cart, food and service catalogue
- router.py: FastAPI endpoints to create, fetch and cancel bookings
- schemas.py: Pydantic models for booking requests and responses

Two active bookings (PENDING or CONFIRMED) of the same cart never overlap.
"""

from .router import router
from .booking_service import BookingService, load_booking, booking_to_dict
from .validation import BookingValidator
from .pricing import BookingPricer, BookingQuote, DateLine
from .schemas import (
    BookingRequest, BookingOut, BookingCreatedResponse, BookingCancellationRequest,
    BookingStatus, PaymentStatus, PaymentMethod, DeliveryMethod, CustomerInfo, ShippingInfo,
    BookingWindowRequest, BookingDateOut, SelectedItem, SelectedService, PricingRequest
)

__all__ = [
    "router",
    "BookingService",
    "load_booking",
    "booking_to_dict",
    "BookingValidator",
    "BookingPricer",
    "BookingQuote",
    "DateLine",
    "BookingRequest",
    "BookingOut",
    "BookingCreatedResponse",
    "BookingCancellationRequest",
    "BookingStatus",
    "PaymentStatus",
    "PaymentMethod",
    "DeliveryMethod",
    "CustomerInfo",
    "ShippingInfo",
    "BookingWindowRequest",
    "BookingDateOut",
    "SelectedItem",
    "SelectedService",
    "PricingRequest"
]
