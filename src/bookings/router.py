from fastapi import APIRouter, Depends, status
from typing import Optional

from src.database import Database, get_database
from src.bookings.schemas import BookingRequest, BookingOut, BookingCreatedResponse, BookingCancellationRequest
from src.bookings.booking_service import BookingService, booking_to_dict
from src.payments.reconciler import PaymentReconciler
from src.payments.schemas import BookingStatusResponse

router = APIRouter()

@router.post("", response_model=BookingCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    request: BookingRequest,
    database: Database = Depends(get_database)
):
    """Reserve a cart for a time window.

    The booking is created PENDING; payment reconciliation confirms it.
    Overlapping an active booking returns 409, an unusable coupon 422.
    """
    booking = BookingService(database).admit_booking(request)

    return BookingCreatedResponse(
        booking=BookingOut(**booking_to_dict(booking)),
        message="Booking created successfully! Awaiting payment confirmation."
    )

@router.get("/{booking_id}", response_model=BookingOut)
def get_booking(
    booking_id: int,
    database: Database = Depends(get_database)
):
    """Get booking details by ID"""
    booking = BookingService(database).get_booking(booking_id)
    return BookingOut(**booking_to_dict(booking))

@router.post("/{booking_id}/cancel", response_model=BookingStatusResponse)
def cancel_booking(
    booking_id: int,
    request: Optional[BookingCancellationRequest] = None,
    database: Database = Depends(get_database)
):
    """Cancel a booking and release its time window"""
    booking = PaymentReconciler(database).cancel_booking(booking_id, reason=request.cancellation_reason if request else None)

    return BookingStatusResponse(
        booking=BookingOut(**booking_to_dict(booking)),
        message="Booking cancelled successfully"
    )
