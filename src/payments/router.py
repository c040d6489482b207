from fastapi import APIRouter, Depends

from src.database import Database, get_database
from src.bookings.schemas import BookingOut
from src.bookings.booking_service import booking_to_dict
from src.payments.schemas import PaymentEvent, ReconciliationResponse, BookingStatusResponse
from src.payments.reconciler import PaymentReconciler

router = APIRouter()

@router.post("/reconcile", response_model=ReconciliationResponse)
def reconcile_payment(
    event: PaymentEvent,
    database: Database = Depends(get_database)
):
    """Apply a payment outcome (slip review or provider capture) to a booking"""
    result = PaymentReconciler(database).reconcile(event)

    if result.applied:
        message = f"Payment outcome '{event.outcome.value}' applied"
    else:
        message = f"Payment outcome '{event.outcome.value}' was already applied"

    return ReconciliationResponse(
        booking=BookingOut(**booking_to_dict(result.booking)),
        applied=result.applied,
        message=message
    )

@router.post("/bookings/{booking_id}/complete", response_model=BookingStatusResponse)
def complete_booking(
    booking_id: int,
    database: Database = Depends(get_database)
):
    """Mark a confirmed booking as completed after the event"""
    booking = PaymentReconciler(database).complete_booking(booking_id)

    return BookingStatusResponse(
        booking=BookingOut(**booking_to_dict(booking)),
        message="Booking marked as completed"
    )
