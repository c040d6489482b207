from typing import Optional
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.config import settings
from src.database import Database
from src.models import Booking, PaymentCapture, PaymentSlip
from src.bookings.booking_service import load_booking
from src.bookings.schemas import BookingStatus, PaymentStatus
from src.coupons.service import to_money
from src.payments.schemas import CaptureStatus, PaymentEvent, PaymentOutcome, SlipStatus
from src.exceptions import ConflictError, InvalidStateTransition, NotFoundError, ValidationError
from src.logger import logger
from src.retry import translate_storage_errors

TERMINAL_STATUSES = (BookingStatus.CANCELLED.value, BookingStatus.COMPLETED.value)

@dataclass
class ReconciliationResult:
    booking: Booking
    applied: bool

class PaymentReconciler:
    """Applies payment outcomes and admin status changes to bookings.

    The booking row and its payment artifact (slip or capture) always change
    in the same transaction.
    """

    def __init__(self, database: Database):
        self.database = database

    def reconcile(self, event: PaymentEvent, now: Optional[datetime] = None) -> ReconciliationResult:
        """Apply one payment event.

        Raises:
            NotFoundError: unknown booking, or no matching payment slip
            InvalidStateTransition: booking is terminal, or a negative outcome hits a CONFIRMED booking
            ConflictError: capture reference already belongs to another booking
        """
        now = now or datetime.now(timezone.utc)

        with translate_storage_errors("reconcile"):
            with self.database.session_scope() as db:
                booking = load_booking(db, event.booking_id, for_update=True)

                if event.outcome.is_capture:
                    applied = self._apply_capture(db, booking, event)
                else:
                    applied = self._apply_slip(db, booking, event, now)

                db.flush()
                db.expire(booking)
                booking = load_booking(db, event.booking_id)

        if applied:
            logger.info(
                f"Booking {booking.id} reconciled with '{event.outcome.value}': "
                f"status={booking.status}, payment_status={booking.payment_status}"
            )
        else:
            logger.info(f"Booking {booking.id}: '{event.outcome.value}' already applied, nothing to do")
        return ReconciliationResult(booking=booking, applied=applied)

    def _apply_slip(self, db: Session, booking: Booking, event: PaymentEvent, now: datetime) -> bool:
        if not self._accepts(booking, event.outcome):
            return False

        slip = self._find_slip(db, booking, event.external_reference_id)
        if event.outcome == PaymentOutcome.VERIFIED:
            slip.status = SlipStatus.VERIFIED.value
            booking.status = BookingStatus.CONFIRMED.value
            booking.payment_status = PaymentStatus.PAID.value
        else:
            slip.status = SlipStatus.REJECTED.value
            booking.payment_status = PaymentStatus.FAILED.value

        slip.verified_at = now
        slip.verified_by = event.verified_by
        if event.notes:
            slip.admin_notes = event.notes
        return True

    def _apply_capture(self, db: Session, booking: Booking, event: PaymentEvent) -> bool:
        reference = event.external_reference_id
        existing = db.query(PaymentCapture).filter(PaymentCapture.external_reference_id == reference).first()
        if existing:
            if existing.booking_id != booking.id:
                raise ConflictError(
                    "Payment reference already recorded for another booking",
                    code="CAPTURE_REFERENCE_IN_USE",
                    details={"external_reference_id": reference, "booking_id": existing.booking_id}
                )
            # Provider redelivery
            return False

        if not self._accepts(booking, event.outcome):
            return False

        if event.outcome == PaymentOutcome.CAPTURED:
            capture_status = CaptureStatus.COMPLETED.value
            booking.status = BookingStatus.CONFIRMED.value
            booking.payment_status = PaymentStatus.PAID.value
        else:
            capture_status = CaptureStatus.FAILED.value
            booking.payment_status = PaymentStatus.FAILED.value

        amount = to_money(event.amount) if event.amount is not None else booking.total_amount
        if event.outcome == PaymentOutcome.CAPTURED and abs(amount - Decimal(booking.total_amount)) > Decimal("0.01"):
            logger.warning(f"Capture {reference} for booking {booking.id} is {amount}, booking total is {booking.total_amount}")

        db.add(PaymentCapture(
            booking_id=booking.id,
            external_reference_id=reference,
            status=capture_status,
            amount=amount,
            currency=(event.currency or settings.CURRENCY).upper()
        ))
        try:
            db.flush()
        except IntegrityError as e:
            raise ConflictError(
                "Payment reference recorded concurrently",
                code="CAPTURE_REFERENCE_IN_USE",
                details={"external_reference_id": reference}
            ) from e
        return True

    def _accepts(self, booking: Booking, outcome: PaymentOutcome) -> bool:
        """Decide whether an outcome changes the booking; raise if it may not"""
        if booking.status in TERMINAL_STATUSES:
            raise InvalidStateTransition(
                f"Cannot apply '{outcome.value}' to a {booking.status.lower()} booking",
                code="BOOKING_CLOSED",
                details={"booking_id": booking.id, "status": booking.status, "outcome": outcome.value}
            )
        if booking.status == BookingStatus.CONFIRMED.value:
            if outcome.is_positive:
                return False
            raise InvalidStateTransition(
                f"Cannot apply '{outcome.value}' to a confirmed booking",
                code="BOOKING_ALREADY_CONFIRMED",
                details={"booking_id": booking.id, "status": booking.status, "outcome": outcome.value}
            )
        return True

    def _find_slip(self, db: Session, booking: Booking, reference: Optional[str]) -> PaymentSlip:
        query = db.query(PaymentSlip).filter(PaymentSlip.booking_id == booking.id)
        if reference:
            try:
                slip_id = int(reference)
            except ValueError:
                raise ValidationError("Slip reference must be a payment slip id", code="INVALID_SLIP_REFERENCE",
                                      details={"external_reference_id": reference})
            query = query.filter(PaymentSlip.id == slip_id)
        slip = query.order_by(PaymentSlip.id.desc()).first()
        if not slip:
            raise NotFoundError("Payment slip not found", code="PAYMENT_SLIP_NOT_FOUND",
                                details={"booking_id": booking.id, "external_reference_id": reference})
        return slip

    def cancel_booking(self, booking_id: int, reason: Optional[str] = None) -> Booking:
        """Cancel from any open status; the window becomes free again"""
        return self._transition(booking_id, BookingStatus.CANCELLED, reason=reason)

    def complete_booking(self, booking_id: int) -> Booking:
        """Mark a confirmed booking as served"""
        return self._transition(booking_id, BookingStatus.COMPLETED, required=BookingStatus.CONFIRMED)

    def _transition(
        self,
        booking_id: int,
        target: BookingStatus,
        required: Optional[BookingStatus] = None,
        reason: Optional[str] = None
    ) -> Booking:
        with translate_storage_errors(f"booking.{target.value.lower()}"):
            with self.database.session_scope() as db:
                booking = load_booking(db, booking_id, for_update=True)
                previous = booking.status
                if previous in TERMINAL_STATUSES or (required is not None and previous != required.value):
                    raise InvalidStateTransition(
                        f"Cannot move a {previous.lower()} booking to {target.value.lower()}",
                        code="INVALID_STATUS_TRANSITION",
                        details={"booking_id": booking_id, "status": previous, "target": target.value}
                    )
                booking.status = target.value
                db.flush()
                db.expire(booking)
                booking = load_booking(db, booking_id)

        suffix = f" ({reason})" if reason else ""
        logger.info(f"Booking {booking_id} moved {previous} -> {target.value}{suffix}")
        return booking
