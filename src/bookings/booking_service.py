from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from src.config import settings
from src.database import Database
from src.models import (
    Booking, BookingDate, BookingItem, BookingServiceLine, CartSlotLock, Coupon, CouponUsage, PaymentSlip
)
from src.availability.time_window import TimeWindow, format_clock, overlaps
from src.availability.service import active_booking_dates_query, booked_slot_from_row
from src.bookings.schemas import BookingRequest, BookingStatus, DeliveryMethod, PaymentStatus, PaymentMethod
from src.bookings.validation import BookingValidator
from src.bookings.pricing import BookingPricer, BookingQuote
from src.coupons.service import CouponDecision, evaluate_coupon, to_money
from src.exceptions import (
    ConflictError, NotFoundError, StaleAdmissionToken, TransientStorageError, ValidationError
)
from src.logger import logger
from src.retry import retry_transient, translate_storage_errors

PRICE_TOLERANCE = Decimal("0.01")

@dataclass(frozen=True)
class SlotToken:
    """A (cart, date) admission token as read at the start of an attempt"""
    lock_id: int
    cart_id: int
    booking_date: date
    version: int

def describe_windows(windows: List[TimeWindow]) -> str:
    return ", ".join(str(window) for window in windows)

class BookingService:
    """Admits bookings without ever double-booking a cart.

    Every admission runs as one transaction that reads the per cart/day slot
    token of each requested date, re-checks overlaps against the current
    bookings, writes the booking with its per-date rows and children (and
    the coupon redemption), then compares-and-sets every token in date
    order. A failed compare-and-set means another admission for the same
    cart and day committed in between; the whole unit is rolled back and
    retried, and the retry sees the competing booking. A booking spanning
    several dates is admitted for all of them or for none.
    """

    def __init__(self, database: Database, max_attempts: Optional[int] = None):
        self.database = database
        self.max_attempts = max_attempts or settings.ADMISSION_MAX_ATTEMPTS
        self.validator = BookingValidator()

    def admit_booking(self, request: BookingRequest, now: Optional[datetime] = None) -> Booking:
        """Create a PENDING booking or raise a typed failure.

        Raises:
            ValidationError: malformed input, detected before any storage access
            NotFoundError: unknown cart, food item or service
            CouponRejected: coupon given but it does not qualify
            ConflictError: a window overlaps a PENDING/CONFIRMED booking
            TransientStorageError: storage unavailable or contention not resolved
        """
        windows = self.validator.require_valid(request)
        now = now or datetime.now()
        label = describe_windows(windows)

        logger.info(f"Booking request for cart {request.cart_id} at {label}")

        with translate_storage_errors("admit_booking.prepare"):
            with self.database.session_scope() as db:
                quote = BookingPricer(db).quote(request, windows)
                if request.pricing.coupon_code:
                    decision = self._evaluate_coupon(db, request, quote, now)
                    decision.raise_if_invalid()
                    self._check_quoted_total(request, quote, decision)
                else:
                    self._check_quoted_total(request, quote, None)

        for attempt in range(1, self.max_attempts + 1):
            try:
                with translate_storage_errors("admit_booking"):
                    with self.database.session_scope() as db:
                        booking = self._admit_once(db, request, quote, now)
                logger.info(
                    f"Booking {booking.id} admitted for cart {booking.cart_id} at {label} "
                    f"(total {booking.total_amount}, attempt {attempt})"
                )
                return booking
            except StaleAdmissionToken as e:
                logger.warning(f"Admission attempt {attempt}/{self.max_attempts} for cart {request.cart_id} at {label} lost a race: {e}")

        raise TransientStorageError(
            "Could not complete the booking because of concurrent activity, please retry",
            code="ADMISSION_CONTENTION",
            details={"attempts": self.max_attempts}
        )

    def _admit_once(
        self,
        db: Session,
        request: BookingRequest,
        quote: BookingQuote,
        now: datetime
    ) -> Booking:
        windows = [line.window for line in quote.dates]
        tokens = self._claim_slot_tokens(db, quote.cart_id, windows)

        conflict = self._find_overlap(db, quote.cart_id, windows)
        if conflict is not None:
            window, row = conflict
            slot = booked_slot_from_row(row)
            logger.warning(f"Slot conflict for cart {quote.cart_id}: {window} overlaps booking {slot.booking_id} ({slot.window})")
            raise ConflictError(
                "Time slot is already booked",
                code="SLOT_ALREADY_BOOKED",
                details={
                    "cart_id": quote.cart_id,
                    "date": window.date.isoformat(),
                    "start_time": window.start_time,
                    "end_time": window.end_time,
                    "conflicting_start_time": slot.window.start_time,
                    "conflicting_end_time": slot.window.end_time,
                }
            )

        decision = None
        discount = Decimal("0.00")
        if request.pricing.coupon_code:
            decision = self._evaluate_coupon(db, request, quote, now)
            decision.raise_if_invalid()
            discount = decision.discount_amount
            self._check_quoted_total(request, quote, decision)

        booking = self._build_booking(request, quote, discount)
        db.add(booking)
        db.flush()

        if request.payment_method == PaymentMethod.BANK_TRANSFER.value:
            db.add(PaymentSlip(booking_id=booking.id, file_path=request.payment_slip_url, status="PENDING"))

        if decision is not None:
            self._redeem_coupon(db, decision, booking)

        self._advance_slot_tokens(db, tokens)
        db.flush()

        # Reload with server defaults and children populated for use after commit
        db.expire(booking)
        return load_booking(db, booking.id)

    def _claim_slot_tokens(self, db: Session, cart_id: int, windows: List[TimeWindow]) -> List[SlotToken]:
        """Read (creating where missing) the token of every requested date, in date order"""
        tokens = []
        for day in sorted({window.date for window in windows}):
            lock = self._find_slot_lock(db, cart_id, day)
            if lock is None:
                lock = CartSlotLock(cart_id=cart_id, booking_date=day, version=0)
                db.add(lock)
                try:
                    db.flush()
                except IntegrityError as e:
                    # Another admission created the token for this cart/day first
                    raise StaleAdmissionToken(f"slot token for cart {cart_id} on {day} created concurrently") from e
            tokens.append(SlotToken(lock_id=lock.id, cart_id=cart_id, booking_date=day, version=lock.version))
        return tokens

    def _find_slot_lock(self, db: Session, cart_id: int, day: date) -> Optional[CartSlotLock]:
        return db.query(CartSlotLock).filter(
            CartSlotLock.cart_id == cart_id,
            CartSlotLock.booking_date == day
        ).first()

    def _advance_slot_tokens(self, db: Session, tokens: List[SlotToken]):
        for token in tokens:
            rows = db.query(CartSlotLock).filter(
                CartSlotLock.id == token.lock_id,
                CartSlotLock.version == token.version
            ).update({CartSlotLock.version: token.version + 1}, synchronize_session=False)
            if rows != 1:
                raise StaleAdmissionToken(
                    f"slot token for cart {token.cart_id} on {token.booking_date} moved past {token.version}"
                )

    def _find_overlap(
        self, db: Session, cart_id: int, windows: List[TimeWindow]
    ) -> Optional[Tuple[TimeWindow, BookingDate]]:
        """First requested window that collides with an active booking, with the row it hits"""
        rows = active_booking_dates_query(db, cart_id).filter(
            BookingDate.booking_date.in_(sorted({window.date for window in windows}))
        ).order_by(BookingDate.booking_date, BookingDate.start_minute).all()
        for window in windows:
            for row in rows:
                if overlaps(window, TimeWindow(row.booking_date, row.start_minute, row.end_minute)):
                    return window, row
        return None

    def _evaluate_coupon(self, db: Session, request: BookingRequest, quote: BookingQuote, now: datetime) -> CouponDecision:
        return evaluate_coupon(
            db,
            request.pricing.coupon_code,
            quote.subtotal,
            cart_ids=[quote.cart_id],
            service_ids=quote.service_ids,
            now=now
        )

    def _redeem_coupon(self, db: Session, decision: CouponDecision, booking: Booking):
        coupon = decision.coupon
        if coupon.usage_limit is not None:
            # Serializes redemptions of limited coupons across carts and dates
            rows = db.query(Coupon).filter(
                Coupon.id == coupon.id,
                Coupon.version_id == decision.coupon_version
            ).update({Coupon.version_id: decision.coupon_version + 1}, synchronize_session=False)
            if rows != 1:
                raise StaleAdmissionToken(f"coupon {coupon.code} redeemed concurrently")

        usage = CouponUsage(coupon=coupon, booking_id=booking.id, discount_amount=decision.discount_amount)
        db.add(usage)
        logger.info(f"Coupon {coupon.code} redeemed by booking {booking.id} (discount {decision.discount_amount})")

    def _check_quoted_total(self, request: BookingRequest, quote: BookingQuote, decision: Optional[CouponDecision]):
        if request.pricing.quoted_total is None:
            return
        discount = decision.discount_amount if decision is not None else Decimal("0.00")
        expected = to_money(quote.subtotal - discount)
        if abs(to_money(request.pricing.quoted_total) - expected) > PRICE_TOLERANCE:
            raise ValidationError(
                "Quoted total does not match the current price",
                code="PRICE_MISMATCH",
                details={"quoted_total": str(request.pricing.quoted_total), "expected_total": str(expected)}
            )

    def _build_booking(self, request: BookingRequest, quote: BookingQuote, discount: Decimal) -> Booking:
        customer = request.customer
        shipping = request.shipping if request.delivery_method == DeliveryMethod.SHIPPING.value else None
        # The booking row carries the earliest window; every window gets a BookingDate row
        first = quote.dates[0].window
        booking = Booking(
            cart_id=quote.cart_id,
            booking_date=first.date,
            start_minute=first.start,
            end_minute=first.end,
            total_hours=quote.total_hours,
            customer_first_name=customer.first_name,
            customer_last_name=customer.last_name,
            customer_email=customer.email,
            customer_phone=customer.phone,
            customer_address=customer.address,
            customer_city=customer.city,
            customer_state=customer.state,
            customer_zip=customer.zip,
            customer_country=customer.country,
            event_type=request.event_type,
            guest_count=request.guest_count,
            special_notes=request.special_notes,
            delivery_method=request.delivery_method or DeliveryMethod.PICKUP.value,
            shipping_address=shipping.address if shipping else None,
            shipping_city=shipping.city if shipping else None,
            shipping_state=shipping.state if shipping else None,
            shipping_zip=shipping.zip if shipping else None,
            cart_service_amount=quote.cart_service_amount,
            services_amount=quote.services_amount,
            food_amount=quote.food_amount,
            shipping_amount=quote.shipping_amount,
            discount_amount=discount,
            total_amount=to_money(quote.subtotal - discount),
            status=BookingStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            payment_method=request.payment_method,
            transaction_id=request.transaction_id,
        )
        booking.dates = [
            BookingDate(
                booking_date=line.window.date,
                start_minute=line.window.start,
                end_minute=line.window.end,
                total_hours=line.window.hours,
                cart_amount=line.cart_amount
            )
            for line in quote.dates
        ]
        booking.items = [
            BookingItem(
                food_item_id=line.food_item_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=line.line_total
            )
            for line in quote.items
        ]
        booking.services = [
            BookingServiceLine(
                service_id=line.service_id,
                quantity=line.quantity,
                hours=line.hours,
                price_per_hour=line.price_per_hour,
                line_total=line.line_total
            )
            for line in quote.services
        ]
        return booking

    @retry_transient()
    def get_booking(self, booking_id: int) -> Booking:
        """Load a booking with its dates, line items, services and coupon"""
        with translate_storage_errors("get_booking"):
            with self.database.session_scope() as db:
                return load_booking(db, booking_id)

def load_booking(db: Session, booking_id: int, for_update: bool = False) -> Booking:
    if for_update:
        # Row lock first; FOR UPDATE does not mix with the eager-load joins
        db.query(Booking.id).filter(Booking.id == booking_id).with_for_update().first()
    booking = db.query(Booking).options(
        joinedload(Booking.dates),
        joinedload(Booking.items),
        joinedload(Booking.services),
        joinedload(Booking.coupon_usage).joinedload(CouponUsage.coupon)
    ).filter(Booking.id == booking_id).first()
    if not booking:
        raise NotFoundError("Booking not found", code="BOOKING_NOT_FOUND", details={"booking_id": booking_id})
    return booking

def booking_to_dict(booking: Booking) -> Dict:
    """Flatten a loaded booking for the API response"""
    window = TimeWindow(booking.booking_date, booking.start_minute, booking.end_minute)
    usage = booking.coupon_usage
    return {
        "id": booking.id,
        "cart_id": booking.cart_id,
        "booking_date": booking.booking_date,
        "start_time": window.start_time,
        "end_time": window.end_time,
        "total_hours": booking.total_hours,
        "customer_first_name": booking.customer_first_name,
        "customer_last_name": booking.customer_last_name,
        "customer_email": booking.customer_email,
        "customer_phone": booking.customer_phone,
        "event_type": booking.event_type,
        "guest_count": booking.guest_count,
        "delivery_method": booking.delivery_method,
        "shipping_address": booking.shipping_address,
        "shipping_city": booking.shipping_city,
        "shipping_state": booking.shipping_state,
        "shipping_zip": booking.shipping_zip,
        "cart_service_amount": booking.cart_service_amount,
        "services_amount": booking.services_amount,
        "food_amount": booking.food_amount,
        "shipping_amount": booking.shipping_amount,
        "discount_amount": booking.discount_amount,
        "total_amount": booking.total_amount,
        "status": booking.status,
        "payment_status": booking.payment_status,
        "payment_method": booking.payment_method,
        "transaction_id": booking.transaction_id,
        "coupon_code": usage.coupon.code if usage is not None and usage.coupon is not None else None,
        "dates": [
            {
                "booking_date": row.booking_date,
                "start_time": format_clock(row.start_minute),
                "end_time": format_clock(row.end_minute),
                "total_hours": row.total_hours,
                "cart_amount": row.cart_amount,
            }
            for row in booking.dates
        ],
        "items": list(booking.items),
        "services": list(booking.services),
        "created_at": booking.created_at,
    }
