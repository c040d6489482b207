from typing import List, Dict, Optional, Iterable, Tuple
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from collections import defaultdict

from sqlalchemy.orm import Session, contains_eager

from src.database import Database
from src.models import Booking, BookingDate
from src.availability.time_window import TimeWindow, overlaps, parse_clock, parse_date
from src.exceptions import ValidationError
from src.retry import retry_transient, translate_storage_errors

# Statuses that hold a slot
ACTIVE_BOOKING_STATUSES = ("PENDING", "CONFIRMED")

# Standard daily slot menu offered to customers
STANDARD_SLOTS: List[Tuple[str, str, Decimal]] = [
    ("09:00", "13:00", Decimal("150.00")),
    ("14:00", "18:00", Decimal("150.00")),
    ("19:00", "23:00", Decimal("180.00")),  # Evening premium
    ("10:00", "16:00", Decimal("200.00")),  # Extended day slot
]

@dataclass(frozen=True)
class BookedSlot:
    window: TimeWindow
    booking_id: int
    customer_display_name: str
    status: str

    def to_dict(self) -> Dict:
        return {
            "booking_id": self.booking_id,
            "date": self.window.date,
            "start_time": self.window.start_time,
            "end_time": self.window.end_time,
            "customer_name": self.customer_display_name,
            "status": self.status,
        }

@dataclass(frozen=True)
class WindowCheck:
    window: TimeWindow
    available: bool
    conflict: Optional[BookedSlot] = None

def booked_slot_from_row(row: BookingDate) -> BookedSlot:
    booking = row.booking
    return BookedSlot(
        window=TimeWindow(row.booking_date, row.start_minute, row.end_minute),
        booking_id=booking.id,
        customer_display_name=f"{booking.customer_first_name} {booking.customer_last_name}".strip(),
        status=booking.status,
    )

def active_booking_dates_query(db: Session, cart_id: int):
    """Reserved windows of bookings that currently hold a slot for the cart"""
    return db.query(BookingDate).join(BookingDate.booking).options(
        contains_eager(BookingDate.booking)
    ).filter(
        Booking.cart_id == cart_id,
        Booking.status.in_(ACTIVE_BOOKING_STATUSES)
    )

def find_conflict(window: TimeWindow, slots: Iterable[BookedSlot]) -> Optional[BookedSlot]:
    for slot in slots:
        if overlaps(window, slot.window):
            return slot
    return None

class AvailabilityService:
    """Read-only, advisory view of which windows a cart has free.

    Nothing here reserves anything: a window reported free can be taken
    before the caller submits, admission re-checks inside its transaction.
    """

    def __init__(self, database: Database):
        self.database = database

    @retry_transient()
    def get_booked_slots(self, cart_id: int, day) -> List[BookedSlot]:
        """PENDING/CONFIRMED slots for the cart on one date, ordered by start"""
        day = parse_date(day)
        with translate_storage_errors("get_booked_slots"):
            with self.database.session_scope() as db:
                rows = active_booking_dates_query(db, cart_id).filter(
                    BookingDate.booking_date == day
                ).order_by(BookingDate.start_minute, Booking.id).all()
                return [booked_slot_from_row(row) for row in rows]

    def is_available(self, cart_id: int, day, window: TimeWindow) -> bool:
        day = parse_date(day)
        if window.date != day:
            raise ValidationError("Window date does not match the requested date", code="DATE_MISMATCH")
        return find_conflict(window, self.get_booked_slots(cart_id, day)) is None

    @retry_transient()
    def bulk_booked_slots(self, cart_id: int, start_date, end_date) -> Dict[date, List[BookedSlot]]:
        """Booked slots grouped by date across an inclusive range"""
        start_date, end_date = parse_date(start_date), parse_date(end_date)
        if end_date < start_date:
            raise ValidationError("end_date must not be before start_date", code="INVALID_DATE_RANGE")

        grouped: Dict[date, List[BookedSlot]] = defaultdict(list)
        with translate_storage_errors("bulk_booked_slots"):
            with self.database.session_scope() as db:
                rows = active_booking_dates_query(db, cart_id).filter(
                    BookingDate.booking_date >= start_date,
                    BookingDate.booking_date <= end_date
                ).order_by(BookingDate.booking_date, BookingDate.start_minute, Booking.id).all()
                for row in rows:
                    grouped[row.booking_date].append(booked_slot_from_row(row))
        return dict(grouped)

    def check_windows(self, cart_id: int, candidates: List[TimeWindow]) -> List[WindowCheck]:
        """Per-candidate availability with the first conflicting slot, one query for all dates"""
        if not candidates:
            return []
        dates = sorted({c.date for c in candidates})
        booked = self._booked_slots_on_dates(cart_id, dates)

        results = []
        for candidate in candidates:
            conflict = find_conflict(candidate, booked.get(candidate.date, []))
            results.append(WindowCheck(window=candidate, available=conflict is None, conflict=conflict))
        return results

    def get_slot_options(self, cart_id: int, day) -> List[Dict]:
        """The standard slot menu for a date, each flagged free or busy"""
        day = parse_date(day)
        booked = self.get_booked_slots(cart_id, day)
        options = []
        for start_time, end_time, price in STANDARD_SLOTS:
            window = TimeWindow(day, parse_clock(start_time), parse_clock(end_time))
            options.append({
                "start_time": start_time,
                "end_time": end_time,
                "price": price,
                "is_available": find_conflict(window, booked) is None,
            })
        return options

    @retry_transient()
    def _booked_slots_on_dates(self, cart_id: int, dates: List[date]) -> Dict[date, List[BookedSlot]]:
        grouped: Dict[date, List[BookedSlot]] = defaultdict(list)
        with translate_storage_errors("check_windows"):
            with self.database.session_scope() as db:
                rows = active_booking_dates_query(db, cart_id).filter(
                    BookingDate.booking_date.in_(dates)
                ).order_by(BookingDate.booking_date, BookingDate.start_minute).all()
                for row in rows:
                    grouped[row.booking_date].append(booked_slot_from_row(row))
        return grouped
