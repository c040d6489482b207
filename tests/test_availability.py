from datetime import date

import pytest

from src.availability.service import STANDARD_SLOTS
from src.availability.time_window import TimeWindow
from src.exceptions import ValidationError

DAY = date(2030, 6, 15)

def slot_options_by_start(options):
    return {(o["start_time"], o["end_time"]): o["is_available"] for o in options}

def test_empty_day_has_everything_free(availability_service, ids):
    cart_id = ids["cart_taco"]
    assert availability_service.get_booked_slots(cart_id, DAY) == []

    options = availability_service.get_slot_options(cart_id, DAY)
    assert len(options) == len(STANDARD_SLOTS)
    assert all(o["is_available"] for o in options)

def test_booked_slots_listed_in_start_order(availability_service, booking_service, make_request, ids):
    booking_service.admit_booking(make_request(start="18:00", end="20:00"))
    booking_service.admit_booking(make_request(start="9:00", end="11:00"))

    slots = availability_service.get_booked_slots(ids["cart_taco"], "2030-06-15")
    assert [(s.window.start_time, s.window.end_time) for s in slots] == [("09:00", "11:00"), ("18:00", "20:00")]
    assert slots[0].customer_display_name == "Ada Lovelace"
    assert slots[0].status == "PENDING"

def test_slot_options_reflect_bookings(availability_service, booking_service, make_request, ids):
    booking_service.admit_booking(make_request(start="14:00", end="16:00"))

    options = slot_options_by_start(availability_service.get_slot_options(ids["cart_taco"], DAY))
    assert options[("09:00", "13:00")] is True
    assert options[("14:00", "18:00")] is False
    assert options[("19:00", "23:00")] is True
    assert options[("10:00", "16:00")] is False

def test_is_available(availability_service, booking_service, make_request, ids):
    booking_service.admit_booking(make_request(start="14:00", end="16:00"))
    cart_id = ids["cart_taco"]

    assert availability_service.is_available(cart_id, DAY, TimeWindow.from_strings(DAY, "16:00", "18:00"))
    assert not availability_service.is_available(cart_id, DAY, TimeWindow.from_strings(DAY, "15:00", "17:00"))
    # Other carts are unaffected
    assert availability_service.is_available(ids["cart_crepe"], DAY, TimeWindow.from_strings(DAY, "15:00", "17:00"))

def test_is_available_rejects_mismatched_date(availability_service, ids):
    with pytest.raises(ValidationError) as exc:
        availability_service.is_available(ids["cart_taco"], DAY, TimeWindow.from_strings("2030-06-16", "10:00", "11:00"))
    assert exc.value.code == "DATE_MISMATCH"

def test_cancelled_bookings_free_their_slot(availability_service, booking_service, reconciler, make_request, ids):
    booking = booking_service.admit_booking(make_request(start="14:00", end="16:00"))
    reconciler.cancel_booking(booking.id)

    assert availability_service.get_booked_slots(ids["cart_taco"], DAY) == []

def test_bulk_groups_by_date(availability_service, booking_service, make_request, ids):
    booking_service.admit_booking(make_request(date="2030-06-15", start="10:00", end="12:00"))
    booking_service.admit_booking(make_request(date="2030-06-15", start="14:00", end="16:00"))
    booking_service.admit_booking(make_request(date="2030-06-17", start="10:00", end="12:00"))
    booking_service.admit_booking(make_request(date="2030-07-01", start="10:00", end="12:00"))

    grouped = availability_service.bulk_booked_slots(ids["cart_taco"], "2030-06-15", "2030-06-30")
    assert sorted(grouped) == [date(2030, 6, 15), date(2030, 6, 17)]
    assert len(grouped[date(2030, 6, 15)]) == 2

def test_bulk_rejects_inverted_range(availability_service, ids):
    with pytest.raises(ValidationError) as exc:
        availability_service.bulk_booked_slots(ids["cart_taco"], "2030-06-30", "2030-06-15")
    assert exc.value.code == "INVALID_DATE_RANGE"

def test_check_windows_reports_each_candidate(availability_service, booking_service, make_request, ids):
    booking = booking_service.admit_booking(make_request(start="14:00", end="16:00"))

    candidates = [
        TimeWindow.from_strings("2030-06-15", "15:00", "17:00"),
        TimeWindow.from_strings("2030-06-15", "16:00", "18:00"),
        TimeWindow.from_strings("2030-06-16", "14:00", "16:00"),
    ]
    checks = availability_service.check_windows(ids["cart_taco"], candidates)

    assert [c.available for c in checks] == [False, True, True]
    assert checks[0].conflict.booking_id == booking.id
    assert checks[1].conflict is None
