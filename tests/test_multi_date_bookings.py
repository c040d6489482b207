import threading
from datetime import date
from decimal import Decimal

import pytest

from src.bookings.booking_service import BookingService
from src.exceptions import ConflictError, ValidationError
from src.models import Booking, BookingDate, CartSlotLock

def count(database, model):
    with database.session_scope() as db:
        return db.query(model).count()

def run_in_parallel(target, arguments):
    barrier = threading.Barrier(len(arguments))
    outcomes = [None] * len(arguments)

    def worker(index, argument):
        barrier.wait()
        try:
            outcomes[index] = target(argument)
        except Exception as e:
            outcomes[index] = e

    threads = [threading.Thread(target=worker, args=(i, a)) for i, a in enumerate(arguments)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return outcomes

def window(day, start, end):
    return {"booking_date": day, "start_time": start, "end_time": end}

def test_admits_every_date_in_one_booking(booking_service, availability_service, make_request, ids):
    request = make_request(
        dates=[window("2030-07-02", "10:00", "13:00"), window("2030-07-01", "14:00", "16:00")],
        services=[{"service_id": ids["service_chef"], "quantity": 1}],
    )
    booking = booking_service.admit_booking(request)

    assert [(d.booking_date.isoformat(), d.start_minute, d.end_minute, d.cart_amount) for d in booking.dates] == [
        ("2030-07-01", 840, 960, Decimal("300.00")),
        ("2030-07-02", 600, 780, Decimal("450.00")),
    ]
    # The booking row carries the earliest window
    assert booking.booking_date == date(2030, 7, 1)
    assert booking.total_hours == Decimal("5.00")
    assert booking.cart_service_amount == Decimal("750.00")
    # Chef without explicit hours is billed for all 5 hours
    assert booking.services_amount == Decimal("175.00")
    assert booking.total_amount == Decimal("925.00")

    cart_id = ids["cart_taco"]
    for day in ("2030-07-01", "2030-07-02"):
        assert [s.booking_id for s in availability_service.get_booked_slots(cart_id, day)] == [booking.id]
    # The single-window fields are ignored once dates are given
    assert availability_service.get_booked_slots(cart_id, "2030-06-15") == []

def test_conflict_on_one_date_admits_none(booking_service, availability_service, make_request, database, ids):
    existing = booking_service.admit_booking(make_request(date="2030-07-02", start="10:00", end="12:00"))

    with pytest.raises(ConflictError) as exc:
        booking_service.admit_booking(make_request(
            dates=[window("2030-07-01", "14:00", "16:00"), window("2030-07-02", "11:00", "13:00")]
        ))
    assert exc.value.details["date"] == "2030-07-02"
    assert exc.value.details["conflicting_start_time"] == "10:00"

    assert count(database, Booking) == 1
    assert count(database, BookingDate) == 1
    # The token created for the free date went away with the rest of the attempt
    assert count(database, CartSlotLock) == 1
    assert availability_service.get_booked_slots(ids["cart_taco"], "2030-07-01") == []
    assert [s.booking_id for s in availability_service.get_booked_slots(ids["cart_taco"], "2030-07-02")] == [existing.id]

def test_adjacent_windows_on_one_date_share_a_token(booking_service, make_request, database):
    booking = booking_service.admit_booking(make_request(
        dates=[window("2030-07-01", "12:00", "14:00"), window("2030-07-01", "10:00", "12:00")]
    ))

    assert [(d.start_minute, d.end_minute) for d in booking.dates] == [(600, 720), (720, 840)]
    with database.session_scope() as db:
        assert [(lock.booking_date, lock.version) for lock in db.query(CartSlotLock).all()] == [(date(2030, 7, 1), 1)]

def test_requested_windows_must_not_overlap_each_other(booking_service, make_request, database):
    with pytest.raises(ValidationError) as exc:
        booking_service.admit_booking(make_request(
            dates=[window("2030-07-01", "10:00", "12:00"), window("2030-07-01", "11:00", "13:00")]
        ))
    assert [e["error_code"] for e in exc.value.details["errors"]] == ["OVERLAPPING_WINDOWS"]
    assert count(database, Booking) == 0

def test_each_requested_window_is_validated(booking_service, make_request):
    with pytest.raises(ValidationError) as exc:
        booking_service.admit_booking(make_request(
            dates=[window("2030-07-01", "10:00", "12:00"), window("2030-07-02", "14:00", None), window("2030-07-03", "9:00", "8:00")]
        ))
    errors = [(e["error_code"], e["field"]) for e in exc.value.details["errors"]]
    assert errors == [("MISSING_WINDOW", "dates[1].booking_date"), ("NON_CHRONOLOGICAL_WINDOW", "dates[2].start_time")]

def test_too_many_dates(booking_service, make_request):
    dates = [window(f"2030-08-{day:02d}", "10:00", "12:00") for day in range(1, 32)]
    dates.append(window("2030-09-01", "10:00", "12:00"))

    with pytest.raises(ValidationError) as exc:
        booking_service.admit_booking(make_request(dates=dates))
    assert exc.value.details["errors"][0]["error_code"] == "TOO_MANY_DATES"

def test_cancellation_frees_every_date(booking_service, availability_service, reconciler, make_request, ids):
    booking = booking_service.admit_booking(make_request(
        dates=[window("2030-07-01", "14:00", "16:00"), window("2030-07-03", "14:00", "16:00")]
    ))
    reconciler.cancel_booking(booking.id)

    grouped = availability_service.bulk_booked_slots(ids["cart_taco"], "2030-07-01", "2030-07-31")
    assert grouped == {}
    assert booking_service.admit_booking(make_request(date="2030-07-03")).status == "PENDING"

def test_bulk_availability_lists_each_date(booking_service, availability_service, make_request, ids):
    booking = booking_service.admit_booking(make_request(
        dates=[window("2030-07-01", "14:00", "16:00"), window("2030-07-03", "09:00", "11:00")]
    ))

    grouped = availability_service.bulk_booked_slots(ids["cart_taco"], "2030-07-01", "2030-07-31")
    assert sorted(grouped) == [date(2030, 7, 1), date(2030, 7, 3)]
    assert [s.window.start_time for s in grouped[date(2030, 7, 3)]] == ["09:00"]
    assert {s.booking_id for slots in grouped.values() for s in slots} == {booking.id}

def test_parallel_multi_date_requests_sharing_a_date(database, make_request):
    service = BookingService(database)
    requests = [
        make_request(dates=[window("2030-07-01", "14:00", "16:00"), window("2030-07-02", "14:00", "16:00")]),
        make_request(dates=[window("2030-07-03", "14:00", "16:00"), window("2030-07-02", "15:00", "17:00")]),
    ]

    outcomes = run_in_parallel(service.admit_booking, requests)

    assert sorted(type(o).__name__ for o in outcomes) == ["Booking", "ConflictError"]
    assert count(database, Booking) == 1
    assert count(database, BookingDate) == 2
