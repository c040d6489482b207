from datetime import date
from decimal import Decimal

import pytest

from src.availability.time_window import TimeWindow, overlaps, parse_clock, format_clock, parse_date
from src.exceptions import ValidationError

DAY = date(2030, 6, 15)

def window(start, end, day=DAY):
    return TimeWindow.from_strings(day, start, end)

def test_parse_clock_accepts_single_digit_hours():
    assert parse_clock("9:00") == parse_clock("09:00") == 540
    assert parse_clock("23:59") == 1439
    assert parse_clock("24:00") == 1440

@pytest.mark.parametrize("value", ["", "9", "9:0", "ab:cd", "12:60", "25:00", "-1:00"])
def test_parse_clock_rejects_malformed(value):
    with pytest.raises(ValidationError) as exc:
        parse_clock(value)
    assert exc.value.code == "INVALID_TIME"

def test_format_clock_pads():
    assert format_clock(540) == "09:00"
    assert format_clock(1440) == "24:00"

def test_parse_date():
    assert parse_date("2030-06-15") == DAY
    with pytest.raises(ValidationError) as exc:
        parse_date("15/06/2030")
    assert exc.value.code == "INVALID_DATE"

def test_window_requires_start_before_end():
    with pytest.raises(ValidationError) as exc:
        window("16:00", "14:00")
    assert exc.value.code == "NON_CHRONOLOGICAL_WINDOW"

    with pytest.raises(ValidationError):
        window("14:00", "14:00")

def test_window_may_end_at_midnight():
    w = window("22:00", "24:00")
    assert w.end_time == "24:00"
    assert w.hours == Decimal("2.00")

def test_hours_round_to_cents():
    assert window("14:00", "15:40").hours == Decimal("1.67")

def test_overlap_is_symmetric():
    a = window("14:00", "16:00")
    b = window("15:00", "17:00")
    assert overlaps(a, b) and overlaps(b, a)

def test_adjacent_windows_do_not_overlap():
    a = window("14:00", "16:00")
    b = window("16:00", "18:00")
    assert not overlaps(a, b)
    assert not overlaps(b, a)

def test_containment_overlaps():
    outer = window("10:00", "16:00")
    inner = window("14:00", "15:00")
    assert outer.overlaps(inner) and inner.overlaps(outer)

def test_different_dates_never_overlap():
    a = window("14:00", "16:00")
    b = window("14:00", "16:00", day=date(2030, 6, 16))
    assert not overlaps(a, b)

def test_leading_zero_does_not_change_identity():
    assert window("9:00", "13:00") == window("09:00", "13:00")
    assert overlaps(window("9:00", "10:00"), window("09:30", "11:00"))
