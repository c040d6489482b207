"""
Time windows for cart reservations.

Times are normalized to integer minutes since midnight so "9:00" and
"09:00" compare equal; 1440 is accepted as an end time meaning 24:00.
Windows are half-open: [start, end).
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Union

from src.exceptions import ValidationError

MINUTES_PER_DAY = 24 * 60


def parse_clock(value: Union[str, int]) -> int:
    """Convert "H:MM" / "HH:MM" (or an already-normalized int) to minutes"""
    if isinstance(value, bool):
        raise ValidationError(f"Invalid time: {value!r}", code="INVALID_TIME")
    if isinstance(value, int):
        minutes = value
    else:
        text = str(value).strip()
        hours_text, sep, minutes_text = text.partition(":")
        if not sep or not hours_text.isdigit() or not minutes_text.isdigit() or len(minutes_text) != 2:
            raise ValidationError(f"Invalid time format: {value!r}, expected HH:MM", code="INVALID_TIME")
        hours, mins = int(hours_text), int(minutes_text)
        if mins > 59:
            raise ValidationError(f"Invalid time: {value!r}", code="INVALID_TIME")
        minutes = hours * 60 + mins

    if minutes < 0 or minutes > MINUTES_PER_DAY:
        raise ValidationError(f"Time out of range: {value!r}", code="INVALID_TIME")
    return minutes


def format_clock(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date(value: Union[str, date]) -> date:
    """Accept a date, a datetime or an ISO "YYYY-MM-DD" string"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid date provided: {value!r}", code="INVALID_DATE")


@dataclass(frozen=True, order=True)
class TimeWindow:
    date: date
    start: int
    end: int

    def __post_init__(self):
        if not isinstance(self.date, date):
            raise ValidationError(f"Invalid date provided: {self.date!r}", code="INVALID_DATE")
        if not (0 <= self.start < MINUTES_PER_DAY) or not (0 < self.end <= MINUTES_PER_DAY):
            raise ValidationError("Time window is outside the day", code="INVALID_TIME")
        if self.start >= self.end:
            raise ValidationError(
                f"Start time {format_clock(self.start)} must be before end time {format_clock(self.end)}",
                code="NON_CHRONOLOGICAL_WINDOW",
            )

    @classmethod
    def from_strings(cls, day: Union[str, date], start_time: Union[str, int], end_time: Union[str, int]) -> "TimeWindow":
        return cls(parse_date(day), parse_clock(start_time), parse_clock(end_time))

    @property
    def start_time(self) -> str:
        return format_clock(self.start)

    @property
    def end_time(self) -> str:
        return format_clock(self.end)

    @property
    def duration_minutes(self) -> int:
        return self.end - self.start

    @property
    def hours(self) -> Decimal:
        return (Decimal(self.duration_minutes) / Decimal(60)).quantize(Decimal("0.01"))

    def overlaps(self, other: "TimeWindow") -> bool:
        return overlaps(self, other)

    def __str__(self):
        return f"{self.date.isoformat()} {self.start_time}-{self.end_time}"


def overlaps(a: TimeWindow, b: TimeWindow) -> bool:
    """Half-open overlap: touching endpoints do not conflict"""
    return a.date == b.date and a.start < b.end and b.start < a.end
