"""
Availability Module

Read-only view of cart occupancy used by the booking calendar:

- time_window.py: Half-open time window value type and the overlap predicate
- service.py: Booked-slot queries (single date, date range, batch candidates)
- router.py: FastAPI endpoints for availability lookups
- schemas.py: Typed query structs and response models

Availability answers are advisory. Only booking admission, inside its own
transaction, decides whether a window can actually be taken.
"""

from .router import router
from .time_window import TimeWindow, overlaps, parse_clock, format_clock, parse_date
from .service import AvailabilityService, BookedSlot, WindowCheck, STANDARD_SLOTS
from .schemas import (
    AvailabilityQuery, BulkAvailabilityQuery, BatchAvailabilityRequest, CandidateWindow,
    AvailabilityResponse, BulkAvailabilityResponse, BatchAvailabilityResponse
)

__all__ = [
    "router",
    "TimeWindow",
    "overlaps",
    "parse_clock",
    "format_clock",
    "parse_date",
    "AvailabilityService",
    "BookedSlot",
    "WindowCheck",
    "STANDARD_SLOTS",
    "AvailabilityQuery",
    "BulkAvailabilityQuery",
    "BatchAvailabilityRequest",
    "CandidateWindow",
    "AvailabilityResponse",
    "BulkAvailabilityResponse",
    "BatchAvailabilityResponse"
]
