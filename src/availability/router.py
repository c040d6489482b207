from fastapi import APIRouter, Depends, Query
from typing import Optional
from datetime import date

from src.database import Database, get_database
from src.availability.schemas import (
    AvailabilityQuery, AvailabilityResponse, BulkAvailabilityQuery, BulkAvailabilityResponse,
    BatchAvailabilityRequest, BatchAvailabilityResponse, CandidateResult
)
from src.availability.service import AvailabilityService, find_conflict
from src.exceptions import ValidationError

router = APIRouter()

def _query_or_400(model, **fields):
    # Typed query structs validated before touching storage
    try:
        return model(**fields)
    except ValueError as e:
        raise ValidationError(str(e), code="INVALID_QUERY")

@router.get("", response_model=AvailabilityResponse)
def get_availability(
    cart_id: int = Query(..., description="Cart ID"),
    date: date = Query(..., description="Date to check (YYYY-MM-DD)"),
    start_time: Optional[str] = Query(None, description="Narrow to a window starting at HH:MM"),
    end_time: Optional[str] = Query(None, description="Window end HH:MM"),
    database: Database = Depends(get_database)
):
    """Booked slots and the standard slot menu for a cart on a date"""
    query = _query_or_400(AvailabilityQuery, cart_id=cart_id, date=date, start_time=start_time, end_time=end_time)
    service = AvailabilityService(database)

    booked = service.get_booked_slots(query.cart_id, query.date)
    options = service.get_slot_options(query.cart_id, query.date)

    response = {
        "cart_id": query.cart_id,
        "date": query.date,
        "booked_slots": [slot.to_dict() for slot in booked],
        "available_slots": options,
    }

    window = query.window()
    if window is not None:
        conflict = find_conflict(window, booked)
        response["is_available"] = conflict is None
        response["conflict"] = conflict.to_dict() if conflict else None

    return response

@router.get("/bulk", response_model=BulkAvailabilityResponse)
def get_bulk_availability(
    cart_id: int = Query(..., description="Cart ID"),
    start_date: date = Query(..., description="First date of the range"),
    end_date: date = Query(..., description="Last date of the range (inclusive)"),
    database: Database = Depends(get_database)
):
    """All booked slots for a cart within a date range, grouped by date"""
    query = _query_or_400(BulkAvailabilityQuery, cart_id=cart_id, start_date=start_date, end_date=end_date)
    grouped = AvailabilityService(database).bulk_booked_slots(query.cart_id, query.start_date, query.end_date)

    booked_dates = {
        day.isoformat(): [slot.to_dict() for slot in slots]
        for day, slots in grouped.items()
    }

    return {
        "cart_id": query.cart_id,
        "start_date": query.start_date,
        "end_date": query.end_date,
        "booked_dates": booked_dates,
        "total_bookings": sum(len(slots) for slots in grouped.values()),
    }

@router.post("/check", response_model=BatchAvailabilityResponse)
def check_candidate_windows(
    request: BatchAvailabilityRequest,
    database: Database = Depends(get_database)
):
    """Check several candidate windows in one round trip"""
    windows = [candidate.window() for candidate in request.candidates]
    checks = AvailabilityService(database).check_windows(request.cart_id, windows)

    results = [
        CandidateResult(
            date=check.window.date,
            start_time=check.window.start_time,
            end_time=check.window.end_time,
            available=check.available,
            conflict=check.conflict.to_dict() if check.conflict else None
        )
        for check in checks
    ]

    return BatchAvailabilityResponse(
        cart_id=request.cart_id,
        results=results,
        all_available=all(r.available for r in results)
    )
