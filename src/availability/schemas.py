from pydantic import BaseModel, Field, validator
from typing import List, Optional, Dict
from datetime import date
from decimal import Decimal

from src.availability.time_window import TimeWindow, parse_clock

# Query structs
class AvailabilityQuery(BaseModel):
    """Availability of one cart on one date, optionally narrowed to a window"""
    cart_id: int
    date: date
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    @validator('end_time', always=True)
    def validate_window_pair(cls, v, values):
        if (v is None) != (values.get('start_time') is None):
            raise ValueError('start_time and end_time must be given together')
        return v

    def window(self) -> Optional[TimeWindow]:
        if self.start_time is None or self.end_time is None:
            return None
        return TimeWindow(self.date, parse_clock(self.start_time), parse_clock(self.end_time))

class BulkAvailabilityQuery(BaseModel):
    """Booked slots for a cart across an inclusive date range"""
    cart_id: int
    start_date: date
    end_date: date

    @validator('end_date')
    def validate_range(cls, v, values):
        start = values.get('start_date')
        if start and v < start:
            raise ValueError('end_date must not be before start_date')
        return v

class CandidateWindow(BaseModel):
    """A window the caller is considering"""
    date: date
    start_time: str
    end_time: str

    def window(self) -> TimeWindow:
        return TimeWindow(self.date, parse_clock(self.start_time), parse_clock(self.end_time))

class BatchAvailabilityRequest(BaseModel):
    """Several candidate windows for one cart, checked in one round trip"""
    cart_id: int
    candidates: List[CandidateWindow]

    @validator('candidates')
    def validate_candidates(cls, v):
        if not v:
            raise ValueError('At least one candidate window is required')
        if len(v) > 62:
            raise ValueError('Maximum 62 candidate windows per request')
        return v

# Responses
class BookedSlotOut(BaseModel):
    """A PENDING or CONFIRMED booking occupying part of a day"""
    booking_id: int
    date: date
    start_time: str
    end_time: str
    customer_name: str
    status: str

class SlotOption(BaseModel):
    """One entry of the standard daily slot menu"""
    start_time: str
    end_time: str
    price: Decimal
    is_available: bool

class AvailabilityResponse(BaseModel):
    cart_id: int
    date: date
    booked_slots: List[BookedSlotOut]
    available_slots: List[SlotOption]
    is_available: Optional[bool] = None
    conflict: Optional[BookedSlotOut] = None

class BulkAvailabilityResponse(BaseModel):
    cart_id: int
    start_date: date
    end_date: date
    booked_dates: Dict[str, List[BookedSlotOut]]
    total_bookings: int

class CandidateResult(BaseModel):
    date: date
    start_time: str
    end_time: str
    available: bool
    conflict: Optional[BookedSlotOut] = None

class BatchAvailabilityResponse(BaseModel):
    cart_id: int
    results: List[CandidateResult]
    all_available: bool = Field(description="True when every candidate is free")
