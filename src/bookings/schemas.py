from pydantic import BaseModel, Field, validator
from typing import List, Optional
from datetime import datetime, date
from decimal import Decimal
from enum import Enum

class BookingStatus(str, Enum):
    """Booking status enumeration"""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"

class PaymentStatus(str, Enum):
    """Payment status enumeration"""
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"

class PaymentMethod(str, Enum):
    """How the customer intends to pay"""
    BANK_TRANSFER = "bank_transfer"
    PAYPAL = "paypal"
    RESERVATION = "reservation"  # pay on site

class DeliveryMethod(str, Enum):
    """How the cart reaches the event"""
    PICKUP = "pickup"
    SHIPPING = "shipping"

# Request Models
class SelectedItem(BaseModel):
    """Food item picked for the event"""
    food_item_id: int
    quantity: int = 1

class SelectedService(BaseModel):
    """Staff or extra service; hours default to the booked window"""
    service_id: int
    quantity: int = 1
    hours: Optional[Decimal] = None

class CustomerInfo(BaseModel):
    """Customer contact details"""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = ""

    @validator('*', pre=True)
    def strip_strings(cls, v):
        return v.strip() if isinstance(v, str) else v

class ShippingInfo(BaseModel):
    """Delivery address, required when the cart is shipped"""
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""

    @validator('*', pre=True)
    def strip_strings(cls, v):
        return v.strip() if isinstance(v, str) else v

class BookingWindowRequest(BaseModel):
    """One date and time range of a multi-date booking"""
    booking_date: Optional[str] = Field(None, description="YYYY-MM-DD")
    start_time: Optional[str] = Field(None, description="HH:MM")
    end_time: Optional[str] = Field(None, description="HH:MM")

class PricingRequest(BaseModel):
    """Pricing inputs the customer supplies"""
    coupon_code: Optional[str] = None
    quoted_total: Optional[Decimal] = Field(None, description="Total shown to the customer; must match the server quote")

class BookingRequest(BaseModel):
    """Request to reserve a cart for a time window"""
    cart_id: Optional[int] = None
    booking_date: Optional[str] = Field(None, description="YYYY-MM-DD")
    start_time: Optional[str] = Field(None, description="HH:MM")
    end_time: Optional[str] = Field(None, description="HH:MM")
    dates: List[BookingWindowRequest] = Field(default_factory=list, description="Several windows booked together; replaces the single window when given")
    items: List[SelectedItem] = Field(default_factory=list)
    services: List[SelectedService] = Field(default_factory=list)
    customer: CustomerInfo = Field(default_factory=CustomerInfo)
    payment_method: Optional[str] = None
    payment_slip_url: Optional[str] = None
    transaction_id: Optional[str] = None
    event_type: Optional[str] = None
    guest_count: Optional[int] = None
    special_notes: Optional[str] = None
    delivery_method: Optional[str] = Field(None, description="pickup (default) or shipping")
    shipping: ShippingInfo = Field(default_factory=ShippingInfo)
    pricing: PricingRequest = Field(default_factory=PricingRequest)

# Response Models
class BookingDateOut(BaseModel):
    booking_date: date
    start_time: str
    end_time: str
    total_hours: Decimal
    cart_amount: Decimal

class BookingItemOut(BaseModel):
    food_item_id: int
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    class Config:
        from_attributes = True

class BookingServiceOut(BaseModel):
    service_id: int
    quantity: int
    hours: Decimal
    price_per_hour: Decimal
    line_total: Decimal

    class Config:
        from_attributes = True

class BookingOut(BaseModel):
    """Booking details"""
    id: int
    cart_id: int
    booking_date: date
    start_time: str
    end_time: str
    total_hours: Decimal
    customer_first_name: str
    customer_last_name: str
    customer_email: str
    customer_phone: str
    event_type: Optional[str] = None
    guest_count: Optional[int] = None
    delivery_method: DeliveryMethod = DeliveryMethod.PICKUP
    shipping_address: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_state: Optional[str] = None
    shipping_zip: Optional[str] = None
    cart_service_amount: Decimal
    services_amount: Decimal
    food_amount: Decimal
    shipping_amount: Decimal = Decimal("0.00")
    discount_amount: Decimal
    total_amount: Decimal
    status: BookingStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    transaction_id: Optional[str] = None
    coupon_code: Optional[str] = None
    dates: List[BookingDateOut] = []
    items: List[BookingItemOut] = []
    services: List[BookingServiceOut] = []
    created_at: Optional[datetime] = None

class BookingCreatedResponse(BaseModel):
    success: bool = True
    booking: BookingOut
    message: str

class BookingCancellationRequest(BaseModel):
    """Request to cancel a booking"""
    cancellation_reason: Optional[str] = None

class BookingValidationIssue(BaseModel):
    """One problem found in a booking request"""
    error_code: str
    error_message: str
    field: Optional[str] = None
