from typing import List, Tuple
from decimal import Decimal

from src.availability.time_window import TimeWindow, overlaps
from src.bookings.schemas import BookingRequest, BookingValidationIssue, DeliveryMethod, PaymentMethod
from src.exceptions import ValidationError

REQUIRED_CUSTOMER_FIELDS = (
    "first_name", "last_name", "email", "phone",
    "address", "city", "state", "zip", "country"
)
REQUIRED_SHIPPING_FIELDS = ("address", "city", "state", "zip")

MAX_WINDOWS_PER_BOOKING = 31

class BookingValidator:
    """Input checks that need no storage access.

    Runs before the admission transaction opens, so a malformed request
    never touches the database.
    """

    def validate_request(self, request: BookingRequest) -> Tuple[List[TimeWindow], List[BookingValidationIssue]]:
        """Return the windows that parsed and every problem found"""
        errors = []

        if not request.cart_id:
            errors.append(BookingValidationIssue(
                error_code="MISSING_CART",
                error_message="Cart ID is required",
                field="cart_id"
            ))

        windows = self._parse_windows(request, errors)

        missing = [f for f in REQUIRED_CUSTOMER_FIELDS if not getattr(request.customer, f)]
        if missing:
            errors.append(BookingValidationIssue(
                error_code="MISSING_CUSTOMER_FIELDS",
                error_message=f"All customer information fields are required (missing: {', '.join(missing)})",
                field="customer"
            ))
        elif "@" not in request.customer.email:
            errors.append(BookingValidationIssue(
                error_code="INVALID_EMAIL",
                error_message="Customer email address is not valid",
                field="customer.email"
            ))

        valid_methods = {m.value for m in PaymentMethod}
        if request.payment_method not in valid_methods:
            errors.append(BookingValidationIssue(
                error_code="INVALID_PAYMENT_METHOD",
                error_message=f"Payment method must be one of: {', '.join(sorted(valid_methods))}",
                field="payment_method"
            ))
        elif request.payment_method == PaymentMethod.BANK_TRANSFER.value and not request.payment_slip_url:
            errors.append(BookingValidationIssue(
                error_code="MISSING_PAYMENT_SLIP",
                error_message="Payment slip URL is required for bank transfers",
                field="payment_slip_url"
            ))

        for index, item in enumerate(request.items):
            if item.quantity <= 0:
                errors.append(BookingValidationIssue(
                    error_code="INVALID_QUANTITY",
                    error_message="Item quantity must be positive",
                    field=f"items[{index}].quantity"
                ))

        for index, service in enumerate(request.services):
            if service.quantity <= 0:
                errors.append(BookingValidationIssue(
                    error_code="INVALID_QUANTITY",
                    error_message="Service quantity must be positive",
                    field=f"services[{index}].quantity"
                ))
            if service.hours is not None and service.hours <= Decimal(0):
                errors.append(BookingValidationIssue(
                    error_code="INVALID_HOURS",
                    error_message="Service hours must be positive",
                    field=f"services[{index}].hours"
                ))

        if request.guest_count is not None and request.guest_count < 0:
            errors.append(BookingValidationIssue(
                error_code="INVALID_GUEST_COUNT",
                error_message="Guest count cannot be negative",
                field="guest_count"
            ))

        valid_deliveries = {m.value for m in DeliveryMethod}
        if request.delivery_method is not None and request.delivery_method not in valid_deliveries:
            errors.append(BookingValidationIssue(
                error_code="INVALID_DELIVERY_METHOD",
                error_message=f"Delivery method must be one of: {', '.join(sorted(valid_deliveries))}",
                field="delivery_method"
            ))
        elif request.delivery_method == DeliveryMethod.SHIPPING.value:
            missing = [f for f in REQUIRED_SHIPPING_FIELDS if not getattr(request.shipping, f)]
            if missing:
                errors.append(BookingValidationIssue(
                    error_code="MISSING_SHIPPING_FIELDS",
                    error_message=f"Shipping address is required for delivery (missing: {', '.join(missing)})",
                    field="shipping"
                ))

        # A coupon may bring the total down to zero
        if request.pricing.quoted_total is not None and request.pricing.quoted_total < Decimal(0):
            errors.append(BookingValidationIssue(
                error_code="NEGATIVE_AMOUNT",
                error_message="Quoted total cannot be negative",
                field="pricing.quoted_total"
            ))

        return windows, errors

    def _parse_windows(self, request: BookingRequest, errors: List[BookingValidationIssue]) -> List[TimeWindow]:
        """Parse the requested windows, sorted by date and start time"""
        if request.dates:
            raw = [(w.booking_date, w.start_time, w.end_time, f"dates[{index}].") for index, w in enumerate(request.dates)]
        else:
            raw = [(request.booking_date, request.start_time, request.end_time, "")]

        if len(raw) > MAX_WINDOWS_PER_BOOKING:
            errors.append(BookingValidationIssue(
                error_code="TOO_MANY_DATES",
                error_message=f"At most {MAX_WINDOWS_PER_BOOKING} dates can be booked at once",
                field="dates"
            ))
            return []

        windows = []
        for day, start_time, end_time, prefix in raw:
            if not day or not start_time or not end_time:
                errors.append(BookingValidationIssue(
                    error_code="MISSING_WINDOW",
                    error_message="Booking date, start time and end time are required",
                    field=f"{prefix}booking_date"
                ))
                continue
            try:
                windows.append(TimeWindow.from_strings(day, start_time, end_time))
            except ValidationError as e:
                errors.append(BookingValidationIssue(
                    error_code=e.code,
                    error_message=e.message,
                    field=prefix + ("start_time" if e.code == "NON_CHRONOLOGICAL_WINDOW" else "booking_date")
                ))

        windows.sort()
        for earlier, later in zip(windows, windows[1:]):
            if overlaps(earlier, later):
                errors.append(BookingValidationIssue(
                    error_code="OVERLAPPING_WINDOWS",
                    error_message=f"Requested windows overlap: {earlier} and {later}",
                    field="dates"
                ))
        return windows

    def require_valid(self, request: BookingRequest) -> List[TimeWindow]:
        """Raise ValidationError listing every issue, or return the sorted windows"""
        windows, errors = self.validate_request(request)
        if errors:
            raise ValidationError(
                errors[0].error_message,
                code="INVALID_BOOKING_REQUEST",
                details={"errors": [e.model_dump() for e in errors]}
            )
        return windows
