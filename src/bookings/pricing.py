from typing import List, Dict
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.orm import Session

from src.models import FoodCart, FoodItem, Service
from src.availability.time_window import TimeWindow
from src.bookings.schemas import BookingRequest, DeliveryMethod
from src.coupons.service import to_money
from src.exceptions import NotFoundError, ValidationError

@dataclass
class DateLine:
    window: TimeWindow
    cart_amount: Decimal

@dataclass
class ItemLine:
    food_item_id: int
    quantity: int
    unit_price: Decimal
    line_total: Decimal

@dataclass
class ServiceLine:
    service_id: int
    quantity: int
    hours: Decimal
    price_per_hour: Decimal
    line_total: Decimal

@dataclass
class BookingQuote:
    """Server-side price breakdown for one booking request"""
    cart_id: int
    cart_service_amount: Decimal
    food_amount: Decimal
    services_amount: Decimal
    shipping_amount: Decimal = Decimal("0.00")
    dates: List[DateLine] = field(default_factory=list)
    items: List[ItemLine] = field(default_factory=list)
    services: List[ServiceLine] = field(default_factory=list)

    @property
    def subtotal(self) -> Decimal:
        return to_money(self.cart_service_amount + self.food_amount + self.services_amount + self.shipping_amount)

    @property
    def total_hours(self) -> Decimal:
        return sum((line.window.hours for line in self.dates), Decimal("0.00"))

    @property
    def service_ids(self) -> List[int]:
        return [line.service_id for line in self.services]

class BookingPricer:
    """Prices a booking from the catalogue; clients never dictate unit prices"""

    def __init__(self, db: Session):
        self.db = db

    def quote(self, request: BookingRequest, windows: List[TimeWindow]) -> BookingQuote:
        cart = self.db.query(FoodCart).filter(FoodCart.id == request.cart_id).first()
        if not cart:
            raise NotFoundError("Selected cart not found", code="CART_NOT_FOUND", details={"cart_id": request.cart_id})
        if not cart.is_active:
            raise ValidationError("Selected cart is not available for booking", code="CART_INACTIVE",
                                  details={"cart_id": cart.id})

        # Each date is billed for its own hours
        dates = [
            DateLine(window=window, cart_amount=to_money(Decimal(cart.price_per_hour) * window.hours))
            for window in windows
        ]
        total_hours = sum((window.hours for window in windows), Decimal("0.00"))

        items = self._price_items(request)
        services = self._price_services(request, total_hours)

        shipping_amount = Decimal("0.00")
        if request.delivery_method == DeliveryMethod.SHIPPING.value:
            shipping_amount = to_money(cart.shipping_price or 0)

        quote = BookingQuote(
            cart_id=cart.id,
            cart_service_amount=to_money(sum((line.cart_amount for line in dates), Decimal(0))),
            food_amount=to_money(sum((line.line_total for line in items), Decimal(0))),
            services_amount=to_money(sum((line.line_total for line in services), Decimal(0))),
            shipping_amount=shipping_amount,
            dates=dates,
            items=items,
            services=services
        )

        if quote.subtotal <= 0:
            raise ValidationError("Booking total must be positive", code="NON_POSITIVE_AMOUNT")
        return quote

    def _price_items(self, request: BookingRequest) -> List[ItemLine]:
        if not request.items:
            return []
        ids = {item.food_item_id for item in request.items}
        catalogue: Dict[int, FoodItem] = {
            row.id: row for row in self.db.query(FoodItem).filter(FoodItem.id.in_(ids)).all()
        }

        lines = []
        for item in request.items:
            food_item = catalogue.get(item.food_item_id)
            if not food_item:
                raise NotFoundError(f"Food item {item.food_item_id} not found", code="FOOD_ITEM_NOT_FOUND",
                                    details={"food_item_id": item.food_item_id})
            if not food_item.is_available:
                raise ValidationError(f"Food item '{food_item.name}' is not available", code="FOOD_ITEM_UNAVAILABLE",
                                      details={"food_item_id": food_item.id})
            unit_price = to_money(food_item.price)
            lines.append(ItemLine(
                food_item_id=food_item.id,
                quantity=item.quantity,
                unit_price=unit_price,
                line_total=to_money(unit_price * item.quantity)
            ))
        return lines

    def _price_services(self, request: BookingRequest, total_hours: Decimal) -> List[ServiceLine]:
        if not request.services:
            return []
        ids = {service.service_id for service in request.services}
        catalogue: Dict[int, Service] = {
            row.id: row for row in self.db.query(Service).filter(Service.id.in_(ids)).all()
        }

        lines = []
        for selected in request.services:
            service = catalogue.get(selected.service_id)
            if not service:
                raise NotFoundError(f"Service {selected.service_id} not found", code="SERVICE_NOT_FOUND",
                                    details={"service_id": selected.service_id})
            if not service.is_active:
                raise ValidationError(f"Service '{service.name}' is not available", code="SERVICE_INACTIVE",
                                      details={"service_id": service.id})
            hours = Decimal(selected.hours) if selected.hours is not None else total_hours
            price_per_hour = to_money(service.price_per_hour)
            lines.append(ServiceLine(
                service_id=service.id,
                quantity=selected.quantity,
                hours=hours,
                price_per_hour=price_per_hour,
                line_total=to_money(price_per_hour * hours * selected.quantity)
            ))
        return lines
