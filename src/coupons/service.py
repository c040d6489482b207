from typing import List, Optional, Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func
from sqlalchemy.orm import Session

from src.database import Database
from src.models import Coupon, CouponUsage
from src.coupons.schemas import CouponType, CouponStatus, RejectionCode
from src.exceptions import CouponRejected, ValidationError
from src.logger import logger
from src.retry import retry_transient, translate_storage_errors

CENT = Decimal("0.01")

def to_money(value) -> Decimal:
    """Round to cents, half-up"""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)

def _naive(moment: datetime) -> datetime:
    # Coupon validity is stored as naive timestamps
    if moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    return moment

@dataclass
class CouponDecision:
    valid: bool
    original_amount: Decimal
    discount_amount: Decimal = Decimal("0.00")
    final_amount: Optional[Decimal] = None
    reason: Optional[str] = None
    reason_code: Optional[str] = None
    coupon: Optional[Coupon] = None
    usage_count: int = 0
    coupon_version: Optional[int] = None

    @classmethod
    def reject(cls, amount: Decimal, reason_code: RejectionCode, reason: str, coupon: Optional[Coupon] = None) -> "CouponDecision":
        return cls(
            valid=False,
            original_amount=amount,
            final_amount=amount,
            reason=reason,
            reason_code=reason_code.value,
            coupon=coupon,
        )

    def raise_if_invalid(self):
        if not self.valid:
            raise CouponRejected(self.reason, self.reason_code)

def compute_discount(coupon_type: str, value: Decimal, order_amount: Decimal, max_discount: Optional[Decimal] = None) -> Decimal:
    """Discount for an order, clamped to [0, order_amount] and rounded to cents"""
    order_amount = Decimal(order_amount)
    value = Decimal(value)

    if coupon_type == CouponType.PERCENTAGE.value:
        discount = order_amount * value / Decimal(100)
        if max_discount is not None and discount > Decimal(max_discount):
            discount = Decimal(max_discount)
    elif coupon_type == CouponType.FIXED_AMOUNT.value:
        discount = min(value, order_amount)
    else:
        raise ValidationError(f"Unknown coupon type: {coupon_type}", code="INVALID_COUPON_TYPE")

    discount = max(Decimal(0), min(discount, order_amount))
    return to_money(discount)

def find_coupon(db: Session, code: str) -> Optional[Coupon]:
    normalized = (code or "").strip().upper()
    if not normalized:
        return None
    return db.query(Coupon).filter(func.upper(Coupon.code) == normalized).first()

def usage_count(db: Session, coupon_id: int) -> int:
    """Real-time redemption count, never a cached counter"""
    return db.query(func.count(CouponUsage.id)).filter(CouponUsage.coupon_id == coupon_id).scalar() or 0

def evaluate_coupon(
    db: Session,
    code: str,
    order_amount,
    cart_ids: Iterable[int] = (),
    service_ids: Iterable[int] = (),
    now: Optional[datetime] = None
) -> CouponDecision:
    """Run the ordered coupon checks against the given session.

    Checks short-circuit in this order: existence, status, validity window,
    minimum order, usage limit, cart scope, service scope. Nothing is
    written; redemption happens only during booking admission.
    """
    amount = to_money(order_amount)
    if amount < 0:
        raise ValidationError("Order amount cannot be negative", code="INVALID_ORDER_AMOUNT")
    now = _naive(now or datetime.now())
    cart_ids = set(cart_ids or ())
    service_ids = set(service_ids or ())

    coupon = find_coupon(db, code)
    if not coupon:
        return CouponDecision.reject(amount, RejectionCode.NOT_FOUND, "Invalid coupon code")

    if coupon.status != CouponStatus.ACTIVE.value:
        return CouponDecision.reject(amount, RejectionCode.INACTIVE, "This coupon is no longer active", coupon)

    if now < coupon.valid_from:
        return CouponDecision.reject(
            amount, RejectionCode.NOT_YET_VALID,
            f"This coupon is not valid until {coupon.valid_from.date().isoformat()}", coupon
        )

    if now >= coupon.valid_until:
        return CouponDecision.reject(amount, RejectionCode.EXPIRED, "This coupon has expired", coupon)

    if coupon.min_order_amount is not None and amount < to_money(coupon.min_order_amount):
        return CouponDecision.reject(
            amount, RejectionCode.BELOW_MINIMUM,
            f"Minimum order amount of {to_money(coupon.min_order_amount)} required", coupon
        )

    used = 0
    if coupon.usage_limit is not None:
        used = usage_count(db, coupon.id)
        if used >= coupon.usage_limit:
            return CouponDecision.reject(
                amount, RejectionCode.USAGE_LIMIT_REACHED, "This coupon has reached its usage limit", coupon
            )

    allowed_carts = {cart.id for cart in coupon.carts}
    if allowed_carts and not (cart_ids & allowed_carts):
        return CouponDecision.reject(
            amount, RejectionCode.CART_NOT_ELIGIBLE, "This coupon is not applicable to the selected cart", coupon
        )

    allowed_services = {service.id for service in coupon.services}
    if allowed_services and not (service_ids & allowed_services):
        return CouponDecision.reject(
            amount, RejectionCode.SERVICE_NOT_ELIGIBLE, "This coupon is not applicable to the selected services", coupon
        )

    discount = compute_discount(
        coupon.type,
        coupon.value,
        amount,
        coupon.max_discount
    )

    return CouponDecision(
        valid=True,
        original_amount=amount,
        discount_amount=discount,
        final_amount=to_money(amount - discount),
        coupon=coupon,
        usage_count=used,
        coupon_version=coupon.version_id,
    )

class CouponEvaluator:
    """Read-only coupon validation against the store"""

    def __init__(self, database: Database):
        self.database = database

    @retry_transient()
    def validate(
        self,
        code: str,
        order_amount,
        cart_ids: Optional[List[int]] = None,
        service_ids: Optional[List[int]] = None,
        now: Optional[datetime] = None
    ) -> CouponDecision:
        with translate_storage_errors("validate_coupon"):
            with self.database.session_scope() as db:
                decision = evaluate_coupon(db, code, order_amount, cart_ids or [], service_ids or [], now)

        if decision.valid:
            logger.info(f"Coupon {decision.coupon.code} valid: discount {decision.discount_amount} on {decision.original_amount}")
        else:
            logger.info(f"Coupon {code!r} rejected ({decision.reason_code}): {decision.reason}")
        return decision
