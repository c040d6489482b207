from decimal import Decimal

import pytest

from src.coupons.service import compute_discount
from src.exceptions import CouponRejected
from src.models import CouponUsage

def usage_rows(database):
    with database.session_scope() as db:
        return db.query(CouponUsage).count()

def test_percentage_discount_is_capped(coupon_evaluator, catalogue):
    decision = coupon_evaluator.validate("SAVE10", Decimal("100"))

    assert decision.valid
    assert decision.discount_amount == Decimal("5.00")
    assert decision.final_amount == Decimal("95.00")
    assert decision.reason is None

def test_below_minimum_order(coupon_evaluator, catalogue):
    decision = coupon_evaluator.validate("SAVE10", Decimal("10"))

    assert not decision.valid
    assert decision.reason_code == "BELOW_MINIMUM"
    assert decision.final_amount == Decimal("10.00")
    with pytest.raises(CouponRejected) as exc:
        decision.raise_if_invalid()
    assert exc.value.details["reason_code"] == "BELOW_MINIMUM"

def test_codes_match_case_insensitively(coupon_evaluator, catalogue):
    assert coupon_evaluator.validate("save10", Decimal("100")).valid

@pytest.mark.parametrize("code, reason_code", [
    ("NOPE", "NOT_FOUND"),
    ("PAUSED", "INACTIVE"),
    ("OLDIE", "EXPIRED"),
    ("SOON", "NOT_YET_VALID"),
])
def test_rejections(coupon_evaluator, catalogue, code, reason_code):
    decision = coupon_evaluator.validate(code, Decimal("100"))
    assert not decision.valid
    assert decision.reason_code == reason_code
    assert decision.reason

def test_fixed_amount_never_exceeds_order(coupon_evaluator, catalogue):
    decision = coupon_evaluator.validate("FIXED50", Decimal("30"))
    assert decision.discount_amount == Decimal("30.00")
    assert decision.final_amount == Decimal("0.00")

def test_cart_scope(coupon_evaluator, ids):
    rejected = coupon_evaluator.validate("TACOONLY", Decimal("100"), cart_ids=[ids["cart_crepe"]])
    assert rejected.reason_code == "CART_NOT_ELIGIBLE"

    accepted = coupon_evaluator.validate("TACOONLY", Decimal("100"), cart_ids=[ids["cart_taco"]])
    assert accepted.valid
    assert accepted.discount_amount == Decimal("15.00")

def test_service_scope(coupon_evaluator, ids):
    rejected = coupon_evaluator.validate("CHEFONLY", Decimal("100"), service_ids=[])
    assert rejected.reason_code == "SERVICE_NOT_ELIGIBLE"

    rejected = coupon_evaluator.validate("CHEFONLY", Decimal("100"), service_ids=[ids["service_server"]])
    assert rejected.reason_code == "SERVICE_NOT_ELIGIBLE"

    accepted = coupon_evaluator.validate("CHEFONLY", Decimal("100"), service_ids=[ids["service_chef"], ids["service_server"]])
    assert accepted.valid

def test_validation_redeems_nothing(coupon_evaluator, database, catalogue):
    for _ in range(3):
        assert coupon_evaluator.validate("ONCE", Decimal("100")).valid
    assert usage_rows(database) == 0

def test_usage_limit_counts_redemptions(coupon_evaluator, booking_service, make_request, database):
    booking_service.admit_booking(make_request(pricing={"coupon_code": "ONCE"}))
    assert usage_rows(database) == 1

    decision = coupon_evaluator.validate("ONCE", Decimal("100"))
    assert not decision.valid
    assert decision.reason_code == "USAGE_LIMIT_REACHED"

def test_cancelled_booking_keeps_its_redemption(coupon_evaluator, booking_service, reconciler, make_request):
    booking = booking_service.admit_booking(make_request(pricing={"coupon_code": "ONCE"}))
    reconciler.cancel_booking(booking.id)

    assert coupon_evaluator.validate("ONCE", Decimal("100")).reason_code == "USAGE_LIMIT_REACHED"

@pytest.mark.parametrize("coupon_type, value, amount, max_discount, expected", [
    ("PERCENTAGE", "10", "100", None, "10.00"),
    ("PERCENTAGE", "10", "100", "5", "5.00"),
    ("PERCENTAGE", "10", "0.05", None, "0.01"),
    ("PERCENTAGE", "150", "40", None, "40.00"),
    ("FIXED_AMOUNT", "25", "100", None, "25.00"),
    ("FIXED_AMOUNT", "25", "10", None, "10.00"),
])
def test_compute_discount(coupon_type, value, amount, max_discount, expected):
    result = compute_discount(
        coupon_type,
        Decimal(value),
        Decimal(amount),
        Decimal(max_discount) if max_discount else None
    )
    assert result == Decimal(expected)
