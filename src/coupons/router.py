from fastapi import APIRouter, Depends

from src.database import Database, get_database
from src.coupons.schemas import CouponValidationRequest, CouponValidationResponse, CouponSummary
from src.coupons.service import CouponEvaluator

router = APIRouter()

@router.post("/validate", response_model=CouponValidationResponse)
def validate_coupon(
    request: CouponValidationRequest,
    database: Database = Depends(get_database)
):
    """Validate a coupon code for an order (read-only, redeems nothing)"""

    decision = CouponEvaluator(database).validate(
        code=request.coupon_code,
        order_amount=request.order_amount,
        cart_ids=request.cart_ids,
        service_ids=request.service_ids
    )

    response = CouponValidationResponse(
        valid=decision.valid,
        original_amount=decision.original_amount,
        discount_amount=decision.discount_amount,
        final_amount=decision.final_amount,
        reason=decision.reason,
        reason_code=decision.reason_code
    )

    if decision.valid:
        response.coupon = CouponSummary.model_validate(decision.coupon)
        response.message = f"Coupon applied! You saved {decision.discount_amount}"

    return response
