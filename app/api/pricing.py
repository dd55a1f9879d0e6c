from fastapi import APIRouter, Depends

from app.core.exceptions import ValidationError
from app.schemas import PricedOrder, QuoteRequest
from app.services.catalog import Catalog, get_catalog
from app.services.coupons import CouponService, get_coupon_service
from app.services.pricing import get_pricing_engine

router = APIRouter(prefix="/api/pricing", tags=["Pricing"])


@router.post("/quote", response_model=PricedOrder)
def quote(
    payload: QuoteRequest,
    catalog: Catalog = Depends(get_catalog),
    coupons: CouponService = Depends(get_coupon_service),
) -> PricedOrder:
    """
    Price a set of lines without storing anything.

    Lines are run through the menu rules first, so the promotional price
    is the one the kitchen would charge.
    """
    lines = [catalog.prepare_line(line) for line in payload.lines]
    engine = get_pricing_engine(catalog)

    percent = None
    if payload.coupon_code:
        if not payload.owner_identifier:
            raise ValidationError(
                "owner_identifier is required with a coupon code",
                code="owner_required",
            )
        percent = coupons.validate_coupon(
            payload.coupon_code,
            payload.owner_identifier,
            combo_active=engine.detect_combo(lines),
        )

    return engine.compute_total(
        lines,
        payload.zone,
        coupon_discount_percent=percent,
        coupon_code=payload.coupon_code.strip().upper() if percent is not None else None,
    )
