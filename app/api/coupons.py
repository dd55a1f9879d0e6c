from fastapi import APIRouter, Depends, Query, status

from app.schemas import (
    Coupon,
    CouponEligibilityResponse,
    CouponIssueRequest,
    CouponIssueResponse,
    CouponMarkUsedRequest,
    CouponValidateRequest,
    CouponValidateResponse,
    ErrorResponse,
)
from app.services.catalog import Catalog, get_catalog
from app.services.coupons import CouponService, get_coupon_service
from app.services.pricing import get_pricing_engine

router = APIRouter(prefix="/api/coupons", tags=["Coupons"])


@router.get("", response_model=list[Coupon])
def list_coupons(service: CouponService = Depends(get_coupon_service)) -> list[Coupon]:
    return service.list_coupons()


@router.get("/eligibility", response_model=CouponEligibilityResponse)
def check_eligibility(
    owner_identifier: str = Query(..., min_length=1),
    service: CouponService = Depends(get_coupon_service),
) -> CouponEligibilityResponse:
    return service.check_eligibility(owner_identifier)


@router.post(
    "/validate",
    response_model=CouponValidateResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        410: {"model": ErrorResponse},
    },
)
def validate_coupon(
    payload: CouponValidateRequest,
    service: CouponService = Depends(get_coupon_service),
    catalog: Catalog = Depends(get_catalog),
) -> CouponValidateResponse:
    """Dry run: the coupon stays pending."""
    percent = service.validate_coupon(
        payload.code,
        payload.owner_identifier,
        combo_active=get_pricing_engine(catalog).detect_combo(payload.lines),
    )
    return CouponValidateResponse(
        valid=True,
        code=payload.code.strip().upper(),
        discount_percent=percent,
    )


@router.post(
    "",
    response_model=CouponIssueResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def issue_coupon(
    payload: CouponIssueRequest,
    service: CouponService = Depends(get_coupon_service),
) -> CouponIssueResponse:
    coupon = service.issue_coupon(
        owner_identifier=payload.owner_identifier,
        display_name=payload.display_name,
        order_id=payload.order_id,
        chosen_sauces=payload.chosen_sauces,
    )
    return CouponIssueResponse(success=True, coupon=coupon)


@router.post(
    "/mark-used",
    response_model=Coupon,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def mark_coupon_used(
    payload: CouponMarkUsedRequest,
    service: CouponService = Depends(get_coupon_service),
) -> Coupon:
    return service.mark_coupon_used(payload.code, payload.owner_identifier, payload.order_id)
