import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.schemas import (
    ErrorResponse,
    Order,
    OrderCreate,
    OrderCreateResponse,
    OrderListResponse,
    OrderStatus,
    OrderStatusUpdate,
)
from app.services.orders import OrderService, get_order_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])


@router.post(
    "",
    response_model=OrderCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    summary="Confirm a draft into an order",
)
def create_order(
    payload: OrderCreate,
    service: OrderService = Depends(get_order_service),
) -> OrderCreateResponse:
    """
    Price the draft one last time, consume its coupon and store the order.

    When every sauce in the order is a coupon sauce the response also
    carries the coupon the customer just earned.
    """
    logger.info(f"Confirming draft {payload.draft_id} for {payload.customer.national_id}")
    order, issued = service.confirm_order(payload.draft_id, payload.customer)
    return OrderCreateResponse(
        success=True,
        message="Order placed successfully!",
        order=order,
        issued_coupon=issued,
    )


@router.get("", response_model=OrderListResponse, summary="List Orders")
def list_orders(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    status: Optional[OrderStatus] = Query(None),
    service: OrderService = Depends(get_order_service),
) -> OrderListResponse:
    """Newest first, optionally filtered by status."""
    orders = service.list_orders(status)
    return OrderListResponse(total=len(orders), orders=orders[skip:skip + limit])


@router.get("/{order_id}", response_model=Order)
def read_order(
    order_id: str,
    service: OrderService = Depends(get_order_service),
) -> Order:
    return service.get_order(order_id)


@router.patch("/{order_id}/status", response_model=Order)
def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    service: OrderService = Depends(get_order_service),
) -> Order:
    return service.update_status(order_id, payload.status)
