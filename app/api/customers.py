from fastapi import APIRouter, Depends, Query

from app.schemas import CustomerLookupResponse
from app.services.orders import OrderService, get_order_service

router = APIRouter(prefix="/api/customers", tags=["Customers"])


@router.get("", response_model=CustomerLookupResponse)
def lookup_customer(
    national_id: str = Query(..., min_length=8, max_length=8, pattern=r"^\d{8}$"),
    service: OrderService = Depends(get_order_service),
) -> CustomerLookupResponse:
    """Prefill checkout with the details of the customer's latest order."""
    customer = service.find_customer(national_id)
    return CustomerLookupResponse(found=customer is not None, customer=customer)
