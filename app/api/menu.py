from fastapi import APIRouter, Depends

from app.core.config import get_settings
from app.core.exceptions import NotFoundError
from app.schemas import MenuResponse, MenuStockUpdate
from app.services.business_hours import BusinessHours, get_business_hours
from app.services.catalog import Catalog, get_catalog
from app.services.storage import BaseStorage, get_storage

router = APIRouter(prefix="/api", tags=["Menu"])


@router.get("/menu", response_model=MenuResponse)
def read_menu(
    catalog: Catalog = Depends(get_catalog),
    hours: BusinessHours = Depends(get_business_hours),
) -> MenuResponse:
    """Menu with the current sold-out flags and opening state."""
    return MenuResponse(
        products=list(catalog.products.values()),
        sauces=list(catalog.sauces.values()),
        add_ons=list(catalog.add_ons.values()),
        delivery_fees={zone.value: fee for zone, fee in catalog.delivery_fees.items()},
        currency=get_settings().currency,
        is_open=hours.is_open(),
        next_open_message=hours.next_open_message(),
    )


@router.patch("/menu-stock", response_model=dict[str, bool])
def update_menu_stock(
    payload: MenuStockUpdate,
    catalog: Catalog = Depends(get_catalog),
    storage: BaseStorage = Depends(get_storage),
) -> dict[str, bool]:
    """Flag a product as sold out (or back in stock)."""
    if catalog.get_product(payload.product_id) is None:
        raise NotFoundError(f"Unknown product '{payload.product_id}'", code="unknown_product")
    return storage.set_sold_out(payload.product_id, payload.sold_out)
