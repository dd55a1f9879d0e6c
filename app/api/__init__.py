from .menu import router as menu_router
from .pricing import router as pricing_router
from .drafts import router as drafts_router
from .orders import router as orders_router
from .customers import router as customers_router
from .coupons import router as coupons_router

__all__ = [
    "menu_router",
    "pricing_router",
    "drafts_router",
    "orders_router",
    "customers_router",
    "coupons_router",
]
