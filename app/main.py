"""
FastAPI Application Entry Point

Santo Dilema Storefront - online ordering backend
Runs on JSON files in development and on Redis in staging/production.

Endpoints:
    - GET  /api/menu: Menu, sold-out flags, opening state
    - POST /api/pricing/quote: Stateless price check
    - /api/drafts: Server-side carts (lines, zone, coupon)
    - POST /api/orders: Confirm a draft into an order
    - GET  /api/orders: List orders
    - GET  /api/customers: Customer lookup by national ID
    - /api/coupons: Coupon validation, issuance and redemption
    - GET  /health: System health check

Version: 1.0.0
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import (
    coupons_router,
    customers_router,
    drafts_router,
    menu_router,
    orders_router,
    pricing_router,
)
from app.core.config import get_settings, setup_logging
from app.core.exceptions import OrderingError
from app.schemas import HealthResponse
from app.services.business_hours import get_business_hours
from app.services.storage import get_storage

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    storage = get_storage()
    logger.info(f"✅ Storage: {storage.provider_name}")
    logger.info(
        f"✅ Coupons: {settings.coupon_limit} x {settings.coupon_discount_percent}% "
        f"until {settings.coupon_expires_at.isoformat()}"
    )

    # Validate production config
    if not settings.is_development:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"⚠️ Missing production config: {missing}")

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Online ordering backend: menu, order drafts, pricing with combo, "
        "sauce promotions and coupons, order intake and reconciliation export."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(menu_router)
app.include_router(pricing_router)
app.include_router(drafts_router)
app.include_router(orders_router)
app.include_router(customers_router)
app.include_router(coupons_router)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍗 Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "menu": "/api/menu",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
def health_check() -> HealthResponse:
    """Verify the document store is reachable and report the opening state."""
    storage = get_storage()
    storage_status = "healthy" if storage.health_check() else "unhealthy"
    if storage_status != "healthy":
        logger.error(f"Storage health check failed ({storage.provider_name})")

    return HealthResponse(
        status="operational" if storage_status == "healthy" else "degraded",
        storage=storage_status,
        storage_provider=storage.provider_name,
        is_open=get_business_hours().is_open(),
        timestamp=datetime.now(),
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(OrderingError)
async def ordering_exception_handler(request: Request, exc: OrderingError) -> JSONResponse:
    """Business rule rejections become {success: false, error, detail}."""
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )
