from datetime import datetime, timezone

import pytest

from app.core.config import get_settings
from app.services.catalog import Catalog
from app.services.coupons import CouponService, reset_coupon_service
from app.services.storage import FileStorage, reset_storage

# A Saturday, well before the coupon expiry
NOW = datetime(2026, 1, 10, 20, 0, tzinfo=timezone.utc)
# Default campaign end
EXPIRY = datetime.fromisoformat("2026-02-28T23:59:59-05:00")


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point every cached service at a throwaway data directory."""
    monkeypatch.setenv("ENV_MODE", "development")
    monkeypatch.setenv("DATA_DIRECTORY", str(tmp_path / "data"))
    monkeypatch.setenv("EXPORT_ORDERS", "false")
    monkeypatch.setenv("ENFORCE_BUSINESS_HOURS", "false")
    # API tests run on the wall clock; expiry itself is covered with a fixed clock
    monkeypatch.setenv("COUPON_EXPIRES_AT", "2099-12-31T23:59:59-05:00")
    get_settings.cache_clear()
    reset_storage()
    reset_coupon_service()
    yield
    get_settings.cache_clear()
    reset_storage()
    reset_coupon_service()


@pytest.fixture
def storage(tmp_path):
    return FileStorage(tmp_path / "store", lock_timeout=5)


@pytest.fixture
def catalog():
    return Catalog()


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def coupons(storage, clock):
    return CouponService(storage, clock=clock, expires_at=EXPIRY)
