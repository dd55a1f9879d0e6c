from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest

from app.core.config import get_settings
from app.core.exceptions import (
    ConflictError,
    CouponErrorCode,
    ExpiredError,
    NotFoundError,
    OwnershipError,
    ValidationError,
)
from app.schemas import CouponStatus
from app.services.coupons import CouponService

QUALIFYING = ["barbecue", "ahumada"]
EXPIRY = datetime.fromisoformat("2026-02-28T23:59:59-05:00")


def issue(coupons, owner="45678912", sauces=QUALIFYING):
    return coupons.issue_coupon(owner, "Rosa Quispe", f"order-{owner}", sauces)


# =============================================================================
# ISSUANCE
# =============================================================================

def test_issue_coupon(coupons, storage):
    coupon = issue(coupons)

    assert coupon.code.startswith("SANTO13-")
    suffix = coupon.code.split("-", 1)[1]
    assert len(suffix) == 6 and suffix.isalnum() and suffix == suffix.upper()
    assert coupon.status == CouponStatus.PENDING
    assert coupon.discount_percent == 13.0
    assert coupon.linked_order_id == "order-45678912"
    assert coupon.expires_at == datetime.fromisoformat("2026-02-28T23:59:59-05:00")
    assert [c.code for c in storage.get_coupons()] == [coupon.code]


@pytest.mark.parametrize("sauces", [[], ["barbecue", "teriyaki"], ["honey-mustard"]])
def test_non_qualifying_sauces_get_no_coupon(coupons, storage, sauces):
    with pytest.raises(ValidationError) as exc_info:
        issue(coupons, sauces=sauces)

    assert exc_info.value.code == CouponErrorCode.NOT_QUALIFYING.value
    assert storage.get_coupons() == []


def test_one_coupon_per_owner(coupons, storage):
    issue(coupons)

    with pytest.raises(ConflictError) as exc_info:
        issue(coupons)

    assert exc_info.value.code == CouponErrorCode.DUPLICATE_OWNER.value
    assert len(storage.get_coupons()) == 1


def test_fourteenth_coupon_is_refused(coupons, storage):
    for n in range(13):
        issue(coupons, owner=f"{10000000 + n}")

    with pytest.raises(ConflictError) as exc_info:
        issue(coupons, owner="99999999")

    assert exc_info.value.code == CouponErrorCode.LIMIT_REACHED.value
    assert len(storage.get_coupons()) == 13


def test_concurrent_issuance_respects_the_cap(coupons, storage):
    def attempt(n):
        try:
            return issue(coupons, owner=f"{20000000 + n}")
        except ConflictError:
            return None

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(attempt, range(30)))

    stored = storage.get_coupons()
    assert len([r for r in results if r is not None]) == 13
    assert len(stored) == 13
    assert len({c.owner_identifier for c in stored}) == 13


# =============================================================================
# VALIDATION
# =============================================================================

def test_validate_returns_percent_without_consuming(coupons, storage):
    coupon = issue(coupons)

    assert coupons.validate_coupon(coupon.code, "45678912") == 13.0
    assert coupons.validate_coupon(coupon.code.lower(), "45678912") == 13.0
    assert storage.get_coupons()[0].status == CouponStatus.PENDING


def test_combo_rejects_before_lookup(coupons):
    with pytest.raises(ConflictError) as exc_info:
        coupons.validate_coupon("SANTO13-NOPE00", "45678912", combo_active=True)
    assert exc_info.value.code == CouponErrorCode.COMBO_ACTIVE.value


def test_unknown_code(coupons):
    with pytest.raises(NotFoundError):
        coupons.validate_coupon("SANTO13-NOPE00", "45678912")


def test_coupon_of_another_owner(coupons):
    coupon = issue(coupons)

    with pytest.raises(OwnershipError) as exc_info:
        coupons.validate_coupon(coupon.code, "11111111")
    assert exc_info.value.status_code == 403


def test_used_coupon_is_rejected(coupons):
    coupon = issue(coupons)
    coupons.mark_coupon_used(coupon.code, "45678912")

    with pytest.raises(ConflictError) as exc_info:
        coupons.validate_coupon(coupon.code, "45678912")
    assert exc_info.value.code == CouponErrorCode.ALREADY_USED.value


def test_expired_coupon_is_rejected(storage):
    late = CouponService(storage, clock=lambda: datetime(2026, 3, 1, 5, 0, tzinfo=timezone.utc),
                         expires_at=EXPIRY)
    coupon = CouponService(storage, clock=lambda: datetime(2026, 1, 1, tzinfo=timezone.utc),
                           expires_at=EXPIRY) \
        .issue_coupon("45678912", "Rosa", "order-1", QUALIFYING)

    with pytest.raises(ExpiredError) as exc_info:
        late.validate_coupon(coupon.code, "45678912")
    assert exc_info.value.status_code == 410


def test_coupon_valid_until_the_last_second(storage):
    # 2026-02-28T23:59:59-05:00 is 2026-03-01T04:59:59Z
    at_expiry = CouponService(storage, clock=lambda: datetime(2026, 3, 1, 4, 59, 59, tzinfo=timezone.utc),
                              expires_at=EXPIRY)
    coupon = at_expiry.issue_coupon("45678912", "Rosa", "order-1", QUALIFYING)

    assert at_expiry.validate_coupon(coupon.code, "45678912") == 13.0


def test_default_expiry_is_the_campaign_end(monkeypatch):
    monkeypatch.delenv("COUPON_EXPIRES_AT")
    get_settings.cache_clear()

    assert get_settings().coupon_expires_at == EXPIRY


# =============================================================================
# REDEMPTION
# =============================================================================

def test_mark_used_is_terminal(coupons, storage, clock):
    coupon = issue(coupons)

    used = coupons.mark_coupon_used(coupon.code, "45678912", order_id="order-2")

    assert used.status == CouponStatus.USED
    assert used.used_at == clock()
    assert used.redeemed_order_id == "order-2"
    assert used.linked_order_id == "order-45678912"

    with pytest.raises(ConflictError):
        coupons.mark_coupon_used(coupon.code, "45678912")
    assert storage.get_coupons()[0].status == CouponStatus.USED


def test_mark_used_needs_matching_owner(coupons):
    coupon = issue(coupons)

    with pytest.raises(NotFoundError):
        coupons.mark_coupon_used(coupon.code, "11111111")


def test_eligibility(coupons):
    assert coupons.check_eligibility("45678912").model_dump() == {
        "eligible": True,
        "has_coupon": False,
        "coupon_status": None,
        "remaining_slots": 13,
    }

    issue(coupons)
    eligibility = coupons.check_eligibility("45678912")

    assert eligibility.eligible is False
    assert eligibility.has_coupon is True
    assert eligibility.coupon_status == CouponStatus.PENDING
    assert eligibility.remaining_slots == 12
    assert len(coupons.list_coupons()) == 1
