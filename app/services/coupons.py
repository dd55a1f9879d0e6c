"""
Coupon Service

One-time, per-owner percentage coupons earned by ordering only the
promotional sauces.

Rules:
    - At most one coupon per owner identifier (national ID), whatever its status
    - At most coupon_limit coupons ever issued (13)
    - A coupon cannot be redeemed while the order has a combo discount
    - Validation is a dry run; the coupon is only marked used once the
      order that redeems it has been stored

Issuance and mark-used run inside storage.update_coupons(), so the cap
and uniqueness checks see the same document that gets written. Two
concurrent requests cannot both pass the checks.
"""

import logging
import secrets
import string
import uuid
from datetime import datetime, timezone
from functools import lru_cache
from typing import Callable, Iterable, Optional

from app.core.config import get_settings
from app.core.exceptions import (
    ConflictError,
    CouponErrorCode,
    ExpiredError,
    NotFoundError,
    OwnershipError,
    ValidationError,
)
from app.schemas import Coupon, CouponEligibilityResponse, CouponStatus
from app.services.catalog import COUPON_SAUCE_IDS, sauces_qualify
from app.services.storage import BaseStorage, get_storage

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class CouponService:
    """
    Coupon validation, issuance and redemption over the coupon store.

    Attributes:
        storage: Document store holding the coupon list
        clock: Current-time source, injectable for tests
        limit: Global issuance cap
        discount_percent: Percent granted by a new coupon
        code_prefix: Prefix of generated codes
        expires_at: Fixed expiration stamped on new coupons
    """

    def __init__(
        self,
        storage: BaseStorage,
        clock: Callable[[], datetime] = utcnow,
        limit: int = 13,
        discount_percent: float = 13.0,
        code_prefix: str = "SANTO13",
        expires_at: Optional[datetime] = None,
    ):
        self.storage = storage
        self.clock = clock
        self.limit = limit
        self.discount_percent = discount_percent
        self.code_prefix = code_prefix
        self.expires_at = _aware(expires_at or get_settings().coupon_expires_at)

    @classmethod
    def from_settings(
        cls,
        storage: Optional[BaseStorage] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> "CouponService":
        settings = get_settings()
        return cls(
            storage=storage or get_storage(),
            clock=clock,
            limit=settings.coupon_limit,
            discount_percent=settings.coupon_discount_percent,
            code_prefix=settings.coupon_code_prefix,
            expires_at=settings.coupon_expires_at,
        )

    def generate_code(self) -> str:
        """PREFIX-XXXXXX; collisions are not checked."""
        suffix = "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
        return f"{self.code_prefix}-{suffix}"

    @staticmethod
    def _normalize_code(code: str) -> str:
        return code.strip().upper()

    # =========================================================================
    # QUERIES
    # =========================================================================

    def list_coupons(self) -> list[Coupon]:
        return self.storage.get_coupons()

    def check_eligibility(self, owner_identifier: str) -> CouponEligibilityResponse:
        coupons = self.storage.get_coupons()
        owned = next((c for c in coupons if c.owner_identifier == owner_identifier), None)
        return CouponEligibilityResponse(
            eligible=len(coupons) < self.limit and owned is None,
            has_coupon=owned is not None,
            coupon_status=owned.status if owned else None,
            remaining_slots=max(0, self.limit - len(coupons)),
        )

    # =========================================================================
    # VALIDATION (dry run)
    # =========================================================================

    def validate_coupon(
        self,
        code: str,
        owner_identifier: str,
        combo_active: bool = False,
    ) -> float:
        """
        Check that a coupon can be redeemed right now.

        Returns:
            float: The coupon's discount percent

        Raises:
            ConflictError: A combo is active, or the coupon was already used
            NotFoundError: No coupon with that code
            OwnershipError: The coupon belongs to another owner
            ExpiredError: The coupon is past its expiration date
        """
        if combo_active:
            raise ConflictError(
                "Coupons cannot be combined with the FAT + FIT combo",
                code=CouponErrorCode.COMBO_ACTIVE,
            )

        code = self._normalize_code(code)
        coupon = next((c for c in self.storage.get_coupons() if c.code == code), None)

        if coupon is None:
            raise NotFoundError(f"Coupon {code} does not exist", code=CouponErrorCode.NOT_FOUND)

        if coupon.owner_identifier != owner_identifier:
            raise OwnershipError(
                "This coupon belongs to another customer",
                code=CouponErrorCode.OWNER_MISMATCH,
            )

        if coupon.status == CouponStatus.USED:
            raise ConflictError(f"Coupon {code} was already used", code=CouponErrorCode.ALREADY_USED)

        if self.clock() > _aware(coupon.expires_at):
            raise ExpiredError(f"Coupon {code} has expired", code=CouponErrorCode.EXPIRED)

        logger.debug(f"Coupon {code} valid for {owner_identifier} ({coupon.discount_percent}%)")
        return coupon.discount_percent

    # =========================================================================
    # ISSUANCE
    # =========================================================================

    def issue_coupon(
        self,
        owner_identifier: str,
        display_name: str,
        order_id: str,
        chosen_sauces: Iterable[str],
    ) -> Coupon:
        """
        Issue a coupon for an order that used only promotional sauces.

        Raises:
            ValidationError: The sauces do not qualify
            ConflictError: The cap is reached or the owner already has a coupon
        """
        if not sauces_qualify(chosen_sauces, COUPON_SAUCE_IDS):
            raise ValidationError(
                "The order does not qualify for a coupon",
                code=CouponErrorCode.NOT_QUALIFYING,
            )

        now = self.clock()
        coupon = Coupon(
            id=f"coupon-{uuid.uuid4().hex[:12]}",
            code=self.generate_code(),
            owner_identifier=owner_identifier,
            display_name=display_name,
            discount_percent=self.discount_percent,
            status=CouponStatus.PENDING,
            created_at=now,
            expires_at=self.expires_at,
            linked_order_id=order_id,
        )

        def _issue(coupons: list[Coupon]) -> tuple[list[Coupon], Coupon]:
            if len(coupons) >= self.limit:
                raise ConflictError(
                    "All promotional coupons have been issued",
                    code=CouponErrorCode.LIMIT_REACHED,
                )
            if any(c.owner_identifier == owner_identifier for c in coupons):
                raise ConflictError(
                    "A coupon already exists for this customer",
                    code=CouponErrorCode.DUPLICATE_OWNER,
                )
            return coupons + [coupon], coupon

        issued = self.storage.update_coupons(_issue)
        logger.info(f"Coupon {issued.code} issued to {owner_identifier} for order {order_id}")
        return issued

    # =========================================================================
    # REDEMPTION
    # =========================================================================

    def mark_coupon_used(
        self,
        code: str,
        owner_identifier: str,
        order_id: Optional[str] = None,
    ) -> Coupon:
        """
        Move a coupon from pending to used. Terminal: there is no way back.

        Raises:
            NotFoundError: No coupon with that code for that owner
            ConflictError: The coupon was already used
        """
        code = self._normalize_code(code)
        now = self.clock()

        def _mark(coupons: list[Coupon]) -> tuple[list[Coupon], Coupon]:
            for index, coupon in enumerate(coupons):
                if coupon.code == code and coupon.owner_identifier == owner_identifier:
                    if coupon.status == CouponStatus.USED:
                        raise ConflictError(
                            f"Coupon {code} was already used",
                            code=CouponErrorCode.ALREADY_USED,
                        )
                    coupons[index] = coupon.model_copy(update={
                        "status": CouponStatus.USED,
                        "used_at": now,
                        "redeemed_order_id": order_id,
                    })
                    return coupons, coupons[index]
            raise NotFoundError(f"Coupon {code} not found", code=CouponErrorCode.NOT_FOUND)

        used = self.storage.update_coupons(_mark)
        logger.info(f"Coupon {code} marked as used (order {order_id})")
        return used


@lru_cache()
def get_coupon_service() -> CouponService:
    """Get the configured coupon service (cached)."""
    return CouponService.from_settings()


def reset_coupon_service() -> None:
    """Clear the cached coupon service, e.g. after swapping storage in tests."""
    get_coupon_service.cache_clear()
    logger.debug("Coupon service cache cleared")
