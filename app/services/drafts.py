"""
Order Drafts

A draft is the server-side cart: lines, delivery zone and an applied
coupon, addressed by an opaque token the client keeps. Every line goes
through the catalog before it is stored, so the promotional fields of a
stored line are always the ones the menu rules decided.

Pricing a draft is a pure computation over its current content; nothing
about the price is stored on the draft itself.
"""

import logging
import uuid
from datetime import datetime
from typing import Callable, Iterable, Optional

from app.core.exceptions import NotFoundError, ValidationError
from app.schemas import DeliveryZone, OrderDraft, OrderLine, PricedOrder
from app.services.catalog import Catalog, get_catalog
from app.services.coupons import CouponService, get_coupon_service, utcnow
from app.services.pricing import PricingEngine, get_pricing_engine
from app.services.storage import BaseStorage, get_storage

logger = logging.getLogger(__name__)


class DraftService:
    """
    Draft lifecycle: create, edit lines, pick zone, apply coupon, price.

    Attributes:
        storage: Document store holding the drafts mapping
        coupons: Coupon service used for dry-run validation
        catalog_provider: Returns the current catalog snapshot
        clock: Current-time source
    """

    def __init__(
        self,
        storage: BaseStorage,
        coupons: CouponService,
        catalog_provider: Callable[[], Catalog] = get_catalog,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.storage = storage
        self.coupons = coupons
        self.catalog_provider = catalog_provider
        self.clock = clock

    def _engine(self, catalog: Optional[Catalog] = None) -> PricingEngine:
        return get_pricing_engine(catalog or self.catalog_provider())

    def _update(self, draft_id: str, mutator: Callable[[OrderDraft], OrderDraft]) -> OrderDraft:
        def _touch(draft: OrderDraft) -> OrderDraft:
            return mutator(draft).model_copy(update={"updated_at": self.clock()})

        draft = self.storage.update_draft(draft_id, _touch)
        if draft is None:
            raise NotFoundError(f"Draft {draft_id} not found", code="draft_not_found")
        return draft

    @staticmethod
    def _check_index(draft: OrderDraft, index: int) -> None:
        if not 0 <= index < len(draft.lines):
            raise ValidationError(
                f"Line {index} does not exist (draft has {len(draft.lines)} lines)",
                code="invalid_line_index",
            )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def create_draft(
        self,
        lines: Iterable[OrderLine] = (),
        zone: Optional[DeliveryZone] = None,
    ) -> OrderDraft:
        catalog = self.catalog_provider()
        draft = OrderDraft(
            id=uuid.uuid4().hex,
            lines=[catalog.prepare_line(line) for line in lines],
            zone=zone,
            created_at=self.clock(),
        )
        self.storage.save_draft(draft)
        logger.info(f"Draft {draft.id} created with {len(draft.lines)} line(s)")
        return draft

    def get_draft(self, draft_id: str) -> OrderDraft:
        draft = self.storage.get_draft(draft_id)
        if draft is None:
            raise NotFoundError(f"Draft {draft_id} not found", code="draft_not_found")
        return draft

    def delete_draft(self, draft_id: str) -> None:
        if not self.storage.delete_draft(draft_id):
            raise NotFoundError(f"Draft {draft_id} not found", code="draft_not_found")
        logger.info(f"Draft {draft_id} deleted")

    # =========================================================================
    # LINES
    # =========================================================================

    def add_line(self, draft_id: str, line: OrderLine) -> OrderDraft:
        prepared = self.catalog_provider().prepare_line(line)
        return self._update(
            draft_id,
            lambda d: d.model_copy(update={"lines": d.lines + [prepared]}),
        )

    def replace_line(self, draft_id: str, index: int, line: OrderLine) -> OrderDraft:
        """Swap the line at index for an edited copy."""
        prepared = self.catalog_provider().prepare_line(line)

        def _replace(draft: OrderDraft) -> OrderDraft:
            self._check_index(draft, index)
            lines = list(draft.lines)
            lines[index] = prepared
            return draft.model_copy(update={"lines": lines})

        return self._update(draft_id, _replace)

    def remove_line(self, draft_id: str, index: int) -> OrderDraft:
        def _remove(draft: OrderDraft) -> OrderDraft:
            self._check_index(draft, index)
            lines = list(draft.lines)
            del lines[index]
            return draft.model_copy(update={"lines": lines})

        return self._update(draft_id, _remove)

    # =========================================================================
    # ZONE & COUPON
    # =========================================================================

    def set_zone(self, draft_id: str, zone: DeliveryZone) -> OrderDraft:
        return self._update(draft_id, lambda d: d.model_copy(update={"zone": zone}))

    def apply_coupon(self, draft_id: str, code: str, owner_identifier: str) -> OrderDraft:
        """
        Validate a coupon against the draft's current lines and remember it.

        Nothing is consumed here; the coupon is marked used when the
        order is confirmed.
        """
        draft = self.get_draft(draft_id)
        combo_active = self._engine().detect_combo(draft.lines)
        percent = self.coupons.validate_coupon(code, owner_identifier, combo_active)

        normalized = code.strip().upper()
        logger.info(f"Coupon {normalized} applied to draft {draft_id}")
        return self._update(draft_id, lambda d: d.model_copy(update={
            "coupon_code": normalized,
            "coupon_owner": owner_identifier,
            "coupon_percent": percent,
        }))

    def remove_coupon(self, draft_id: str) -> OrderDraft:
        return self._update(draft_id, lambda d: d.model_copy(update={
            "coupon_code": None,
            "coupon_owner": None,
            "coupon_percent": None,
        }))

    # =========================================================================
    # PRICING
    # =========================================================================

    def price_draft(self, draft: OrderDraft, catalog: Optional[Catalog] = None) -> PricedOrder:
        """Price a draft; a stored coupon is ignored while a combo is active."""
        return self._engine(catalog).compute_total(
            draft.lines,
            draft.zone,
            coupon_discount_percent=draft.coupon_percent,
            coupon_code=draft.coupon_code,
        )


def get_draft_service() -> DraftService:
    return DraftService(storage=get_storage(), coupons=get_coupon_service())
