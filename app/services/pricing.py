"""
Order Pricing Engine

Turns a list of OrderLine plus the delivery zone and an optional coupon
percent into a PricedOrder. Everything here is a pure function of its
inputs and the catalog snapshot: no storage, no clock.

Discount rules:
    - FAT + FIT in the same order triggers a flat combo discount
    - Combo and per-line sauce promotions do not stack: with a combo,
      promotional lines are priced at their original price
    - Combo and coupon do not stack: with a combo, the coupon is ignored

    total = subtotal - combo - coupon + delivery fee
"""

import logging
from typing import Iterable, Optional

from app.core.config import get_settings
from app.schemas import DeliveryZone, OrderLine, PricedOrder
from app.services.catalog import FAT_PRODUCT_IDS, FIT_PRODUCT_IDS, Catalog, get_catalog

logger = logging.getLogger(__name__)


def _money(amount: float) -> float:
    return round(amount, 2)


class PricingEngine:
    """
    Stateless pricing over one catalog snapshot.

    Attributes:
        catalog: Product, add-on and delivery fee lookups
        combo_discount_amount: Flat discount for a FAT + FIT order

    Example:
        >>> engine = PricingEngine(Catalog(), combo_discount_amount=5.0)
        >>> engine.compute_total([OrderLine(product_id="duo-dilema",
        ...                                 chosen_sauces=["barbecue", "ahumada"])],
        ...                      DeliveryZone.ZONE_A).total
        38.0
    """

    def __init__(self, catalog: Catalog, combo_discount_amount: float = 5.0):
        self.catalog = catalog
        self.combo_discount_amount = combo_discount_amount

    def detect_combo(self, lines: Iterable[OrderLine]) -> bool:
        """True iff the lines hold at least one FAT menu and one FIT menu."""
        has_fat = has_fit = False
        for line in lines:
            has_fat = has_fat or line.product_id in FAT_PRODUCT_IDS
            has_fit = has_fit or line.product_id in FIT_PRODUCT_IDS
            if has_fat and has_fit:
                return True
        return False

    def _unit_price(self, line: OrderLine, catalog_price: float, combo_active: bool) -> float:
        if not line.promo_flag:
            return catalog_price
        if combo_active:
            # Promotions do not stack with the combo: back to the original price
            if line.original_unit_price is not None:
                return line.original_unit_price
            return catalog_price
        if line.unit_price_override is not None:
            return line.unit_price_override
        return catalog_price

    def compute_subtotal(
        self,
        lines: Iterable[OrderLine],
        combo_active: Optional[bool] = None,
    ) -> float:
        """
        Sum of unit price x quantity plus add-ons, over every line.

        Add-ons are charged once per line, not per unit. Lines whose
        product is not in the catalog contribute nothing.
        """
        lines = list(lines)
        if combo_active is None:
            combo_active = self.detect_combo(lines)

        subtotal = 0.0
        for line in lines:
            catalog_price = self.catalog.product_price(line.product_id)
            if catalog_price is None:
                # TODO: decide with the business whether an unknown product should fail the order
                logger.warning(f"Unknown product '{line.product_id}' excluded from subtotal")
                continue

            unit_price = self._unit_price(line, catalog_price, combo_active)
            add_ons = sum(self.catalog.add_on_price(a) for a in line.add_on_ids)
            subtotal += unit_price * line.quantity + add_ons

        return _money(subtotal)

    def apply_combo_discount(self, subtotal: float, combo_active: bool) -> float:
        """Subtract the flat combo discount once; never goes below zero."""
        if not combo_active:
            return _money(subtotal)
        return _money(max(subtotal - self.combo_discount_amount, 0.0))

    def compute_delivery_fee(self, zone: Optional[DeliveryZone]) -> float:
        """Zone lookup. OTHER (and no zone yet) is 0: the fee is agreed by phone."""
        return _money(self.catalog.delivery_fee(zone))

    def compute_total(
        self,
        lines: Iterable[OrderLine],
        zone: Optional[DeliveryZone],
        coupon_discount_percent: Optional[float] = None,
        coupon_code: Optional[str] = None,
    ) -> PricedOrder:
        """
        Price an order from scratch.

        Args:
            lines: Order lines
            zone: Delivery zone (None while the customer has not picked one)
            coupon_discount_percent: Percent of an already validated coupon
            coupon_code: Code of that coupon, echoed back when it applies

        Returns:
            PricedOrder: Breakdown of the amount to pay
        """
        lines = list(lines)
        combo_active = self.detect_combo(lines)
        subtotal = self.compute_subtotal(lines, combo_active)

        combo_amount = _money(subtotal - self.apply_combo_discount(subtotal, combo_active))

        coupon_applies = coupon_discount_percent is not None and not combo_active
        coupon_amount = 0.0
        if coupon_applies:
            coupon_amount = _money((subtotal - combo_amount) * coupon_discount_percent / 100)

        delivery_fee = self.compute_delivery_fee(zone)
        total = _money(subtotal - combo_amount - coupon_amount + delivery_fee)

        return PricedOrder(
            subtotal=subtotal,
            combo_discount=combo_amount,
            coupon_discount=coupon_amount,
            delivery_fee=delivery_fee,
            total=total,
            combo_active=combo_active,
            zone=zone,
            coupon_code=coupon_code if coupon_applies else None,
            discount_percent=coupon_discount_percent if coupon_applies else None,
        )


def get_pricing_engine(catalog: Optional[Catalog] = None) -> PricingEngine:
    """
    Build a pricing engine over the given (or current) catalog snapshot.

    Not cached: each request prices against the menu as it is now.
    """
    settings = get_settings()
    return PricingEngine(
        catalog=catalog or get_catalog(),
        combo_discount_amount=settings.combo_discount_amount,
    )
