"""
Menu Catalog

Static menu data and the rules attached to it:
    - FAT menus (wings) and FIT menus (bowls), the two combo subsets
    - Sauces, and how many a FAT menu needs per unit
    - Add-ons (drinks, extras), priced flat per line
    - Delivery zone fees
    - The daily sauce promotion on FAT menus

The catalog is a snapshot: sold-out flags are read from storage when
the snapshot is built, and pricing only ever sees the snapshot.
"""

import logging
from typing import Iterable, Optional

from app.core.config import Settings, get_settings
from app.core.exceptions import ConflictError, ValidationError
from app.schemas import AddOn, DeliveryZone, OrderLine, Product, ProductCategory, Sauce
from app.services.storage import get_storage

logger = logging.getLogger(__name__)


# =============================================================================
# MENU DATA
# =============================================================================

PRODUCTS: list[Product] = [
    Product(id="pequeno-dilema", name="Pequeño Dilema", price=20.00,
            category=ProductCategory.FAT, sauces_per_unit=1),
    Product(id="duo-dilema", name="Dúo Dilema", price=34.00,
            category=ProductCategory.FAT, sauces_per_unit=2),
    Product(id="santo-pecado", name="Santo Pecado", price=47.00,
            category=ProductCategory.FAT, sauces_per_unit=3),
    Product(id="ensalada-clasica", name="Clásica Fresh Bowl", price=18.50,
            category=ProductCategory.FIT),
    Product(id="ensalada-proteica", name="César Power Bowl", price=18.00,
            category=ProductCategory.FIT, old_price=22.50),
    Product(id="ensalada-caesar", name="Protein Fit Bowl", price=23.50,
            category=ProductCategory.FIT),
    Product(id="ensalada-mediterranea", name="Tuna Fresh Bowl", price=18.50,
            category=ProductCategory.FIT, old_price=23.50),
]

SAUCES: list[Sauce] = [
    Sauce(id="barbecue", name="BBQ Ahumada"),
    Sauce(id="buffalo-picante", name="Santo Picante"),
    Sauce(id="ahumada", name="Acevichada Imperial"),
    Sauce(id="parmesano-ajo", name="Crispy Celestial"),
    Sauce(id="anticuchos", name="Parrillera"),
    Sauce(id="honey-mustard", name="Honey Mustard"),
    Sauce(id="teriyaki", name="Teriyaki"),
    Sauce(id="macerichada", name="Sweet & Sour"),
]

ADD_ONS: list[AddOn] = [
    AddOn(id="agua-mineral", name="Agua mineral", price=4.00),
    AddOn(id="coca-cola", name="Coca Cola 500ml", price=4.00),
    AddOn(id="inka-cola", name="Inka Cola 500ml", price=4.00),
    AddOn(id="sprite", name="Sprite 500ml", price=4.00),
    AddOn(id="fanta", name="Fanta 500ml", price=4.00),
    AddOn(id="extra-papas", name="Extra papas", price=4.00),
    AddOn(id="extra-salsa", name="Extra salsa", price=3.00),
    AddOn(id="extra-aderezo", name="Extra aderezo", price=3.00),
    AddOn(id="pollo-grillado", name="Pollo grillado", price=5.00),
] + [
    AddOn(id=f"extra-salsa-{sauce.id}", name=f"Extra salsa - {sauce.name}", price=3.00)
    for sauce in SAUCES
]

DELIVERY_FEES: dict[DeliveryZone, float] = {
    DeliveryZone.ZONE_A: 4.00,
    DeliveryZone.ZONE_B: 5.00,
    DeliveryZone.ZONE_C: 7.00,
    DeliveryZone.ZONE_D: 5.00,
    DeliveryZone.OTHER: 0.00,
}

# Menus that must all be present (one of each subset) for the combo discount
FAT_PRODUCT_IDS = frozenset(p.id for p in PRODUCTS if p.category == ProductCategory.FAT)
FIT_PRODUCT_IDS = frozenset(p.id for p in PRODUCTS if p.category == ProductCategory.FIT)

# An order whose sauces are all in this list earns a coupon
COUPON_SAUCE_IDS = frozenset({"barbecue", "buffalo-picante", "ahumada", "parmesano-ajo"})

# A FAT menu whose sauces are all in this list gets the daily line discount
LINE_PROMO_SAUCE_IDS = frozenset({"anticuchos", "honey-mustard", "teriyaki", "macerichada"})


def sauces_qualify(sauce_ids: Iterable[str], allow_list: frozenset[str]) -> bool:
    """True when at least one sauce was chosen and every one is in allow_list."""
    sauce_ids = list(sauce_ids)
    return bool(sauce_ids) and all(s in allow_list for s in sauce_ids)


class Catalog:
    """
    Lookup tables for one menu snapshot.

    Attributes:
        products: product id -> Product (sold_out already applied)
        add_ons: add-on id -> AddOn
        sauces: sauce id -> Sauce
        delivery_fees: zone -> fee
    """

    def __init__(
        self,
        products: Iterable[Product] = PRODUCTS,
        add_ons: Iterable[AddOn] = ADD_ONS,
        sauces: Iterable[Sauce] = SAUCES,
        delivery_fees: Optional[dict[DeliveryZone, float]] = None,
        sold_out: Optional[dict[str, bool]] = None,
        line_promo_enabled: bool = True,
        line_promo_discount_percent: float = 30.0,
    ):
        sold_out = sold_out or {}
        self.products = {
            p.id: p.model_copy(update={"sold_out": bool(sold_out.get(p.id, False))})
            for p in products
        }
        self.add_ons = {a.id: a for a in add_ons}
        self.sauces = {s.id: s for s in sauces}
        self.delivery_fees = dict(DELIVERY_FEES if delivery_fees is None else delivery_fees)
        self.line_promo_enabled = line_promo_enabled
        self.line_promo_discount_percent = line_promo_discount_percent

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        sold_out: Optional[dict[str, bool]] = None,
    ) -> "Catalog":
        settings = settings or get_settings()
        return cls(
            sold_out=sold_out,
            line_promo_enabled=settings.line_promo_enabled,
            line_promo_discount_percent=settings.line_promo_discount_percent,
        )

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def get_product(self, product_id: str) -> Optional[Product]:
        return self.products.get(product_id)

    def product_price(self, product_id: str) -> Optional[float]:
        product = self.products.get(product_id)
        return product.price if product else None

    def add_on_price(self, add_on_id: str) -> float:
        """Unknown add-ons are priced at zero."""
        add_on = self.add_ons.get(add_on_id)
        return add_on.price if add_on else 0.0

    def delivery_fee(self, zone: Optional[DeliveryZone]) -> float:
        if zone is None:
            return 0.0
        return self.delivery_fees.get(DeliveryZone(zone), 0.0)

    def required_sauce_count(self, product_id: str, quantity: int) -> int:
        product = self.products.get(product_id)
        if product is None:
            return 0
        return product.sauces_per_unit * quantity

    # =========================================================================
    # LINE RULES
    # =========================================================================

    def validate_line(self, line: OrderLine) -> None:
        """
        Check a line against the menu before it enters a draft.

        Raises:
            ValidationError: Unknown product, sauce or add-on, or wrong sauce count
            ConflictError: The product is sold out
        """
        product = self.products.get(line.product_id)
        if product is None:
            raise ValidationError(f"Unknown product '{line.product_id}'", code="unknown_product")

        if product.sold_out:
            raise ConflictError(f"{product.name} is sold out", code="sold_out")

        unknown_sauces = [s for s in line.chosen_sauces if s not in self.sauces]
        if unknown_sauces:
            raise ValidationError(f"Unknown sauces: {unknown_sauces}", code="unknown_sauce")

        required = self.required_sauce_count(line.product_id, line.quantity)
        if len(line.chosen_sauces) != required:
            raise ValidationError(
                f"{product.name} x{line.quantity} needs {required} sauce(s), "
                f"got {len(line.chosen_sauces)}",
                code="sauce_count",
            )

        unknown_add_ons = [a for a in line.add_on_ids if a not in self.add_ons]
        if unknown_add_ons:
            raise ValidationError(f"Unknown add-ons: {unknown_add_ons}", code="unknown_add_on")

    def apply_line_promotion(self, line: OrderLine) -> OrderLine:
        """
        Decide the promotional fields of a line from the menu rules.

        Client-supplied promo fields are discarded: a FAT line whose
        sauces are all daily-promo sauces gets the discounted override,
        every other line gets none.
        """
        product = self.products.get(line.product_id)
        qualifies = (
            self.line_promo_enabled
            and product is not None
            and product.category == ProductCategory.FAT
            and sauces_qualify(line.chosen_sauces, LINE_PROMO_SAUCE_IDS)
        )

        if not qualifies:
            return line.model_copy(update={
                "promo_flag": False,
                "unit_price_override": None,
                "original_unit_price": None,
            })

        discounted = round(product.price * (1 - self.line_promo_discount_percent / 100), 2)
        logger.debug(f"Sauce promo on {product.id}: {product.price:.2f} -> {discounted:.2f}")
        return line.model_copy(update={
            "promo_flag": True,
            "unit_price_override": discounted,
            "original_unit_price": product.price,
        })

    def prepare_line(self, line: OrderLine) -> OrderLine:
        """Validate a line and stamp its promotion."""
        self.validate_line(line)
        return self.apply_line_promotion(line)


def get_catalog() -> Catalog:
    """
    Build a catalog snapshot with the current sold-out flags.

    Not cached: the flags change during service hours.
    """
    return Catalog.from_settings(sold_out=get_storage().get_menu_stock())
