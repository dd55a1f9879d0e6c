import pytest

from app.core.exceptions import ConflictError, ValidationError
from app.schemas import OrderLine
from app.services.catalog import (
    COUPON_SAUCE_IDS,
    LINE_PROMO_SAUCE_IDS,
    Catalog,
    get_catalog,
    sauces_qualify,
)


def test_required_sauces_scale_with_quantity(catalog):
    assert catalog.required_sauce_count("pequeno-dilema", 1) == 1
    assert catalog.required_sauce_count("duo-dilema", 2) == 4
    assert catalog.required_sauce_count("santo-pecado", 1) == 3
    assert catalog.required_sauce_count("ensalada-caesar", 3) == 0


def test_valid_line_passes(catalog):
    catalog.validate_line(OrderLine(product_id="duo-dilema",
                                    chosen_sauces=["barbecue", "teriyaki"],
                                    add_on_ids=["coca-cola", "extra-salsa-teriyaki"]))


@pytest.mark.parametrize("line,code", [
    (OrderLine(product_id="pizza"), "unknown_product"),
    (OrderLine(product_id="pequeno-dilema", chosen_sauces=["ketchup"]), "unknown_sauce"),
    (OrderLine(product_id="duo-dilema", chosen_sauces=["barbecue"]), "sauce_count"),
    (OrderLine(product_id="ensalada-clasica", add_on_ids=["beer"]), "unknown_add_on"),
])
def test_invalid_lines_are_rejected(catalog, line, code):
    with pytest.raises(ValidationError) as exc_info:
        catalog.validate_line(line)
    assert exc_info.value.code == code


def test_sold_out_product_is_rejected():
    catalog = Catalog(sold_out={"ensalada-caesar": True})

    assert catalog.get_product("ensalada-caesar").sold_out is True
    with pytest.raises(ConflictError) as exc_info:
        catalog.validate_line(OrderLine(product_id="ensalada-caesar"))
    assert exc_info.value.code == "sold_out"


def test_line_promotion_discounts_fat_menu(catalog):
    line = catalog.apply_line_promotion(
        OrderLine(product_id="santo-pecado", chosen_sauces=["anticuchos", "teriyaki", "macerichada"])
    )

    assert line.promo_flag is True
    assert line.original_unit_price == 47.00
    assert line.unit_price_override == 32.90


def test_mixed_sauces_get_no_promotion(catalog):
    line = catalog.apply_line_promotion(
        OrderLine(product_id="duo-dilema", chosen_sauces=["teriyaki", "barbecue"])
    )

    assert line.promo_flag is False
    assert line.unit_price_override is None


def test_client_supplied_promo_fields_are_discarded(catalog):
    forged = OrderLine(product_id="duo-dilema", chosen_sauces=["barbecue", "ahumada"],
                       promo_flag=True, unit_price_override=1.0, original_unit_price=34.0)

    line = catalog.prepare_line(forged)

    assert line.promo_flag is False
    assert line.unit_price_override is None
    assert line.original_unit_price is None


def test_line_promotion_can_be_disabled():
    catalog = Catalog(line_promo_enabled=False)
    line = catalog.apply_line_promotion(
        OrderLine(product_id="pequeno-dilema", chosen_sauces=["honey-mustard"])
    )
    assert line.promo_flag is False


def test_sauces_qualify_needs_a_non_empty_subset():
    assert sauces_qualify(["barbecue", "ahumada"], COUPON_SAUCE_IDS) is True
    assert sauces_qualify(["barbecue", "teriyaki"], COUPON_SAUCE_IDS) is False
    assert sauces_qualify([], COUPON_SAUCE_IDS) is False
    assert sauces_qualify(["honey-mustard"], LINE_PROMO_SAUCE_IDS) is True


def test_get_catalog_reads_sold_out_flags_from_storage():
    from app.services.storage import get_storage

    get_storage().set_sold_out("duo-dilema", True)

    assert get_catalog().get_product("duo-dilema").sold_out is True
    assert get_catalog().get_product("santo-pecado").sold_out is False
