import pytest

from storefront.schemas import AvasamProduct, AvasamVariant
from storefront.services.pricing import (
    apply_markup,
    compute_base_price,
    compute_display_price,
    compute_price_with_markup,
    compute_variant_price_with_markup,
    round_to_pence,
)


def _product(**fields) -> AvasamProduct:
    return AvasamProduct.model_validate({"SKU": "X1", **fields})


def test_retail_price_fallback_without_supplier_match():
    assert compute_price_with_markup(None, 10.0, 20) == 12.0


def test_net_price_with_vat_percentage():
    supplier = _product(Price=10, VATPercentage=20)
    assert compute_base_price(supplier) == pytest.approx(12.0)
    assert compute_price_with_markup(supplier, None, 20) == 14.4


def test_price_inc_vat_wins_over_net_price():
    supplier = _product(Price=10, PriceIncVat=15, VATPercentage=20)
    assert compute_price_with_markup(supplier, 99.0, 20) == 18.0


def test_generic_vat_field_used_when_percentage_missing():
    supplier = _product(Price=10, Vat=5)
    assert compute_price_with_markup(supplier, None, 0) == 10.5


def test_net_price_without_vat_is_used_as_is():
    supplier = _product(Price=10)
    assert compute_price_with_markup(supplier, 50.0, 20) == 12.0


def test_supplier_without_price_falls_back_to_retail_price():
    supplier = _product(Title="No price")
    assert compute_price_with_markup(supplier, 25.0, 20) == 30.0


def test_no_price_anywhere_is_none_not_zero():
    assert compute_price_with_markup(None, None, 20) is None
    assert compute_price_with_markup(_product(), None, 20) is None
    assert apply_markup(None, 20) is None


def test_string_prices_are_treated_as_missing():
    supplier = _product(Price="10.00", VATPercentage=20)
    assert supplier.price is None
    assert compute_price_with_markup(supplier, 8.0, 25) == 10.0


def test_round_to_pence_is_half_up():
    assert round_to_pence(1.005) == 1.01
    assert round_to_pence(2.675) == 2.68
    assert round_to_pence(14.399999999999999) == 14.4


def test_zero_markup_keeps_base_price():
    assert compute_price_with_markup(_product(PriceIncVat=9.99), None, 0) == 9.99


def test_variant_uses_own_price_and_parent_vat():
    parent = _product(Price=10, VATPercentage=5)
    variant = AvasamVariant.model_validate({"SKU": "X1-RED", "Price": 20})
    assert compute_variant_price_with_markup(parent, variant, 20) == 25.2


def test_variant_falls_back_to_parent_price_and_default_vat():
    parent = _product(Price=5)
    variant = AvasamVariant.model_validate({"SKU": "X1-RED", "Price": "n/a"})
    assert compute_variant_price_with_markup(parent, variant, 20) == 7.2


def test_variant_without_any_price_is_none():
    parent = _product()
    variant = AvasamVariant.model_validate({"SKU": "X1-RED"})
    assert compute_variant_price_with_markup(parent, variant, 20) is None
    assert compute_variant_price_with_markup(None, variant, 20) is None


def test_display_price_single_when_variants_match_to_the_penny():
    parent = _product(
        Price=10,
        VATPercentage=20,
        Variations=[{"SKU": "A", "Price": 10}, {"SKU": "B"}],
    )
    display = compute_display_price(parent, 14.4, 20)
    assert display is not None
    assert display.kind == "single"
    assert display.value == 14.4


def test_display_price_range_across_variants():
    parent = _product(
        Price=10,
        VATPercentage=20,
        Variations=[{"SKU": "A", "Price": 12}, {"SKU": "B", "Price": 10}, {"SKU": "C"}],
    )
    display = compute_display_price(parent, 14.4, 20)
    assert display is not None
    assert display.kind == "range"
    assert display.min == 14.4
    assert display.max == 17.28


def test_display_price_selected_variant():
    parent = _product(Price=10, VATPercentage=20, Variations=[{"SKU": "A", "Price": 12}])
    display = compute_display_price(parent, 14.4, 20, selected_variant=parent.variations[0])
    assert display is not None
    assert display.kind == "single"
    assert display.value == 17.28


def test_display_price_without_variants_falls_back_to_product_price():
    display = compute_display_price(_product(PriceIncVat=12), 14.4, 20)
    assert display is not None
    assert display.kind == "single"
    assert display.value == 14.4

    assert compute_display_price(None, None, 20) is None


def test_variant_price_is_monotonic_in_price_vat_and_markup():
    prices = [0, 0.01, 0.5, 1, 9.99, 10, 33.33, 100]
    vats = [0, 5, 12.5, 20]
    markups = [0, 10, 20, 37.5, 100]

    def price(p, vat, markup):
        parent = _product(Price=p, VATPercentage=vat)
        return compute_variant_price_with_markup(parent, AvasamVariant(), markup)

    for vat in vats:
        for markup in markups:
            series = [price(p, vat, markup) for p in prices]
            assert series == sorted(series)
    for p in prices:
        for markup in markups:
            series = [price(p, vat, markup) for vat in vats]
            assert series == sorted(series)
        for vat in vats:
            series = [price(p, vat, markup) for markup in markups]
            assert series == sorted(series)


def test_unpriceable_numbers_round_to_none():
    assert round_to_pence(float("inf")) is None
    assert round_to_pence(float("nan")) is None
    assert round_to_pence(1e30) is None
    assert apply_markup(1e30, 20) is None


def test_non_finite_supplier_numbers_are_missing():
    supplier = _product(Price=float("inf"), PriceIncVat=float("nan"), VATPercentage=20)
    assert supplier.price is None
    assert supplier.price_inc_vat is None
    assert compute_price_with_markup(supplier, 10.0, 20) == 12.0


def test_display_price_skips_unpriceable_variants():
    parent = _product(Price=10, VATPercentage=0, Variations=[{"SKU": "A", "Price": 1e30}, {"SKU": "B"}])
    price = compute_display_price(parent, None, 0)
    assert price.kind == "single"
    assert price.value == 10.0
