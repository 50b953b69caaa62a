"""Sell-price calculation (GBP, VAT-inclusive, marked up).

Product price:
1. base = supplier PriceIncVat
   else supplier Price * (1 + VAT/100) when a VAT rate is known
   else supplier Price
   else the local retail_price fallback
   else None
2. price_with_markup = round(base * (1 + markup/100), 2), or None without a base.

Variant price:
    round(net * (1 + VAT/100) * (1 + markup/100), 2)
    net = variant Price, else parent Price; VAT = parent VATPercentage, else Vat, else 20.

Rounding is half-up to whole pence, so results are monotonic in every input.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from storefront.schemas.avasam import AvasamProduct, AvasamVariant
from storefront.schemas.product import DisplayPrice

DEFAULT_VAT_PERCENT = 20.0
PENNY = Decimal("0.01")


def round_to_pence(value: float) -> float | None:
    """Round half-up to 2 decimal places.

    Returns None for values that cannot be priced (inf, nan, or too many digits
    for pence precision).
    """
    # str() keeps the shortest repr, so 14.399999999999999 rounds to 14.40.
    try:
        return float(Decimal(str(value)).quantize(PENNY, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return None


def apply_markup(base_price: float | None, markup_percent: float) -> float | None:
    """Apply the storefront markup to a VAT-inclusive base price."""
    if base_price is None:
        return None
    return round_to_pence(base_price * (1 + markup_percent / 100))


def compute_base_price(
    supplier: AvasamProduct | None,
    retail_price: float | None = None,
) -> float | None:
    """VAT-inclusive cost of a product before markup."""
    if supplier is not None:
        if supplier.price_inc_vat is not None:
            return supplier.price_inc_vat

        vat_pct = supplier.effective_vat_percentage
        if supplier.price is not None and vat_pct is not None:
            return supplier.price * (1 + vat_pct / 100)
        if supplier.price is not None:
            return supplier.price

    return retail_price


def compute_price_with_markup(
    supplier: AvasamProduct | None,
    retail_price: float | None,
    markup_percent: float,
) -> float | None:
    """Display price for a product; None (never 0) when nothing is priced."""
    return apply_markup(compute_base_price(supplier, retail_price), markup_percent)


def compute_variant_price_with_markup(
    parent: AvasamProduct | None,
    variant: AvasamVariant | None,
    markup_percent: float,
) -> float | None:
    """Display price for one supplier variant."""
    if parent is None or variant is None:
        return None

    net_price = variant.price if variant.price is not None else parent.price
    if net_price is None:
        return None

    vat_pct = parent.effective_vat_percentage
    if vat_pct is None:
        vat_pct = DEFAULT_VAT_PERCENT

    return round_to_pence(net_price * (1 + vat_pct / 100) * (1 + markup_percent / 100))


def compute_display_price(
    parent: AvasamProduct | None,
    price_with_markup: float | None,
    markup_percent: float,
    selected_variant: AvasamVariant | None = None,
) -> DisplayPrice | None:
    """Price to show on a product page.

    - A selected variant shows its own price.
    - Otherwise variants give a single price when they all match to the penny,
      else a min-max range.
    - Without priced variants, fall back to the product-level price_with_markup.
    """
    if selected_variant is not None:
        price = compute_variant_price_with_markup(parent, selected_variant, markup_percent)
        return DisplayPrice(kind="single", value=price) if price is not None else None

    variants = parent.variations if parent is not None else []
    prices = [
        p
        for p in (compute_variant_price_with_markup(parent, v, markup_percent) for v in variants)
        if p is not None
    ]

    if prices:
        low, high = min(prices), max(prices)
        if round(low * 100) == round(high * 100):
            return DisplayPrice(kind="single", value=low)
        return DisplayPrice(kind="range", min=low, max=high)

    if price_with_markup is not None:
        return DisplayPrice(kind="single", value=price_with_markup)

    return None
