"""Product page data derived from an enriched SeasonalProduct.

Everything here is pure: images, variant prices and the specification table
are computed from the supplier payload already attached to the product.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
import math
import re

from storefront.schemas.avasam import AvasamProduct, AvasamVariant
from storefront.schemas.product import (
    ProductDetailResponse,
    SeasonalProduct,
    SpecItem,
    VariantSummary,
)
from storefront.schemas.season import SeasonOut
from storefront.services.pricing import compute_display_price, compute_variant_price_with_markup

# Supplier-facing properties that should not reach shoppers.
SPEC_EXCLUDE_KEYWORDS = ("wholesale", "dropship", "supplier", "dispatch", "lead time")


def format_spec_label(label: str) -> str:
    """Humanize a supplier key: product_weight / ProductWeight -> Product Weight."""
    text = re.sub(r"[_-]+", " ", label)
    text = re.sub(r"([a-z])([A-Z])", r"\1 \2", text)
    text = re.sub(r"\s+", " ", text).strip()
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), text)


def format_measurement(value: float) -> str | None:
    """Whole numbers from 10 up, one decimal below; a trailing ".0" is dropped."""
    if not math.isfinite(value):
        return None
    quantum = Decimal("1") if abs(value) >= 10 else Decimal("0.1")
    try:
        formatted = str(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return None
    return formatted[:-2] if formatted.endswith(".0") else formatted


class _SpecTable:
    def __init__(self) -> None:
        self.items: list[SpecItem] = []
        self._seen: set[str] = set()

    def add(self, label: str, value: object) -> None:
        formatted_label = format_spec_label(label)
        if value is None:
            return
        text = str(value).strip()
        if not text:
            return
        key = formatted_label.lower()
        if key in self._seen:
            return
        self.items.append(SpecItem(label=formatted_label, value=text))
        self._seen.add(key)


def build_specifications(supplier: AvasamProduct | None) -> list[SpecItem]:
    """Specification rows: code, category, weight, dimensions, then extended properties."""
    if supplier is None:
        return []

    table = _SpecTable()
    table.add("Product code", supplier.sku)
    table.add("Category", supplier.category)

    if supplier.product_weight is not None:
        weight = format_measurement(supplier.product_weight)
        if weight:
            table.add("Weight", f"{weight} kg")

    dims = [
        format_measurement(v) if v is not None else None
        for v in (supplier.product_width, supplier.product_depth, supplier.product_height)
    ]
    known = [d for d in dims if d]
    if known:
        label = "Dimensions (W × D × H)" if len(known) == 3 else "Dimensions"
        table.add(label, " × ".join(f"{d}cm" for d in known))

    for prop in supplier.extended_properties:
        name = prop.get("Name") if isinstance(prop.get("Name"), str) else ""
        value = prop.get("Value") if isinstance(prop.get("Value"), str) else ""
        if any(k in name.lower() or k in value.lower() for k in SPEC_EXCLUDE_KEYWORDS):
            continue
        if not value.strip():
            continue
        table.add(name or "Detail", value)

    return table.items


def gallery_images(product: SeasonalProduct) -> list[str]:
    """Supplier gallery first, then our own image, then the supplier's main image."""
    supplier = product.avasam
    if supplier is not None and supplier.product_image:
        return list(supplier.product_image)
    if product.image_url:
        return [product.image_url]
    if supplier is not None and supplier.image:
        return [supplier.image]
    return []


def primary_image(product: SeasonalProduct) -> str | None:
    """Listing thumbnail: our override, then the supplier's images."""
    if product.image_url:
        return product.image_url
    supplier = product.avasam
    if supplier is None:
        return None
    if supplier.image:
        return supplier.image
    return supplier.product_image[0] if supplier.product_image else None


# Extended property names such as "Colour A" or "Color: 2" map a code to a colour name.
COLOUR_PROPERTY_RE = re.compile(r"colou?r\W*([A-Za-z0-9]+)", re.IGNORECASE)
# A single letter with an optional digit ("A", "B2") is a code, not a colour name.
BARE_CODE_RE = re.compile(r"^[A-Za-z]\d?$")


def _text(value: object) -> str:
    return value.strip() if isinstance(value, str) else ""


def _natural_key(text: str) -> list[int | str]:
    return [int(part) if part.isdigit() else part for part in re.split(r"(\d+)", text.lower())]


def colour_names(supplier: AvasamProduct) -> dict[str, str]:
    """Colour code (upper-cased) -> colour name, from the product's extended properties."""
    names: dict[str, str] = {}
    for prop in supplier.extended_properties:
        value = prop.get("Value")
        if not isinstance(value, str):
            continue
        match = COLOUR_PROPERTY_RE.search(str(prop.get("Name") or ""))
        if match:
            names[match.group(1).upper()] = value.strip()
    return names


def variant_summary(
    supplier: AvasamProduct,
    variant: AvasamVariant,
    colours: dict[str, str],
    markup_percent: float,
) -> VariantSummary:
    """Price, thumbnail and selector label for one variant.

    The label prefers a colour name, then a style label, then the colour code,
    then the SKU. Parts not used as the label go into secondary_label.
    """
    attributes = list(variant.attributes.items())
    extra = variant.model_extra or {}

    colour_attr = next((v for k, v in attributes if "colour" in k.lower()), None)
    code = _text(colour_attr) or _text(extra.get("color")) or _text(extra.get("Colour"))

    colour_name = colours.get(code.upper()) if code else None
    if not colour_name:
        candidates = [_text(v) for k, v in attributes if "colour" in k.lower() or "color" in k.lower()]
        candidates += [_text(extra.get(k)) for k in ("ColourName", "ColorName", "Name", "Label")]
        colour_name = next((c for c in candidates if len(c) > 1 and not BARE_CODE_RE.match(c)), None)

    raw_style = _text(next((v for k, v in attributes if "style" in k.lower()), None))
    style_digits = re.sub(r"\D", "", raw_style)
    style_number = int(style_digits) if style_digits else None
    style_label = None
    if raw_style:
        style_label = re.sub(r"\s+", " ", raw_style) if "style" in raw_style.lower() else f"Style {raw_style}"

    label = colour_name
    secondary: list[str] = []
    if not label and style_label:
        label = style_label
    elif label and style_label:
        secondary.append(style_label)

    if code:
        code_label = f"Colour {code.upper()}"
        if not label:
            label = code_label
        elif code.upper() not in label.upper():
            secondary.append(code_label)

    label = (label or variant.sku or "Variant").strip()

    return VariantSummary(
        sku=variant.sku,
        price_with_markup=compute_variant_price_with_markup(supplier, variant, markup_percent),
        image=variant.main_image or (variant.images[0] if variant.images else None),
        label=label,
        secondary_label=" • ".join(secondary) or None,
        colour_code=code or None,
        style_number=style_number,
        sort_key=f"style-{style_number:03d}" if style_number is not None else label.lower(),
    )


def variant_summaries(supplier: AvasamProduct | None, markup_percent: float) -> list[VariantSummary]:
    """Variant summaries in natural sort-key order (style 2 before style 10)."""
    if supplier is None:
        return []
    colours = colour_names(supplier)
    summaries = [variant_summary(supplier, v, colours, markup_percent) for v in supplier.variations]
    return sorted(summaries, key=lambda s: _natural_key(s.sort_key))


def build_product_detail(
    season: SeasonOut | None,
    product: SeasonalProduct,
    markup_percent: float,
) -> ProductDetailResponse:
    """Assemble GET /api/products/{product_id}."""
    return ProductDetailResponse(
        season=season,
        product=product,
        display_price=compute_display_price(product.avasam, product.price_with_markup, markup_percent),
        primary_image=primary_image(product),
        images=gallery_images(product),
        variants=variant_summaries(product.avasam, markup_percent),
        specifications=build_specifications(product.avasam),
    )
