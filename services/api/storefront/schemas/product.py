"""Schemas for the product endpoints (/api/products)."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

from storefront.schemas.avasam import AvasamProduct
from storefront.schemas.season import SeasonOut


class ShippingInfo(BaseModel):
    """Cached shipping quote attached to a product."""

    model_config = ConfigDict(from_attributes=True)

    service_id: int | None = None
    service_name: str | None = None
    warehouse_id: int | None = None
    warehouse_name: str | None = None
    shipping_cost: float | None = None
    shipping_cost_inc_vat: float | None = None
    currency: str | None = None
    dispatch_days: int | None = None
    delivery_min_days: int | None = None
    delivery_max_days: int | None = None
    last_synced_at: datetime | None = None


class SeasonalProduct(BaseModel):
    """Local product merged with live supplier data and its shipping quote."""

    id: str
    avasam_sku: str
    name: str
    description: str | None = None
    image_url: str | None = None
    retail_price: float | None = None
    currency: str | None = None
    price_with_markup: float | None = None
    avasam: AvasamProduct | None = None
    shipping: ShippingInfo | None = None


class ProductsResponse(BaseModel):
    """Response payload for GET /api/products."""

    season: SeasonOut | None = None
    products: list[SeasonalProduct]


class DisplayPrice(BaseModel):
    """Price shown on a product page: one value or a min-max range over variants."""

    kind: Literal["single", "range"]
    value: float | None = None
    min: float | None = None
    max: float | None = None


class VariantSummary(BaseModel):
    """A supplier variant with its sell price and selector label."""

    sku: str | None = None
    price_with_markup: float | None = None
    image: str | None = None
    label: str = "Variant"
    secondary_label: str | None = None
    colour_code: str | None = None
    style_number: int | None = None
    sort_key: str = ""


class SpecItem(BaseModel):
    """One row of the specification table."""

    label: str
    value: str


class ProductDetailResponse(BaseModel):
    """Response payload for GET /api/products/{product_id}."""

    season: SeasonOut | None = None
    product: SeasonalProduct
    display_price: DisplayPrice | None = None
    primary_image: str | None = None
    images: list[str]
    variants: list[VariantSummary]
    specifications: list[SpecItem]
