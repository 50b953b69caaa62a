"""Schemas for Avasam supplier payloads.

Field names follow the supplier's PascalCase keys (as aliases) so products can
be echoed back to clients unchanged. Unknown keys are kept (extra="allow").

Numeric fields only accept real, finite JSON numbers: a price sent as a string
or overflowing to infinity is treated as missing, the same way the pricing
rules treat an absent price.
"""

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _number_or_none(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


class AvasamVariant(BaseModel):
    """SKU-level sub-item of a supplier product (colour, style, ...)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    sku: str | None = Field(default=None, alias="SKU")
    price: float | None = Field(default=None, alias="Price")
    main_image: str | None = Field(default=None, alias="MainImage")
    images: list[str] = Field(default_factory=list, alias="Images")
    attributes: dict[str, Any] = Field(default_factory=dict, alias="Attributes")
    is_selected: bool | None = Field(default=None, alias="IsSelected")

    @field_validator("price", mode="before")
    @classmethod
    def _numeric_price(cls, v: Any) -> float | None:
        return _number_or_none(v)

    @field_validator("images", mode="before")
    @classmethod
    def _image_list(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [str(x) for x in v if isinstance(x, str) and x]

    @field_validator("attributes", mode="before")
    @classmethod
    def _attribute_map(cls, v: Any) -> dict[str, Any]:
        return v if isinstance(v, dict) else {}


class AvasamProduct(BaseModel):
    """Product as returned by Products/GetSellerProductList."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    sku: str = Field(alias="SKU")
    title: str | None = Field(default=None, alias="Title")
    description: str | None = Field(default=None, alias="Description")
    multi_description: dict[str, Any] | None = Field(default=None, alias="MultiDescription")
    category: str | None = Field(default=None, alias="Category")

    # Pricing
    price: float | None = Field(default=None, alias="Price")
    price_inc_vat: float | None = Field(default=None, alias="PriceIncVat")
    vat_percentage: float | None = Field(default=None, alias="VATPercentage")
    vat: float | None = Field(default=None, alias="Vat")
    retail_price: float | None = Field(default=None, alias="RetailPrice")

    # Media
    image: str | None = Field(default=None, alias="Image")
    product_image: list[str] = Field(default_factory=list, alias="ProductImage")

    # Physical dimensions (kg / cm)
    product_weight: float | None = Field(default=None, alias="ProductWeight")
    product_width: float | None = Field(default=None, alias="ProductWidth")
    product_depth: float | None = Field(default=None, alias="ProductDepth")
    product_height: float | None = Field(default=None, alias="ProductHeight")

    extended_properties: list[dict[str, Any]] = Field(default_factory=list, alias="ExtendedProperties")
    variations: list[AvasamVariant] = Field(default_factory=list, alias="Variations")

    @field_validator(
        "price",
        "price_inc_vat",
        "vat_percentage",
        "vat",
        "retail_price",
        "product_weight",
        "product_width",
        "product_depth",
        "product_height",
        mode="before",
    )
    @classmethod
    def _numeric(cls, v: Any) -> float | None:
        return _number_or_none(v)

    @field_validator("product_image", mode="before")
    @classmethod
    def _image_list(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [str(x) for x in v if isinstance(x, str) and x]

    @field_validator("extended_properties", mode="before")
    @classmethod
    def _property_list(cls, v: Any) -> list[dict[str, Any]]:
        if not isinstance(v, list):
            return []
        return [p for p in v if isinstance(p, dict)]

    @field_validator("variations", mode="before")
    @classmethod
    def _variant_list(cls, v: Any) -> list[Any]:
        if not isinstance(v, list):
            return []
        return [x for x in v if isinstance(x, dict)]

    @property
    def effective_vat_percentage(self) -> float | None:
        """Explicit VATPercentage first, then the generic Vat field."""
        if self.vat_percentage is not None:
            return self.vat_percentage
        return self.vat
