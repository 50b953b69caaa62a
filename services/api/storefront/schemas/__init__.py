"""Pydantic schemas for API request/response validation."""

from storefront.schemas.avasam import AvasamProduct, AvasamVariant
from storefront.schemas.common import ErrorDetail, ErrorResponse, error_response
from storefront.schemas.product import (
    DisplayPrice,
    ProductDetailResponse,
    ProductsResponse,
    SeasonalProduct,
    ShippingInfo,
    SpecItem,
    VariantSummary,
)
from storefront.schemas.season import CurrentSeasonResponse, SeasonOut

__all__ = [
    "AvasamProduct",
    "AvasamVariant",
    "CurrentSeasonResponse",
    "DisplayPrice",
    "ErrorDetail",
    "ErrorResponse",
    "ProductDetailResponse",
    "ProductsResponse",
    "SeasonOut",
    "SeasonalProduct",
    "ShippingInfo",
    "SpecItem",
    "VariantSummary",
    "error_response",
]
