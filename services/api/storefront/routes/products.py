"""Product endpoints.

GET /api/products              - Enriched products for the current season
GET /api/products/{product_id} - One product with page-level derivations

Routers are thin: call services for business logic.
"""

import logging

from fastapi import APIRouter

from storefront.schemas import ErrorResponse, ProductDetailResponse, ProductsResponse, error_response
from storefront.services.catalogue import find_product, get_products_for_current_season
from storefront.services.product_details import build_product_detail
from storefront.settings import get_settings

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


@router.get(
    "",
    response_model=ProductsResponse,
    responses={500: {"model": ErrorResponse}},
)
async def list_products():
    """Get the current season and its enriched products."""
    try:
        catalogue = await get_products_for_current_season()
    except Exception:
        logger.exception("Error in /api/products")
        return error_response(500, "PRODUCTS_UNAVAILABLE", "Failed to load products")

    return ProductsResponse(season=catalogue.season, products=catalogue.products)


@router.get(
    "/{product_id}",
    response_model=ProductDetailResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def get_product(product_id: str):
    """Get one product of the current season by id."""
    try:
        catalogue = await get_products_for_current_season()
    except Exception:
        logger.exception(f"Error in /api/products/{product_id}")
        return error_response(500, "PRODUCTS_UNAVAILABLE", "Failed to load products")

    product = find_product(catalogue.products, product_id)
    if product is None:
        return error_response(
            404,
            "PRODUCT_NOT_FOUND",
            "Product is not in the current season",
            detail={"product_id": product_id},
        )

    return build_product_detail(
        catalogue.season,
        product,
        markup_percent=get_settings().price_markup_percent,
    )
