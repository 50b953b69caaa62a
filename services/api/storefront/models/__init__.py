"""SQLAlchemy ORM models.

Models represent database tables:
- seasons: Time-boxed catalogue configurations (date range + theme colours)
- products: Local product records keyed by supplier SKU
- product_seasons: Which products surface in which season
- product_shipping: Cached best shipping quote per supplier SKU
"""

from storefront.models.product import Product, generate_product_id
from storefront.models.product_shipping import ProductShipping
from storefront.models.season import Season, generate_season_id, product_seasons

__all__ = [
    "Product",
    "ProductShipping",
    "Season",
    "generate_product_id",
    "generate_season_id",
    "product_seasons",
]
