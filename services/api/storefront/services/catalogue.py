"""Seasonal catalogue: local products enriched with live supplier data.

Flow for GET /api/products:
1. Resolve the current season (none -> empty catalogue, not an error)
2. Load the products linked to it
3. Load cached shipping quotes for their SKUs, refresh the stale ones
4. Fetch live Avasam data for all SKUs in one call
5. Merge per product and compute price_with_markup

Degradation:
- Product/shipping store failures -> fewer fields, never a failed page
- Supplier failures -> products without `avasam` data (retail_price fallback)
- Missing supplier credentials -> AvasamAuthError propagates (config error)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from storefront.models import Product, product_seasons
from storefront.schemas.avasam import AvasamProduct
from storefront.schemas.product import SeasonalProduct
from storefront.schemas.season import SeasonOut
from storefront.services.avasam_client import AvasamClient, get_avasam_client
from storefront.services.pricing import compute_price_with_markup
from storefront.services.seasons import get_current_season
from storefront.services.shipping import (
    ShippingQuote,
    is_stale,
    load_shipping_quotes,
    refresh_shipping_quotes,
    save_shipping_quotes,
)
from storefront.settings import get_settings
from storefront.stores.postgres import get_session

logger = logging.getLogger("uvicorn.error")

STORE_ERRORS = (SQLAlchemyError, RuntimeError, OSError)


@dataclass(frozen=True)
class ProductRecord:
    """Local product fields the catalogue needs."""

    id: str
    avasam_sku: str
    name: str
    description: str | None = None
    image_url: str | None = None
    retail_price: float | None = None
    currency: str | None = None


@dataclass
class SeasonCatalogue:
    season: SeasonOut | None
    products: list[SeasonalProduct]


async def load_season_products(season_id: str) -> list[ProductRecord]:
    """Products linked to a season, in link order."""
    async with get_session() as session:
        result = await session.execute(
            select(Product)
            .join(product_seasons, product_seasons.c.product_id == Product.id)
            .where(product_seasons.c.season_id == season_id)
            .order_by(product_seasons.c.created_at, Product.id)
        )
        rows = result.scalars().all()

    return [
        ProductRecord(
            id=row.id,
            avasam_sku=row.avasam_sku,
            name=row.name,
            description=row.description,
            image_url=row.image_url,
            retail_price=row.retail_price,
            currency=row.currency,
        )
        for row in rows
    ]


def build_seasonal_product(
    record: ProductRecord,
    supplier: AvasamProduct | None,
    quote: ShippingQuote | None,
    markup_percent: float,
) -> SeasonalProduct:
    """Merge one local product with its supplier data and shipping quote."""
    return SeasonalProduct(
        id=record.id,
        avasam_sku=record.avasam_sku,
        name=record.name,
        description=record.description,
        image_url=record.image_url,
        retail_price=record.retail_price,
        currency=record.currency,
        price_with_markup=compute_price_with_markup(supplier, record.retail_price, markup_percent),
        avasam=supplier,
        shipping=quote.to_info() if quote is not None else None,
    )


async def _load_quotes(skus: list[str]) -> dict[str, ShippingQuote]:
    try:
        return await load_shipping_quotes(skus)
    except STORE_ERRORS as e:
        logger.error(f"Error fetching shipping for season products: {e}")
        return {}


async def _store_quotes(quotes: list[ShippingQuote]) -> None:
    try:
        await save_shipping_quotes(quotes)
    except STORE_ERRORS as e:
        logger.error(f"Error upserting product shipping: {e}")


async def get_products_for_current_season(
    *,
    client: AvasamClient | None = None,
    now: datetime | None = None,
    markup_percent: float | None = None,
) -> SeasonCatalogue:
    """Build the enriched product list for the current season.

    Args:
        client: Avasam client (defaults to the process singleton).
        now: Reference time for season and staleness checks.
        markup_percent: Overrides PRICE_MARKUP_PERCENT.

    Returns:
        SeasonCatalogue; season None with no products when no season is active.

    Raises:
        AvasamAuthError: Supplier credentials are missing or rejected.
    """
    settings = get_settings()
    markup = settings.price_markup_percent if markup_percent is None else markup_percent

    season = await get_current_season(now=now)
    if season is None:
        return SeasonCatalogue(season=None, products=[])

    try:
        records = await load_season_products(season.id)
    except STORE_ERRORS as e:
        logger.error(f"Error fetching products for season {season.slug}: {e}")
        return SeasonCatalogue(season=season, products=[])

    if not records:
        return SeasonCatalogue(season=season, products=[])

    client = client or get_avasam_client()

    skus = list(dict.fromkeys(r.avasam_sku for r in records if r.avasam_sku))
    product_ids: dict[str, str] = {}
    for record in records:
        if record.avasam_sku:
            product_ids.setdefault(record.avasam_sku, record.id)

    # Shipping: cached quotes, refreshed when stale
    quotes = await _load_quotes(skus)
    stale = [
        sku
        for sku in skus
        if is_stale(quotes.get(sku), now=now, refresh_window=settings.shipping_refresh_window)
    ]
    if stale:
        logger.info(f"Refreshing shipping for {len(stale)}/{len(skus)} SKUs in {season.slug}")
        refreshed = await refresh_shipping_quotes(client, stale, product_ids=product_ids, now=now)
        if refreshed:
            await _store_quotes(list(refreshed.values()))
            # Fresh quotes are served even if persisting them failed.
            quotes.update(refreshed)

    # Live supplier data
    supplier_products = await client.list_products_by_skus(skus)
    supplier_by_sku = {p.sku: p for p in supplier_products}

    products = [
        build_seasonal_product(
            record,
            supplier_by_sku.get(record.avasam_sku),
            quotes.get(record.avasam_sku),
            markup,
        )
        for record in records
    ]
    return SeasonCatalogue(season=season, products=products)


def find_product(products: list[SeasonalProduct], product_id: str) -> SeasonalProduct | None:
    """Look up a product of the enriched list by its public id."""
    return next((p for p in products if p.id == product_id), None)
