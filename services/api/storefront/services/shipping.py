"""Shipping quote cache for supplier SKUs.

Flow (per request, for the current season's SKUs):
1. Load stored quotes from product_shipping
2. A quote is stale when missing, never synced, unparseable, or older than
   the refresh window (AVASAM_SHIPPING_REFRESH_HOURS, default 6h, min 1h)
3. Refresh stale SKUs concurrently: fetch options, keep the best one
4. Upsert one row per SKU (ON CONFLICT avasam_sku), last write wins

Failure handling:
- One SKU failing never aborts the others; it simply gets no new quote
- A SKU with no options writes nothing (an old row stays until a later success)
- Redis lock per SKU avoids duplicate supplier calls across workers; without
  Redis we refresh unlocked (redundant but harmless, the upsert is idempotent)
"""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
import logging
import math
from typing import Any, Iterable, Protocol

from redis.exceptions import RedisError
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert

from storefront.models import ProductShipping
from storefront.schemas.product import ShippingInfo
from storefront.services.shipping_options import ShippingOption
from storefront.settings import get_settings
from storefront.stores.postgres import get_session
from storefront.stores.redis import acquire_lock, release_lock, shipping_lock_key

logger = logging.getLogger("uvicorn.error")


class ShippingOptionsSource(Protocol):
    async def get_shipping_options_by_sku(self, sku: str) -> list[ShippingOption]: ...


@dataclass
class ShippingQuote:
    """In-memory copy of a product_shipping row."""

    avasam_sku: str
    product_id: str | None = None
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
    raw: dict[str, Any] | None = None
    last_synced_at: datetime | str | None = None

    @classmethod
    def from_row(cls, row: ProductShipping) -> ShippingQuote:
        return cls(
            avasam_sku=row.avasam_sku,
            product_id=row.product_id,
            service_id=row.service_id,
            service_name=row.service_name,
            warehouse_id=row.warehouse_id,
            warehouse_name=row.warehouse_name,
            shipping_cost=row.shipping_cost,
            shipping_cost_inc_vat=row.shipping_cost_inc_vat,
            currency=row.currency,
            dispatch_days=row.dispatch_days,
            delivery_min_days=row.delivery_min_days,
            delivery_max_days=row.delivery_max_days,
            raw=row.raw,
            last_synced_at=row.last_synced_at,
        )

    @classmethod
    def from_option(
        cls,
        sku: str,
        option: ShippingOption,
        *,
        product_id: str | None,
        synced_at: datetime,
    ) -> ShippingQuote:
        return cls(
            avasam_sku=sku,
            product_id=product_id,
            service_id=option.service_id,
            service_name=option.service_name,
            warehouse_id=option.warehouse_id,
            warehouse_name=option.warehouse_name,
            shipping_cost=option.shipping_cost,
            shipping_cost_inc_vat=option.shipping_cost_inc_vat,
            currency=option.currency,
            dispatch_days=option.dispatch_days,
            delivery_min_days=option.delivery_min_days,
            delivery_max_days=option.delivery_max_days,
            raw=option.raw or None,
            last_synced_at=synced_at,
        )

    def to_info(self) -> ShippingInfo:
        """Public view of the quote (no raw payload, no ids of ours)."""
        return ShippingInfo(
            service_id=self.service_id,
            service_name=self.service_name,
            warehouse_id=self.warehouse_id,
            warehouse_name=self.warehouse_name,
            shipping_cost=self.shipping_cost,
            shipping_cost_inc_vat=self.shipping_cost_inc_vat,
            currency=self.currency,
            dispatch_days=self.dispatch_days,
            delivery_min_days=self.delivery_min_days,
            delivery_max_days=self.delivery_max_days,
            last_synced_at=_parse_synced_at(self.last_synced_at),
        )


# ============================================================
# Staleness
# ============================================================


def _parse_synced_at(value: datetime | str | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_stale(
    quote: ShippingQuote | None,
    *,
    now: datetime | None = None,
    refresh_window: timedelta | None = None,
) -> bool:
    """Whether a stored quote must be refreshed before use.

    Args:
        quote: Stored quote, or None when the SKU has none.
        now: Reference time (defaults to current UTC time).
        refresh_window: Max quote age (defaults to settings).
    """
    if quote is None:
        return True

    synced_at = _parse_synced_at(quote.last_synced_at)
    if synced_at is None:
        return True

    now = now or datetime.now(timezone.utc)
    window = refresh_window if refresh_window is not None else get_settings().shipping_refresh_window
    return now - synced_at > window


# ============================================================
# Option selection
# ============================================================


def _or_inf(value: float | None) -> float:
    return value if value is not None else math.inf


def _option_sort_key(option: ShippingOption) -> tuple[float, float, float, float, float, str, str]:
    cost = option.shipping_cost_inc_vat
    if cost is None:
        cost = option.shipping_cost
    delivery = option.delivery_max_days
    if delivery is None:
        delivery = option.delivery_min_days
    return (
        _or_inf(cost),
        _or_inf(delivery),
        _or_inf(option.dispatch_days),
        # Identity tail so equal-cost/equal-speed options resolve the same way
        # whatever order the supplier lists them in.
        _or_inf(option.warehouse_id),
        _or_inf(option.service_id),
        option.warehouse_name or "",
        option.service_name or "",
    )


def select_best_option(options: Iterable[ShippingOption]) -> ShippingOption | None:
    """Pick the cheapest option, then the fastest delivery, then the soonest dispatch.

    Missing numbers sort last. Returns None for an empty list.
    """
    candidates = list(options)
    if not candidates:
        return None
    return min(candidates, key=_option_sort_key)


# ============================================================
# Storage
# ============================================================


async def load_shipping_quotes(skus: list[str]) -> dict[str, ShippingQuote]:
    """Read stored quotes for the given SKUs (keyed by SKU)."""
    if not skus:
        return {}

    async with get_session() as session:
        result = await session.execute(
            select(ProductShipping).where(ProductShipping.avasam_sku.in_(skus))
        )
        rows = result.scalars().all()

    return {row.avasam_sku: ShippingQuote.from_row(row) for row in rows if row.avasam_sku}


async def save_shipping_quotes(quotes: list[ShippingQuote]) -> None:
    """Upsert quotes keyed by avasam_sku (last write wins)."""
    if not quotes:
        return

    values = []
    for quote in quotes:
        row = asdict(quote)
        row["last_synced_at"] = _parse_synced_at(quote.last_synced_at)
        values.append(row)

    stmt = pg_insert(ProductShipping).values(values)
    update_cols = {
        name: getattr(stmt.excluded, name)
        for name in values[0]
        if name != "avasam_sku"
    }
    update_cols["updated_at"] = func.now()
    stmt = stmt.on_conflict_do_update(index_elements=["avasam_sku"], set_=update_cols)

    async with get_session() as session:
        await session.execute(stmt)

    logger.info(f"Upserted {len(quotes)} shipping quotes")


# ============================================================
# Refresh
# ============================================================


async def _try_acquire_refresh_lock(sku: str, ttl: int) -> tuple[bool, str | None]:
    """(proceed, token). proceed is False only when another worker holds the lock."""
    try:
        token = await acquire_lock(shipping_lock_key(sku), ttl=ttl)
    except (RuntimeError, RedisError, OSError):
        return True, None
    return token is not None, token


async def _release_refresh_lock(sku: str, token: str) -> None:
    try:
        if not await release_lock(shipping_lock_key(sku), token):
            logger.warning(f"Shipping lock for {sku} expired before the refresh finished")
    except (RuntimeError, RedisError, OSError) as e:
        logger.warning(f"Failed to release shipping lock for {sku}: {e}")


async def refresh_shipping_quotes(
    client: ShippingOptionsSource,
    skus: list[str],
    *,
    product_ids: dict[str, str] | None = None,
    now: datetime | None = None,
) -> dict[str, ShippingQuote]:
    """Fetch fresh quotes for the given SKUs concurrently.

    Each SKU is an independent task: failures are logged and mapped to "no
    update" instead of aborting the batch.

    Args:
        client: Source of shipping options (the Avasam client).
        skus: SKUs to refresh.
        product_ids: Optional SKU -> product id map stored alongside the quote.
        now: Sync timestamp to record (defaults to current UTC time).

    Returns:
        SKU -> new quote, only for SKUs that produced a best option.
    """
    if not skus:
        return {}

    settings = get_settings()
    synced_at = now or datetime.now(timezone.utc)
    product_ids = product_ids or {}
    sem = asyncio.Semaphore(settings.shipping_refresh_max_concurrency)

    async def _refresh_one(sku: str) -> ShippingQuote | None:
        async with sem:
            proceed, token = await _try_acquire_refresh_lock(sku, settings.shipping_refresh_lock_seconds)
            if not proceed:
                logger.info(f"Shipping refresh for {sku} already running elsewhere, skipping")
                return None
            try:
                options = await client.get_shipping_options_by_sku(sku)
                best = select_best_option(options)
                if best is None:
                    logger.info(f"No shipping options for {sku}")
                    return None
                return ShippingQuote.from_option(
                    sku,
                    best,
                    product_id=product_ids.get(sku),
                    synced_at=synced_at,
                )
            except Exception:
                logger.exception(f"Error fetching Avasam shipping for {sku}")
                return None
            finally:
                if token is not None:
                    await _release_refresh_lock(sku, token)

    results = await asyncio.gather(*(_refresh_one(sku) for sku in dict.fromkeys(skus)))
    refreshed = {quote.avasam_sku: quote for quote in results if quote is not None}
    logger.info(f"Shipping refresh: requested={len(skus)} refreshed={len(refreshed)}")
    return refreshed
