#!/usr/bin/env python3
"""Shipping quote refresh job for cron.

Schedule:
- Run every few hours (at most once per AVASAM_SHIPPING_REFRESH_HOURS is enough).

Behavior:
- Resolve the current season and its linked products
- Refresh stale shipping quotes (all of them with --force) from Avasam
- Upsert the best option per SKU into product_shipping

Requests keep working without this job (stale quotes are refreshed inline);
running it just moves the supplier calls off the request path.

Run (local / cron):
  cd services/api
  python -m scripts.refresh_shipping [--force]
"""

import argparse
import asyncio
import os
import sys

# Ensure imports work when executed as a script/module
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from storefront.services.avasam_client import close_avasam_client, get_avasam_client  # noqa: E402
from storefront.services.catalogue import load_season_products  # noqa: E402
from storefront.services.seasons import get_current_season  # noqa: E402
from storefront.services.shipping import (  # noqa: E402
    is_stale,
    load_shipping_quotes,
    refresh_shipping_quotes,
    save_shipping_quotes,
)
from storefront.stores.postgres import close_db, init_db, ping_db  # noqa: E402
from storefront.stores.redis import close_redis, init_redis  # noqa: E402


async def main(force: bool = False) -> None:
    # Initialize shared connections (same as API lifespan, but for a one-off cron run)
    await init_db()
    await ping_db()
    try:
        await init_redis()
    except Exception as e:
        # Without Redis the refresh runs unlocked (may overlap with API workers).
        print({"warning": f"Redis unavailable: {e}"})

    try:
        season = await get_current_season()
        if season is None:
            print({"ok": True, "season": None, "skus": 0, "refreshed": 0})
            return

        records = await load_season_products(season.id)
        product_ids: dict[str, str] = {}
        for record in records:
            if record.avasam_sku:
                product_ids.setdefault(record.avasam_sku, record.id)
        skus = list(product_ids)

        quotes = await load_shipping_quotes(skus)
        targets = skus if force else [sku for sku in skus if is_stale(quotes.get(sku))]

        refreshed = await refresh_shipping_quotes(get_avasam_client(), targets, product_ids=product_ids)
        await save_shipping_quotes(list(refreshed.values()))

        print(
            {
                "ok": True,
                "season": season.slug,
                "force": force,
                "skus": len(skus),
                "stale": len(targets),
                "refreshed": len(refreshed),
                "missing": sorted(set(targets) - set(refreshed)),
            }
        )
    finally:
        await close_avasam_client()
        await close_redis()
        await close_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Refresh cached Avasam shipping quotes")
    parser.add_argument("--force", action="store_true", help="refresh every SKU, not only stale ones")
    args = parser.parse_args()
    asyncio.run(main(force=args.force))
