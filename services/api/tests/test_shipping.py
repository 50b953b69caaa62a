from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from itertools import permutations

import pytest
from sqlalchemy.dialects import postgresql

from storefront.models import ProductShipping
from storefront.services import shipping
from storefront.services.shipping import (
    ShippingQuote,
    is_stale,
    load_shipping_quotes,
    refresh_shipping_quotes,
    save_shipping_quotes,
    select_best_option,
)
from storefront.services.shipping_options import ShippingOption

NOW = datetime(2026, 12, 1, 12, 0, tzinfo=timezone.utc)
WINDOW = timedelta(hours=6)


def test_missing_quote_is_stale():
    assert is_stale(None, now=NOW, refresh_window=WINDOW)


def test_quote_without_sync_timestamp_is_stale():
    assert is_stale(ShippingQuote(avasam_sku="X1"), now=NOW, refresh_window=WINDOW)


def test_quote_with_unparseable_timestamp_is_stale():
    quote = ShippingQuote(avasam_sku="X1", last_synced_at="yesterday-ish")
    assert is_stale(quote, now=NOW, refresh_window=WINDOW)


def test_recent_quote_is_fresh():
    quote = ShippingQuote(avasam_sku="X1", last_synced_at=NOW - timedelta(minutes=1))
    assert not is_stale(quote, now=NOW, refresh_window=WINDOW)


def test_old_quote_is_stale():
    quote = ShippingQuote(avasam_sku="X1", last_synced_at=NOW - timedelta(hours=6, minutes=1))
    assert is_stale(quote, now=NOW, refresh_window=WINDOW)


def test_iso_string_timestamps_are_parsed():
    fresh = ShippingQuote(avasam_sku="X1", last_synced_at="2026-12-01T11:00:00Z")
    naive = ShippingQuote(avasam_sku="X1", last_synced_at="2026-12-01T02:00:00")
    assert not is_stale(fresh, now=NOW, refresh_window=WINDOW)
    assert is_stale(naive, now=NOW, refresh_window=WINDOW)


def test_select_best_option_empty():
    assert select_best_option([]) is None


def test_select_best_option_prefers_vat_inclusive_cost():
    cheap_net = ShippingOption(service_name="net", shipping_cost=3.0, shipping_cost_inc_vat=6.0)
    cheap_gross = ShippingOption(service_name="gross", shipping_cost=5.0, shipping_cost_inc_vat=5.5)
    assert select_best_option([cheap_net, cheap_gross]) is cheap_gross


def test_select_best_option_missing_cost_sorts_last():
    unpriced = ShippingOption(service_name="unpriced", delivery_max_days=1)
    priced = ShippingOption(service_name="priced", shipping_cost=20.0, delivery_max_days=10)
    assert select_best_option([unpriced, priced]) is priced


def test_select_best_option_tie_breaks_on_delivery_then_dispatch():
    slow = ShippingOption(service_name="slow", shipping_cost=4.0, delivery_max_days=5)
    fast = ShippingOption(service_name="fast", shipping_cost=4.0, delivery_min_days=2)
    fast_dispatch = ShippingOption(
        service_name="fast-dispatch", shipping_cost=4.0, delivery_max_days=2, dispatch_days=0
    )
    assert select_best_option([slow, fast]) is fast
    assert select_best_option([slow, fast, fast_dispatch]) is fast_dispatch


def test_select_best_option_ignores_input_order():
    options = [
        ShippingOption(warehouse_id=1, service_id=10, shipping_cost=4.0, delivery_max_days=3),
        ShippingOption(warehouse_id=2, service_id=11, shipping_cost=4.0, delivery_max_days=3),
        ShippingOption(warehouse_id=1, service_id=12, shipping_cost_inc_vat=4.0),
        ShippingOption(warehouse_id=3, service_id=13),
    ]
    winners = {id(select_best_option(list(p))) for p in permutations(options)}
    assert winners == {id(options[0])}


class FakeShippingClient:
    def __init__(self, options_by_sku: dict[str, list[ShippingOption]], failing: set[str] = frozenset()):
        self.options_by_sku = options_by_sku
        self.failing = failing
        self.calls: list[str] = []

    async def get_shipping_options_by_sku(self, sku: str) -> list[ShippingOption]:
        self.calls.append(sku)
        if sku in self.failing:
            raise ValueError(f"boom for {sku}")
        return self.options_by_sku.get(sku, [])


@pytest.mark.asyncio
async def test_refresh_keeps_going_when_one_sku_fails():
    client = FakeShippingClient(
        {
            "A": [
                ShippingOption(service_name="Courier", shipping_cost_inc_vat=7.0),
                ShippingOption(service_name="Post", shipping_cost_inc_vat=3.5, currency="GBP"),
            ],
            "C": [ShippingOption(service_name="Pallet", shipping_cost=40.0)],
        },
        failing={"B"},
    )

    refreshed = await refresh_shipping_quotes(
        client, ["A", "B", "C", "D"], product_ids={"A": "prod-a"}, now=NOW
    )

    assert sorted(client.calls) == ["A", "B", "C", "D"]
    assert set(refreshed) == {"A", "C"}

    quote = refreshed["A"]
    assert quote.service_name == "Post"
    assert quote.shipping_cost_inc_vat == 3.5
    assert quote.currency == "GBP"
    assert quote.product_id == "prod-a"
    assert quote.last_synced_at == NOW
    assert refreshed["C"].product_id is None


@pytest.mark.asyncio
async def test_refresh_with_no_skus_does_nothing():
    client = FakeShippingClient({})
    assert await refresh_shipping_quotes(client, []) == {}
    assert client.calls == []


def test_quote_to_info_hides_raw_payload():
    quote = ShippingQuote.from_option(
        "X1",
        ShippingOption(service_id=7, service_name="Post", shipping_cost=3.0, raw={"Id": 7}),
        product_id="prod-1",
        synced_at=NOW,
    )
    info = quote.to_info()
    assert info.service_id == 7
    assert info.last_synced_at == NOW
    assert "raw" not in info.model_dump()
    assert quote.raw == {"Id": 7}


@pytest.mark.asyncio
async def test_refresh_skips_skus_locked_by_another_worker(monkeypatch: pytest.MonkeyPatch):
    from storefront.services import shipping

    released: list[tuple[str, str]] = []

    async def fake_acquire_lock(key: str, ttl: int) -> str | None:
        return None if key == "shipping:BUSY" else f"token-{key}"

    async def fake_release_lock(key: str, token: str) -> bool:
        released.append((key, token))
        return True

    monkeypatch.setattr(shipping, "acquire_lock", fake_acquire_lock)
    monkeypatch.setattr(shipping, "release_lock", fake_release_lock)

    client = FakeShippingClient(
        {
            "BUSY": [ShippingOption(service_name="Post", shipping_cost=3.0)],
            "FREE": [ShippingOption(service_name="Post", shipping_cost=3.0)],
        }
    )

    refreshed = await refresh_shipping_quotes(client, ["BUSY", "FREE"], now=NOW)

    assert client.calls == ["FREE"]
    assert set(refreshed) == {"FREE"}
    assert released == [("shipping:FREE", "token-shipping:FREE")]


@pytest.mark.asyncio
async def test_lock_is_released_when_fetch_fails(monkeypatch: pytest.MonkeyPatch):
    from storefront.services import shipping

    released: list[str] = []

    async def fake_acquire_lock(key: str, ttl: int) -> str | None:
        return "token"

    async def fake_release_lock(key: str, token: str) -> bool:
        released.append(key)
        return False

    monkeypatch.setattr(shipping, "acquire_lock", fake_acquire_lock)
    monkeypatch.setattr(shipping, "release_lock", fake_release_lock)

    client = FakeShippingClient({}, failing={"X1"})

    assert await refresh_shipping_quotes(client, ["X1"], now=NOW) == {}
    assert released == ["shipping:X1"]


class FakeResult:
    def __init__(self, rows):
        self._rows = rows

    def scalars(self):
        return self

    def all(self):
        return list(self._rows)


class FakeSession:
    def __init__(self, rows=()):
        self.rows = list(rows)
        self.statements = []

    async def execute(self, stmt):
        self.statements.append(stmt)
        return FakeResult(self.rows)


def _use_session(monkeypatch: pytest.MonkeyPatch, rows=()) -> FakeSession:
    session = FakeSession(rows)

    @asynccontextmanager
    async def fake_get_session():
        yield session

    monkeypatch.setattr(shipping, "get_session", fake_get_session)
    return session


@pytest.mark.asyncio
async def test_load_shipping_quotes_keys_rows_by_sku(monkeypatch: pytest.MonkeyPatch):
    row = ProductShipping(
        avasam_sku="X1",
        product_id="p1",
        service_name="Courier",
        shipping_cost=4.5,
        currency="GBP",
        delivery_max_days=3,
        raw={"ServiceName": "Courier"},
        last_synced_at=NOW,
    )
    session = _use_session(monkeypatch, [row])

    quotes = await load_shipping_quotes(["X1", "X2"])

    assert list(quotes) == ["X1"]
    assert quotes["X1"].service_name == "Courier"
    assert quotes["X1"].product_id == "p1"
    assert quotes["X1"].raw == {"ServiceName": "Courier"}
    assert not is_stale(quotes["X1"], now=NOW, refresh_window=WINDOW)
    sql = str(session.statements[0].compile(dialect=postgresql.dialect()))
    assert "product_shipping.avasam_sku IN" in sql


@pytest.mark.asyncio
async def test_load_and_save_skip_the_store_for_empty_input(monkeypatch: pytest.MonkeyPatch):
    session = _use_session(monkeypatch)

    assert await load_shipping_quotes([]) == {}
    await save_shipping_quotes([])

    assert session.statements == []


@pytest.mark.asyncio
async def test_save_shipping_quotes_upserts_on_sku(monkeypatch: pytest.MonkeyPatch):
    session = _use_session(monkeypatch)
    quotes = [
        ShippingQuote(avasam_sku="X1", product_id="p1", service_name="Courier", last_synced_at=NOW),
        ShippingQuote(avasam_sku="X2", service_name="Post", last_synced_at="2026-12-01T10:00:00Z"),
    ]

    await save_shipping_quotes(quotes)

    [stmt] = session.statements
    compiled = stmt.compile(dialect=postgresql.dialect())
    sql = str(compiled)
    assert "INSERT INTO product_shipping" in sql
    assert "ON CONFLICT (avasam_sku) DO UPDATE SET" in sql
    updated = sql.split("DO UPDATE SET", 1)[1]
    for column in (
        "product_id",
        "service_id",
        "service_name",
        "warehouse_id",
        "warehouse_name",
        "shipping_cost",
        "shipping_cost_inc_vat",
        "currency",
        "dispatch_days",
        "delivery_min_days",
        "delivery_max_days",
        "raw",
        "last_synced_at",
    ):
        assert f"{column} = excluded.{column}" in updated
    assert "updated_at = now()" in updated
    assert "avasam_sku = " not in updated

    # String timestamps are stored as aware datetimes.
    synced = [v for k, v in compiled.params.items() if k.startswith("last_synced_at")]
    assert datetime(2026, 12, 1, 10, 0, tzinfo=timezone.utc) in synced


def test_missing_raw_payload_is_stored_as_sql_null():
    raw_type = ProductShipping.__table__.c.raw.type
    assert raw_type.none_as_null is True
    assert ShippingQuote.from_option("X1", ShippingOption(), product_id=None, synced_at=NOW).raw is None
