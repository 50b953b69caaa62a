"""Tests for the HTTP surface (health, seasons, products)."""

from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from storefront.main import app
from storefront.schemas import AvasamProduct, SeasonalProduct, SeasonOut
from storefront.services.catalogue import SeasonCatalogue


@pytest.fixture
async def client():
    """Create test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


def _season() -> SeasonOut:
    return SeasonOut(
        id="season-1",
        slug="winter-2026",
        name="Winter Warmers",
        start_date=datetime(2026, 11, 1, tzinfo=timezone.utc),
        end_date=datetime(2027, 2, 28, tzinfo=timezone.utc),
        is_active=True,
        primary_color="#0b3d91",
        accent_color="#f2c14e",
    )


def _catalogue() -> SeasonCatalogue:
    return SeasonCatalogue(
        season=_season(),
        products=[
            SeasonalProduct(
                id="prod-1",
                avasam_sku="X1",
                name="Wool Scarf",
                retail_price=10.0,
                currency="GBP",
                price_with_markup=14.4,
                avasam=AvasamProduct.model_validate(
                    {
                        "SKU": "X1",
                        "Title": "Wool Scarf",
                        "Price": 10,
                        "VATPercentage": 20,
                        "ProductImage": ["https://img.test/x1-a.jpg", "https://img.test/x1-b.jpg"],
                        "Variations": [
                            {"SKU": "X1-RED", "Price": 10},
                            {"SKU": "X1-BLUE", "Price": 12},
                        ],
                    }
                ),
            ),
            SeasonalProduct(id="prod-2", avasam_sku="X2", name="Mug"),
        ],
    )


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Test health endpoint returns ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.asyncio
async def test_current_season_endpoint(client: AsyncClient, monkeypatch: pytest.MonkeyPatch):
    from storefront.routes import seasons as season_routes

    async def fake_get_current_season(now=None) -> SeasonOut:
        return _season()

    monkeypatch.setattr(season_routes, "get_current_season", fake_get_current_season)

    response = await client.get("/api/seasons/current")
    assert response.status_code == 200
    season = response.json()["season"]
    assert season["slug"] == "winter-2026"
    assert season["primary_color"] == "#0b3d91"


@pytest.mark.asyncio
async def test_current_season_endpoint_without_season(client: AsyncClient, monkeypatch: pytest.MonkeyPatch):
    from storefront.routes import seasons as season_routes

    async def fake_get_current_season(now=None) -> None:
        return None

    monkeypatch.setattr(season_routes, "get_current_season", fake_get_current_season)

    response = await client.get("/api/seasons/current")
    assert response.status_code == 200
    assert response.json() == {"season": None}


@pytest.mark.asyncio
async def test_products_endpoint(client: AsyncClient, monkeypatch: pytest.MonkeyPatch):
    """Products are returned with supplier data under its own field names."""
    from storefront.routes import products as product_routes

    async def fake_get_products(**kwargs) -> SeasonCatalogue:
        return _catalogue()

    monkeypatch.setattr(product_routes, "get_products_for_current_season", fake_get_products)

    response = await client.get("/api/products")
    assert response.status_code == 200
    data = response.json()

    assert data["season"]["id"] == "season-1"
    assert [p["id"] for p in data["products"]] == ["prod-1", "prod-2"]

    first = data["products"][0]
    assert first["price_with_markup"] == 14.4
    assert first["avasam"]["SKU"] == "X1"
    assert first["avasam"]["VATPercentage"] == 20
    assert data["products"][1]["avasam"] is None
    assert data["products"][1]["price_with_markup"] is None


@pytest.mark.asyncio
async def test_products_endpoint_without_season(client: AsyncClient, monkeypatch: pytest.MonkeyPatch):
    from storefront.routes import products as product_routes

    async def fake_get_products(**kwargs) -> SeasonCatalogue:
        return SeasonCatalogue(season=None, products=[])

    monkeypatch.setattr(product_routes, "get_products_for_current_season", fake_get_products)

    response = await client.get("/api/products")
    assert response.status_code == 200
    assert response.json() == {"season": None, "products": []}


@pytest.mark.asyncio
async def test_products_endpoint_failure_is_structured_500(
    client: AsyncClient, monkeypatch: pytest.MonkeyPatch
):
    from storefront.routes import products as product_routes
    from storefront.services.avasam_client import AvasamAuthError

    async def fake_get_products(**kwargs) -> SeasonCatalogue:
        raise AvasamAuthError("credentials missing")

    monkeypatch.setattr(product_routes, "get_products_for_current_season", fake_get_products)

    response = await client.get("/api/products")
    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "PRODUCTS_UNAVAILABLE"
    assert "credentials" not in error["message"]


@pytest.mark.asyncio
async def test_product_detail_endpoint(client: AsyncClient, monkeypatch: pytest.MonkeyPatch):
    from storefront.routes import products as product_routes

    async def fake_get_products(**kwargs) -> SeasonCatalogue:
        return _catalogue()

    monkeypatch.setattr(product_routes, "get_products_for_current_season", fake_get_products)

    response = await client.get("/api/products/prod-1")
    assert response.status_code == 200
    data = response.json()

    assert data["product"]["id"] == "prod-1"
    assert data["season"]["slug"] == "winter-2026"
    assert data["images"] == ["https://img.test/x1-a.jpg", "https://img.test/x1-b.jpg"]
    assert [(v["sku"], v["label"]) for v in data["variants"]] == [("X1-BLUE", "X1-BLUE"), ("X1-RED", "X1-RED")]
    assert data["display_price"]["kind"] == "range"
    assert data["specifications"][0] == {"label": "Product Code", "value": "X1"}


@pytest.mark.asyncio
async def test_product_detail_not_found(client: AsyncClient, monkeypatch: pytest.MonkeyPatch):
    from storefront.routes import products as product_routes

    async def fake_get_products(**kwargs) -> SeasonCatalogue:
        return _catalogue()

    monkeypatch.setattr(product_routes, "get_products_for_current_season", fake_get_products)

    response = await client.get("/api/products/missing")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "PRODUCT_NOT_FOUND"
    assert response.json()["error"]["detail"] == {"product_id": "missing"}


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client: AsyncClient):
    response = await client.get("/api/nope")
    assert response.status_code == 404
    assert response.json() == {"error": {"code": "NOT_FOUND", "message": "Not Found", "detail": None}}
