"""Avasam client for the supplier's product catalogue and warehouse data.

Endpoints used:
- {auth_url}/request-token: consumer key/secret -> access_token (+ expires_at)
- {base_url}/Products/GetSellerProductList: paged inventory (no SKU filter server-side)
- {base_url}/Products/GetProductWarehouseDetail: warehouses/shipping services for one SKU

Failure policy:
- Missing credentials or a rejected token exchange raise AvasamAuthError.
- Anything else that goes wrong upstream (non-2xx, timeouts, junk bodies) is
  logged and returned as "no data" so one bad supplier call cannot break a page.
- Timeouts, connection errors, 429 and 5xx are retried a bounded number of times.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import time
from typing import Any, Callable, Iterable

import httpx
from pydantic import ValidationError

from storefront.schemas.avasam import AvasamProduct
from storefront.services.shipping_options import ShippingOption, normalize_shipping_options
from storefront.settings import get_settings

logger = logging.getLogger("uvicorn.error")

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class AvasamError(RuntimeError):
    pass


class AvasamAuthError(AvasamError):
    """Credentials missing or rejected by the supplier."""


class AvasamUnavailableError(AvasamError):
    """Supplier could not be reached (transport failure or persistent 5xx)."""


@dataclass(frozen=True)
class CachedToken:
    token: str
    expires_at: float  # unix seconds


class TokenCache:
    """Holds the supplier auth token for the lifetime of the process.

    Created lazily with the client and never torn down. The API runs on a single
    asyncio event loop, so the only coordination needed is an asyncio.Lock that
    stops concurrent requests from all exchanging credentials at once.
    """

    SAFETY_MARGIN_SECONDS = 30.0

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._token: CachedToken | None = None
        self.lock = asyncio.Lock()

    def get(self) -> str | None:
        """Return the cached token while it has more than the safety margin left."""
        if self._token is None:
            return None
        if self._token.expires_at > self._clock() + self.SAFETY_MARGIN_SECONDS:
            return self._token.token
        return None

    def store(self, token: str, expires_at: float) -> None:
        self._token = CachedToken(token=token, expires_at=expires_at)

    def clear(self) -> None:
        self._token = None

    def now(self) -> float:
        return self._clock()


def parse_token_expiry(data: dict[str, Any], now: float, default_ttl: float) -> float:
    """Work out when a freshly issued token expires (unix seconds).

    Accepts an ISO-8601 `expires_at`, a unix timestamp (seconds or ms) in
    `expires_at`, or a relative `expires_in` in seconds. Falls back to
    now + default_ttl when none of these parse.
    """
    expires_at = data.get("expires_at")
    if isinstance(expires_at, str) and expires_at.strip():
        try:
            parsed = datetime.fromisoformat(expires_at.strip().replace("Z", "+00:00"))
        except ValueError:
            parsed = None
        if parsed is not None:
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.timestamp()
    elif isinstance(expires_at, (int, float)) and not isinstance(expires_at, bool) and expires_at > 0:
        # Millisecond timestamps are 13 digits.
        return float(expires_at) / 1000.0 if expires_at > 1e12 else float(expires_at)

    expires_in = data.get("expires_in")
    if isinstance(expires_in, (int, float)) and not isinstance(expires_in, bool) and expires_in > 0:
        return now + float(expires_in)

    return now + default_ttl


class AvasamClient:
    """Client for the Avasam seller API."""

    DEFAULT_TOKEN_TTL_SECONDS = 300  # 5 minutes when the supplier omits expiry

    def __init__(
        self,
        *,
        base_url: str | None = None,
        auth_url: str | None = None,
        consumer_key: str | None = None,
        consumer_secret: str | None = None,
        api_token: str | None = None,
        page_size: int | None = None,
        timeout: float | None = None,
        retries: int | None = None,
        retry_backoff: float | None = None,
        token_cache: TokenCache | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize client; unset arguments come from settings."""
        settings = get_settings()
        self.base_url = (base_url if base_url is not None else settings.avasam_api_base_url).rstrip("/")
        self.auth_url = (auth_url if auth_url is not None else settings.avasam_api_auth_url).rstrip("/")
        self.consumer_key = consumer_key if consumer_key is not None else settings.avasam_consumer_key
        self.consumer_secret = (
            consumer_secret if consumer_secret is not None else settings.avasam_consumer_secret
        )
        self.api_token = api_token if api_token is not None else settings.avasam_api_token
        self.page_size = page_size if page_size is not None else settings.avasam_product_page_size
        self.timeout = timeout if timeout is not None else settings.avasam_timeout_seconds
        self.retries = retries if retries is not None else settings.avasam_http_retries
        self.retry_backoff = (
            retry_backoff if retry_backoff is not None else settings.avasam_retry_backoff_seconds
        )
        self.token_cache = token_cache or TokenCache()
        self._http_client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    # ============================================================
    # Auth
    # ============================================================

    async def authenticate(self) -> str:
        """Return a usable auth key, exchanging credentials when needed.

        Raises:
            AvasamAuthError: Credentials are missing or the exchange was rejected.
            AvasamUnavailableError: The auth endpoint could not be reached.
        """
        if self.api_token:
            return self.api_token

        cached = self.token_cache.get()
        if cached:
            return cached

        async with self.token_cache.lock:
            # Another request may have refreshed while we waited.
            cached = self.token_cache.get()
            if cached:
                return cached
            return await self._request_token()

    async def _request_token(self) -> str:
        if not self.consumer_key or not self.consumer_secret:
            raise AvasamAuthError(
                "Avasam consumer credentials are not set. "
                "AVASAM_API_CONSUMER_KEY and AVASAM_API_CONSUMER_SECRET are required "
                "(or AVASAM_API_TOKEN)."
            )

        logger.info("Requesting Avasam auth token")
        response = await self._post(
            f"{self.auth_url}/request-token",
            {"consumer_key": self.consumer_key, "secret_key": self.consumer_secret},
        )

        if response.status_code >= 500:
            raise AvasamUnavailableError(f"Avasam auth endpoint returned {response.status_code}")
        if not response.is_success:
            logger.error(f"Avasam auth rejected: {response.status_code} - {response.text[:200]}")
            raise AvasamAuthError(f"Failed to authenticate with Avasam: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise AvasamAuthError("Avasam request-token response was not JSON") from e

        token = data.get("access_token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token:
            raise AvasamAuthError(
                "Avasam request-token response did not contain access_token. "
                "Please verify credentials."
            )

        now = self.token_cache.now()
        expires_at = parse_token_expiry(data, now=now, default_ttl=self.DEFAULT_TOKEN_TTL_SECONDS)
        self.token_cache.store(token, expires_at)
        logger.info(f"Avasam token cached for {int(expires_at - now)}s")
        return token

    # ============================================================
    # HTTP helper
    # ============================================================

    async def _post(self, url: str, body: dict[str, Any]) -> httpx.Response:
        """POST with bounded retries on transient failures.

        Returns the last response (which may still be a 429/5xx once retries run out).

        Raises:
            AvasamUnavailableError: Every attempt failed at the transport level.
        """
        client = await self._get_client()
        attempts = self.retries + 1

        for attempt in range(1, attempts + 1):
            try:
                response = await client.post(url, json=body)
            except httpx.TransportError as e:
                logger.warning(
                    f"Avasam request failed: {type(e).__name__} attempt={attempt}/{attempts} url={url}"
                )
                if attempt < attempts:
                    await asyncio.sleep(self.retry_backoff * attempt)
                    continue
                raise AvasamUnavailableError(f"Avasam unreachable: {type(e).__name__}") from e

            if response.status_code in RETRYABLE_STATUS_CODES and attempt < attempts:
                logger.warning(
                    f"Avasam HTTP {response.status_code} attempt={attempt}/{attempts} url={url}, retrying"
                )
                await asyncio.sleep(self.retry_backoff * attempt)
                continue
            return response

        raise AvasamUnavailableError("Avasam request retries exhausted")  # pragma: no cover

    # ============================================================
    # Catalogue
    # ============================================================

    async def list_products_by_skus(self, skus: Iterable[str]) -> list[AvasamProduct]:
        """Fetch live supplier data for the given SKUs.

        The supplier cannot filter by SKU, so we read one page big enough for the
        request and keep only the SKUs asked for (intersection, request order
        irrelevant).

        Args:
            skus: Supplier SKUs.

        Returns:
            Matching products; [] on empty input or any upstream failure.

        Raises:
            AvasamAuthError: Credentials are missing or rejected.
        """
        wanted = [s for s in dict.fromkeys(skus) if s]
        if not wanted:
            return []

        try:
            auth_key = await self.authenticate()
            response = await self._post(
                f"{self.base_url}/Products/GetSellerProductList",
                {"Authkey": auth_key, "Page": 0, "Limit": max(self.page_size, len(wanted))},
            )
        except AvasamUnavailableError as e:
            logger.error(f"Avasam product list unavailable: {e}")
            return []

        if not response.is_success:
            logger.error(f"Avasam product list error: {response.status_code} - {response.text[:200]}")
            return []

        try:
            data = response.json()
        except ValueError:
            logger.warning("Avasam product list response was not JSON")
            return []

        if not isinstance(data, list):
            logger.warning(f"Unexpected Avasam product list response shape: {type(data).__name__}")
            return []

        sku_set = set(wanted)
        products: list[AvasamProduct] = []
        for item in data:
            if not isinstance(item, dict):
                continue
            sku = item.get("SKU")
            if not isinstance(sku, str) or sku not in sku_set:
                continue
            try:
                products.append(AvasamProduct.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed Avasam product {sku}: {e.error_count()} errors")

        logger.info(f"Avasam product list: requested={len(wanted)} matched={len(products)}")
        return products

    async def get_shipping_options_by_sku(self, sku: str) -> list[ShippingOption]:
        """Fetch and normalize warehouse/shipping options for one SKU.

        Returns:
            Normalized options; [] on 404 (no shipping data) or upstream failure.

        Raises:
            AvasamAuthError: Credentials are missing or rejected.
        """
        try:
            auth_key = await self.authenticate()
            response = await self._post(
                f"{self.base_url}/Products/GetProductWarehouseDetail",
                {"Authkey": auth_key, "SKU": sku},
            )
        except AvasamUnavailableError as e:
            logger.error(f"Avasam warehouse detail unavailable for {sku}: {e}")
            return []

        if response.status_code == 404:
            logger.info(f"No Avasam shipping data for {sku}")
            return []

        if not response.is_success:
            logger.error(
                f"Avasam warehouse detail error for {sku}: {response.status_code} - {response.text[:200]}"
            )
            return []

        try:
            data = response.json()
        except ValueError:
            logger.warning(f"Avasam warehouse detail for {sku} was not JSON")
            return []

        return normalize_shipping_options(data)


# Singleton client instance
_client: AvasamClient | None = None


def get_avasam_client() -> AvasamClient:
    """Get Avasam client singleton."""
    global _client
    if _client is None:
        _client = AvasamClient()
    return _client


async def close_avasam_client() -> None:
    """Close the singleton's HTTP client (application shutdown)."""
    global _client
    if _client is not None:
        await _client.close()
        _client = None
