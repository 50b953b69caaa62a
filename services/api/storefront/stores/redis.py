"""Redis store for cross-worker coordination.

Only one thing lives here: short-lived locks that stop several API workers
(or the cron job) from asking Avasam for the same SKU's shipping at once.

Keys:
- lock:shipping:<sku>  value = random owner token, TTL = SHIPPING_REFRESH_LOCK_SECONDS

Redis is optional. Until init_redis() succeeds every helper raises
RuntimeError, which the shipping refresh treats as "run unlocked".
"""

import logging
import secrets

import redis.asyncio as redis

from storefront.settings import get_settings

logger = logging.getLogger("uvicorn.error")

PREFIX_LOCK = "lock:"
PREFIX_SHIPPING = "shipping:"

# Delete the key only while it still holds our token, so a lock that expired
# and was re-taken by another worker is never released by us.
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

_redis: redis.Redis | None = None


async def init_redis() -> None:
    """Connect and PING; leaves the client unset when the ping fails."""
    global _redis
    client = redis.from_url(
        get_settings().redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    try:
        await client.ping()
    except Exception:
        await client.aclose()
        raise
    _redis = client
    logger.info("Redis connected")


async def close_redis() -> None:
    global _redis
    client, _redis = _redis, None
    if client is not None:
        await client.aclose()


def _get_redis() -> redis.Redis:
    if _redis is None:
        raise RuntimeError("Redis is not initialized; call init_redis() at startup.")
    return _redis


def shipping_lock_key(sku: str) -> str:
    """Lock name (without the lock: prefix) for one SKU's shipping refresh."""
    return f"{PREFIX_SHIPPING}{sku}"


async def acquire_lock(key: str, ttl: int) -> str | None:
    """Try to take a lock (SET NX EX).

    Args:
        key: Lock name without the "lock:" prefix (e.g. "shipping:SKU123").
        ttl: Seconds before the lock expires on its own.

    Returns:
        Owner token to pass to release_lock(), or None when someone else holds it.
    """
    token = secrets.token_hex(8)
    acquired = await _get_redis().set(f"{PREFIX_LOCK}{key}", token, nx=True, ex=ttl)
    return token if acquired else None


async def release_lock(key: str, token: str) -> bool:
    """Release a lock we own. Returns False when it had already expired or changed hands."""
    released = await _get_redis().eval(_RELEASE_SCRIPT, 1, f"{PREFIX_LOCK}{key}", token)
    return bool(released)
