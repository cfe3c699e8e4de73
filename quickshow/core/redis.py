"""
Redis client used for short-lived seat locks
"""
import asyncio
import logging
from typing import Any, Optional
from urllib.parse import quote, unquote, urlparse

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)

_redis_client: Optional[aioredis.Redis] = None


def _parse_redis_url(url: str) -> str:
    """
    Normalize a REDIS_URL so the password is URL-encoded exactly once.
    Leaves other parts of the URL intact.
    """
    if not url:
        return url

    p = urlparse(url)
    if p.scheme not in ("redis", "rediss") or "@" not in p.netloc or not p.password:
        return url

    username = p.username or ""
    host_port = p.netloc.split("@")[-1]
    password_quoted = quote(unquote(p.password), safe="")
    netloc = f"{username}:{password_quoted}@{host_port}"

    normalized = f"{p.scheme}://{netloc}{p.path or ''}"
    if p.query:
        normalized += f"?{p.query}"
    return normalized


async def _maybe_await(value: Any) -> Any:
    """Await value if it is awaitable, otherwise return it."""
    if asyncio.iscoroutine(value) or hasattr(value, "__await__"):
        return await value
    return value


async def get_redis(url: str) -> aioredis.Redis:
    """Return a singleton async Redis client, connecting on first use."""
    global _redis_client
    if _redis_client is not None:
        return _redis_client

    if not url:
        raise RuntimeError("REDIS_URL not set")

    client = aioredis.from_url(
        _parse_redis_url(url),
        socket_timeout=1.0,
        socket_connect_timeout=1.0,
        decode_responses=True,
    )
    try:
        pong = await _maybe_await(client.ping())
    except Exception as exc:
        await _maybe_await(client.close())
        raise RuntimeError(f"Redis connection failed: {exc}") from exc

    if not pong:
        await _maybe_await(client.close())
        raise RuntimeError("Redis connection failed: PING returned falsy value")

    _redis_client = client
    logger.info("✓ Redis connected: %s", url.split("@")[-1])
    return _redis_client


async def close_redis() -> None:
    global _redis_client
    if _redis_client is not None:
        try:
            await _maybe_await(_redis_client.close())
        finally:
            _redis_client = None
        logger.info("✓ Redis connection closed")


async def health_check_redis(url: str) -> dict:
    """Health check payload for Redis."""
    try:
        client = await get_redis(url)
        pong = await _maybe_await(client.ping())
        if pong:
            return {"status": "ok", "detail": "Redis is connected and responsive"}
        return {"status": "error", "detail": "Redis ping returned false"}
    except Exception as e:
        return {"status": "error", "detail": str(e)}
