# quickshow/deps.py
import logging
import time
from typing import Optional

from fastapi import Depends, Request
from redis.asyncio import Redis

from quickshow.core.config import Settings
from quickshow.core.redis import get_redis
from quickshow.services.event_publisher import EventPublisher
from quickshow.services.payment_service import StripeGateway

logger = logging.getLogger(__name__)

# after a failed connect, skip Redis for this long instead of paying the connect timeout per request
REDIS_RETRY_SECONDS = 30.0
_redis_retry_at = 0.0


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_payment_gateway(request: Request) -> StripeGateway:
    return request.app.state.payment_gateway


def get_event_publisher(request: Request) -> EventPublisher:
    return request.app.state.event_publisher


async def get_seat_lock_redis(settings: Settings = Depends(get_settings)) -> Optional[Redis]:
    """Redis for seat locks, or None when it is unreachable (locking degrades to DB checks)."""
    global _redis_retry_at
    if time.monotonic() < _redis_retry_at:
        return None
    try:
        return await get_redis(settings.redis_url)
    except Exception as e:
        _redis_retry_at = time.monotonic() + REDIS_RETRY_SECONDS
        logger.warning("⚠ Redis unavailable, seat locks disabled for %ss: %s", REDIS_RETRY_SECONDS, e)
        return None
