from fastapi import Request
from redis.exceptions import RedisError

from backend.app.core import redis_client as redis_module
from backend.app.core.config import settings
from backend.app.core.logger import logger
from backend.app.services.errors import RateLimited


def _throttle_key(client_ip: str) -> str:
    return f"throttle:{client_ip}"


async def throttle_public(request: Request) -> None:
    """Fixed-window request limit per client IP for the public endpoints.

    Without Redis the throttle is off; a Redis failure lets the request through.
    """
    client = redis_module.redis_client
    if client is None:
        return

    client_ip = request.client.host if request.client else "unknown"
    key = _throttle_key(client_ip)
    try:
        # The window TTL is set together with the counter so a partial failure
        # never leaves an unexpiring key behind.
        await client.set(key, 0, ex=settings.RATE_LIMIT_WINDOW_SECONDS, nx=True)
        count = await client.incr(key)
    except RedisError as exc:
        logger.warning("Throttle check skipped, Redis error: {}", exc)
        return

    if count > settings.RATE_LIMIT_MAX_REQUESTS:
        raise RateLimited("Too many requests. Please try again later.")
