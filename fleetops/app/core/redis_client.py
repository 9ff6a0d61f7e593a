"""
Redis client and key namespace.

Redis holds the token revocation list. Every key FleetOps writes lives
under ``settings.redis_key_prefix`` so the instance can be shared.
"""

import logging

import redis.asyncio as redis
from fleetops.app.core.config import settings

logger = logging.getLogger(__name__)

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


def redis_key(*parts) -> str:
    """Build a namespaced key, e.g. ``fleetops:revoked:user:7``."""
    return ":".join([settings.redis_key_prefix, *(str(p) for p in parts)])


async def get_redis():
    """FastAPI dependency returning the shared client; overridden in tests."""
    return redis_client


async def ping_redis(client=None) -> bool:
    """
    Check that Redis answers.

    Returns:
        True if connection successful, False otherwise
    """
    client = client or redis_client
    try:
        return bool(await client.ping())
    except redis.RedisError as e:
        logger.warning("Redis ping failed: %s", e)
        return False


async def close_redis() -> None:
    await redis_client.aclose()
