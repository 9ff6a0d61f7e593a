"""
Token Revocation using Redis.

A logged-out access token is listed until it would have expired anyway.
A whole user can be cut off too (e.g. on deactivation): every access token
issued to them is refused for one access-token lifetime.
"""

import logging

from redis.exceptions import RedisError
from fleetops.app.core.config import settings
from fleetops.app.core.redis_client import redis_key

logger = logging.getLogger(__name__)


def _ttl_seconds() -> int:
    return settings.access_token_expire_minutes * 60


async def revoke_token(redis, token: str, user_id: int) -> bool:
    """
    List an access token as revoked.

    Returns:
        True if successfully revoked, False otherwise
    """
    try:
        await redis.setex(redis_key("revoked", "token", token), _ttl_seconds(), str(user_id))
    except RedisError as e:
        logger.error("Could not revoke token of user %s: %s", user_id, e)
        return False
    logger.info("Access token of user %s revoked", user_id)
    return True


async def is_token_revoked(redis, token: str) -> bool:
    """
    Check if a token has been revoked.

    Fails open when Redis is unreachable: signature and expiry checks
    still apply.
    """
    try:
        return await redis.exists(redis_key("revoked", "token", token)) > 0
    except RedisError as e:
        logger.warning("Revocation check skipped, Redis unavailable: %s", e)
        return False


async def revoke_all_user_tokens(redis, user_id: int) -> bool:
    try:
        await redis.setex(redis_key("revoked", "user", user_id), _ttl_seconds(), "1")
    except RedisError as e:
        logger.error("Could not revoke tokens of user %s: %s", user_id, e)
        return False
    logger.info("All access tokens of user %s revoked", user_id)
    return True


async def are_user_tokens_revoked(redis, user_id: int) -> bool:
    try:
        return await redis.exists(redis_key("revoked", "user", user_id)) > 0
    except RedisError as e:
        logger.warning("User revocation check skipped, Redis unavailable: %s", e)
        return False


async def clear_user_token_revocation(redis, user_id: int) -> bool:
    """Lift a user-wide revocation, e.g. when the account is reactivated."""
    try:
        await redis.delete(redis_key("revoked", "user", user_id))
    except RedisError as e:
        logger.error("Could not clear token revocation of user %s: %s", user_id, e)
        return False
    return True
