"""Redis client for the lifecycle event queue."""

import redis
import redis.asyncio as aioredis
import structlog

from app.config import settings

logger = structlog.get_logger(__name__)

# Shared async client; created on first use
_redis_client: aioredis.Redis | None = None


def get_redis_client() -> aioredis.Redis:
    """
    Get or create the async Redis client.

    The client holds a connection pool and does not connect until the first
    command, so creating it never blocks.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = aioredis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """
    Check if Redis connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        await get_redis_client().ping()
        return True
    except redis.RedisError as e:
        logger.warning("redis_ping_failed", error=str(e))
        return False


async def queue_length(queue_key: str) -> int | None:
    """Number of events waiting on a queue, or None if Redis is unreachable."""
    try:
        return int(await get_redis_client().llen(queue_key))
    except redis.RedisError as e:
        logger.warning("redis_queue_length_failed", queue=queue_key, error=str(e))
        return None


async def close_redis_connection() -> None:
    """Close the Redis connection pool."""
    global _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
