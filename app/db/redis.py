"""Redis connection management.

Redis carries the outbound LMS event queue.  Durable learner state lives in
Postgres; nothing in Redis is needed to reconstruct progress or
certificates, so losing it only loses undelivered notifications.
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


def create_redis(url: str) -> aioredis.Redis:  # type: ignore[type-arg]
    return aioredis.from_url(
        url,
        decode_responses=True,
        max_connections=20,
    )


async def check_redis(client: aioredis.Redis) -> bool:  # type: ignore[type-arg]
    """Ping at startup; a dead Redis degrades notifications, not the API."""
    try:
        await client.ping()  # type: ignore[misc]
    except Exception:
        logger.exception("Redis connection failed on startup")
        return False
    logger.info("Redis connected")
    return True


async def close_redis(client: aioredis.Redis) -> None:  # type: ignore[type-arg]
    await client.aclose()
    logger.info("Redis connection pool closed")
