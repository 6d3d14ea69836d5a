"""Redis connection management."""

from __future__ import annotations

import redis.asyncio as redis


def create_redis(url: str) -> redis.Redis:
    """Build a Redis client; connections are opened lazily on first command."""
    return redis.from_url(url, decode_responses=True)


async def close_redis(client: redis.Redis | None) -> None:
    """Close the Redis connection pool."""
    if client is not None:
        await client.aclose()
