"""
Redis connection pool for the assignment locks.

The pool is only built the first time a lock is needed, so deployments
that leave ``assignment_lock_enabled`` off never open a Redis connection.
"""

from typing import Optional

import redis.asyncio as aioredis

from microfleet.config import settings

_pool: Optional[aioredis.ConnectionPool] = None


async def get_redis() -> aioredis.Redis:
    """Return a Redis client backed by the shared connection pool."""
    global _pool
    if _pool is None:
        _pool = aioredis.ConnectionPool.from_url(
            settings.redis_url, decode_responses=True
        )
    return aioredis.Redis(connection_pool=_pool)


async def close_redis() -> None:
    """Disconnect the pool, if one was opened."""
    global _pool
    if _pool is not None:
        await _pool.disconnect()
        _pool = None
