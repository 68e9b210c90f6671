"""
Redis-based distributed lock.

Optionally used by the assignment manager to serialize ``assign`` calls
per driver and per vehicle across API processes, on top of the
compare-and-set updates in the database.

Implementation uses SET NX EX for acquire and a Lua script for
atomic check-and-delete on release.  ``wait_seconds`` turns a single
attempt into a short polling acquire so a contender sees the winner's
committed result instead of failing outright.
"""

from __future__ import annotations

import asyncio
import time
import uuid

import redis.asyncio as aioredis


class LockNotAcquired(RuntimeError):
    """Raised by the context manager when the lock stays held by someone else."""


class DistributedLock:
    def __init__(
        self,
        client: aioredis.Redis,
        key: str,
        ttl_seconds: int = 30,
        wait_seconds: float = 0.0,
        poll_interval: float = 0.05,
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.wait_seconds = wait_seconds
        self.poll_interval = poll_interval
        self.token = str(uuid.uuid4())

    async def acquire(self) -> bool:
        """Try to acquire once. Returns True on success."""
        return bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )

    async def acquire_within(self, wait_seconds: float) -> bool:
        """Retry ``acquire`` until it succeeds or *wait_seconds* elapse."""
        deadline = time.monotonic() + wait_seconds
        while True:
            if await self.acquire():
                return True
            if time.monotonic() >= deadline:
                return False
            await asyncio.sleep(self.poll_interval)

    async def release(self) -> None:
        """Release only if we still own the lock (atomic via Lua)."""
        lua = """
        if redis.call("get", KEYS[1]) == ARGV[1] then
            return redis.call("del", KEYS[1])
        else
            return 0
        end
        """
        await self.redis.eval(lua, 1, self.key, self.token)

    # context-manager support
    async def __aenter__(self):
        acquired = await self.acquire_within(self.wait_seconds)
        if not acquired:
            raise LockNotAcquired(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *args):
        await self.release()
