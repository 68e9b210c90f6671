"""
Transaction runner for service operations.

Every operation runs inside one ``AsyncSession`` transaction: commit on
success, full rollback on any error.  Transient store conflicts
(serialization failures, deadlocks, a busy SQLite file) are retried a
bounded number of times; anything else that comes out of the driver is
wrapped in ``StoreError`` so callers never confuse it with a business rule.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from microfleet.config import settings
from microfleet.domain.errors import FleetError, StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# PostgreSQL: serialization_failure, deadlock_detected
TRANSIENT_SQLSTATES = {"40001", "40P01"}


def is_transient(exc: DBAPIError) -> bool:
    """True if retrying the whole transaction may succeed."""
    if exc.connection_invalidated:
        return True
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code in TRANSIENT_SQLSTATES:
        return True
    return "database is locked" in str(orig).lower()


async def run_in_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    work: Callable[[AsyncSession], Awaitable[T]],
    *,
    max_attempts: Optional[int] = None,
) -> T:
    attempts = max_attempts or settings.store_max_retries
    attempt = 0
    while True:
        attempt += 1
        try:
            async with session_factory() as session:
                async with session.begin():
                    return await work(session)
        except FleetError:
            raise
        except DBAPIError as exc:
            if is_transient(exc) and attempt < attempts:
                logger.warning(
                    "Transient store conflict (attempt %d/%d): %s",
                    attempt,
                    attempts,
                    exc.orig,
                )
                await asyncio.sleep(settings.store_retry_backoff_seconds * attempt)
                continue
            logger.error("Store failure after %d attempt(s): %s", attempt, exc.orig)
            raise StoreError("The data store could not complete the request") from exc
