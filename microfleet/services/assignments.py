"""
Assignment manager: the 1:1 driver <-> vehicle link.

The link is stored twice (``drivers.assigned_vehicle_id`` and
``vehicles.assigned_driver_id``) and both halves are always written in the
same transaction.  Claiming a vehicle is a compare-and-set
(``UPDATE ... WHERE assigned_driver_id IS NULL``), so of two callers racing
for the same vehicle exactly one wins and the other gets a
``ConflictError``, whatever the isolation level of the store.

Reassigning a driver who already holds a vehicle follows
``settings.reassignment_policy``: ``reject`` refuses, ``displace`` frees the
old vehicle in the same transaction.
"""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack
from typing import Any, Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from microfleet.config import settings
from microfleet.domain.enums import ReassignmentPolicy
from microfleet.domain.errors import ConflictError, NotFoundError
from microfleet.domain.parsing import parse_id
from microfleet.infrastructure.locks import DistributedLock, LockNotAcquired
from microfleet.infrastructure.models import DriverModel
from microfleet.infrastructure.repositories import DriverRepository, VehicleRepository
from microfleet.infrastructure.unit_of_work import run_in_transaction

logger = logging.getLogger(__name__)

LockFactory = Callable[[str], DistributedLock]


class AssignmentManager:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        policy: Optional[ReassignmentPolicy] = None,
        lock_factory: Optional[LockFactory] = None,
    ):
        self.session_factory = session_factory
        self.policy = ReassignmentPolicy(policy or settings.reassignment_policy)
        self.lock_factory = lock_factory

    async def assign(self, driver_id: Any, vehicle_id: Any) -> DriverModel:
        """Link *driver_id* and *vehicle_id*; returns the driver with its vehicle."""
        d_id = parse_id(driver_id, "driverId")
        v_id = parse_id(vehicle_id, "vehicleId")

        async with self._serialized(d_id, v_id):
            driver = await run_in_transaction(
                self.session_factory, lambda s: self._assign(s, d_id, v_id)
            )
        logger.info("Assigned vehicle %d to driver %d", v_id, d_id)
        return driver

    async def unassign(self, driver_id: Any) -> DriverModel:
        """Clear the driver's link and every back-reference to it."""
        d_id = parse_id(driver_id, "driverId")
        driver = await run_in_transaction(
            self.session_factory, lambda s: self._unassign(s, d_id)
        )
        logger.info("Unassigned driver %d", d_id)
        return driver

    # ── Internals ─────────────────────────────────────────────────────

    async def _assign(
        self, session: AsyncSession, driver_id: int, vehicle_id: int
    ) -> DriverModel:
        drivers = DriverRepository(session)
        vehicles = VehicleRepository(session)

        # Lock order is always driver, then vehicle.
        driver = await drivers.get_for_update(driver_id)
        if driver is None:
            raise NotFoundError("Driver")
        vehicle = await vehicles.get_for_update(vehicle_id)
        if vehicle is None:
            raise NotFoundError("Vehicle")
        if vehicle.assigned_driver_id is not None:
            raise ConflictError("Vehicle already assigned")

        previous = driver.assigned_vehicle_id
        if previous is not None:
            if self.policy is ReassignmentPolicy.REJECT:
                raise ConflictError("Driver already has a vehicle assigned")
            logger.info(
                "Displacing vehicle %d from driver %d", previous, driver_id
            )

        try:
            # Also clears stale back-references left by older data.
            await vehicles.release_all_for_driver(driver_id)
            if not await vehicles.claim(vehicle_id, driver_id):
                raise ConflictError("Vehicle already assigned")
            if not await drivers.link_vehicle(driver_id, vehicle_id, expected=previous):
                raise ConflictError("Driver assignment changed concurrently")
        except IntegrityError as exc:
            logger.warning(
                "Unique link violated assigning vehicle %d to driver %d: %s",
                vehicle_id,
                driver_id,
                exc.orig,
            )
            raise ConflictError("Vehicle already assigned") from exc

        # Core updates bypassed the identity map; reload both sides.
        session.expire_all()
        return await drivers.get_detail(driver_id)

    async def _unassign(self, session: AsyncSession, driver_id: int) -> DriverModel:
        drivers = DriverRepository(session)
        vehicles = VehicleRepository(session)

        driver = await drivers.get_for_update(driver_id)
        if driver is None:
            raise NotFoundError("Driver")
        await vehicles.release_all_for_driver(driver_id)
        await drivers.unlink_vehicle(driver_id)
        session.expire_all()
        return await drivers.get_detail(driver_id)

    def _serialized(self, driver_id: int, vehicle_id: int) -> AsyncExitStack:
        return _LockStack(
            self.lock_factory,
            [f"assignment:driver:{driver_id}", f"assignment:vehicle:{vehicle_id}"],
        )


class _LockStack(AsyncExitStack):
    """Holds one distributed lock per key, or nothing when locking is off."""

    def __init__(self, lock_factory: Optional[LockFactory], keys: list[str]):
        super().__init__()
        self.lock_factory = lock_factory
        self.keys = keys

    async def __aenter__(self):
        await super().__aenter__()
        if self.lock_factory is None:
            return self
        try:
            for key in self.keys:
                await self.enter_async_context(self.lock_factory(key))
        except BaseException as exc:
            # __aexit__ will not run; drop whatever was already taken.
            await self.aclose()
            if isinstance(exc, LockNotAcquired):
                raise ConflictError(
                    "Another assignment for this driver or vehicle is in progress"
                ) from exc
            raise
        return self
