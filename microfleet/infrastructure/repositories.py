"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
the entity-store contract the services rely on: list / get / create /
update / delete, plus the compare-and-set primitives that keep the
driver <-> vehicle link and the trip lifecycle consistent under
concurrent callers.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import delete, exists, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from .models import DriverModel, TripModel, VehicleModel
from microfleet.domain.enums import TripStatus


class DriverRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_all(self, trip_limit: int) -> list[DriverModel]:
        result = await self.session.execute(
            select(DriverModel)
            .options(selectinload(DriverModel.assigned_vehicle))
            .order_by(DriverModel.id)
        )
        drivers = list(result.scalars().all())
        await _attach_trip_previews(
            self.session, drivers, TripModel.driver_id, trip_limit
        )
        return drivers

    async def get_by_id(self, driver_id: int) -> Optional[DriverModel]:
        return await self.session.get(DriverModel, driver_id)

    async def get_for_update(self, driver_id: int) -> Optional[DriverModel]:
        """SELECT ... FOR UPDATE so concurrent writers on this driver queue up."""
        result = await self.session.execute(
            select(DriverModel)
            .where(DriverModel.id == driver_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_detail(self, driver_id: int) -> Optional[DriverModel]:
        """Driver with its assigned vehicle and every trip, freshly read."""
        result = await self.session.execute(
            select(DriverModel)
            .where(DriverModel.id == driver_id)
            .options(
                selectinload(DriverModel.assigned_vehicle),
                selectinload(DriverModel.trips),
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(self, **fields: Any) -> DriverModel:
        driver = DriverModel(**fields)
        self.session.add(driver)
        await self.session.flush()
        return driver

    async def update(self, driver: DriverModel, fields: Mapping[str, Any]) -> DriverModel:
        for key, value in fields.items():
            setattr(driver, key, value)
        await self.session.flush()
        return driver

    async def delete(self, driver_id: int) -> bool:
        result = await self.session.execute(
            delete(DriverModel)
            .where(DriverModel.id == driver_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def link_vehicle(
        self, driver_id: int, vehicle_id: int, expected: Optional[int] = None
    ) -> bool:
        """Point the driver at *vehicle_id* if it still holds *expected*."""
        current = (
            DriverModel.assigned_vehicle_id.is_(None)
            if expected is None
            else DriverModel.assigned_vehicle_id == expected
        )
        result = await self.session.execute(
            update(DriverModel)
            .where(DriverModel.id == driver_id, current)
            .values(assigned_vehicle_id=vehicle_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def unlink_vehicle(self, driver_id: int) -> None:
        await self.session.execute(
            update(DriverModel)
            .where(DriverModel.id == driver_id)
            .values(assigned_vehicle_id=None)
            .execution_options(synchronize_session=False)
        )


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_all(self, trip_limit: int) -> list[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel)
            .options(selectinload(VehicleModel.assigned_driver))
            .order_by(VehicleModel.id)
        )
        vehicles = list(result.scalars().all())
        await _attach_trip_previews(
            self.session, vehicles, TripModel.vehicle_id, trip_limit
        )
        return vehicles

    async def get_by_id(self, vehicle_id: int) -> Optional[VehicleModel]:
        return await self.session.get(VehicleModel, vehicle_id)

    async def get_for_update(self, vehicle_id: int) -> Optional[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel)
            .where(VehicleModel.id == vehicle_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_detail(self, vehicle_id: int) -> Optional[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel)
            .where(VehicleModel.id == vehicle_id)
            .options(
                selectinload(VehicleModel.assigned_driver),
                selectinload(VehicleModel.trips),
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(self, **fields: Any) -> VehicleModel:
        vehicle = VehicleModel(**fields)
        self.session.add(vehicle)
        await self.session.flush()
        return vehicle

    async def update(self, vehicle: VehicleModel, fields: Mapping[str, Any]) -> VehicleModel:
        for key, value in fields.items():
            setattr(vehicle, key, value)
        await self.session.flush()
        return vehicle

    async def delete(self, vehicle_id: int) -> bool:
        result = await self.session.execute(
            delete(VehicleModel)
            .where(VehicleModel.id == vehicle_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def claim(self, vehicle_id: int, driver_id: int) -> bool:
        """Atomically take an unassigned vehicle.  False if already taken."""
        result = await self.session.execute(
            update(VehicleModel)
            .where(
                VehicleModel.id == vehicle_id,
                VehicleModel.assigned_driver_id.is_(None),
            )
            .values(assigned_driver_id=driver_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def release(self, vehicle_id: int, driver_id: int) -> bool:
        """Clear the back-reference only if it still points at *driver_id*."""
        result = await self.session.execute(
            update(VehicleModel)
            .where(
                VehicleModel.id == vehicle_id,
                VehicleModel.assigned_driver_id == driver_id,
            )
            .values(assigned_driver_id=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def release_all_for_driver(self, driver_id: int) -> int:
        """Clear every back-reference to *driver_id* (repairs stale links)."""
        result = await self.session.execute(
            update(VehicleModel)
            .where(VehicleModel.assigned_driver_id == driver_id)
            .values(assigned_driver_id=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


class TripRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_all(self) -> list[TripModel]:
        result = await self.session.execute(
            select(TripModel)
            .options(selectinload(TripModel.driver), selectinload(TripModel.vehicle))
            .order_by(TripModel.id)
        )
        return list(result.scalars().all())

    async def get_by_id(self, trip_id: int) -> Optional[TripModel]:
        return await self.session.get(TripModel, trip_id)

    async def get_detail(self, trip_id: int) -> Optional[TripModel]:
        result = await self.session.execute(
            select(TripModel)
            .where(TripModel.id == trip_id)
            .options(selectinload(TripModel.driver), selectinload(TripModel.vehicle))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(self, **fields: Any) -> TripModel:
        trip = TripModel(**fields)
        self.session.add(trip)
        await self.session.flush()
        return trip

    async def transition(
        self, trip_id: int, expected: TripStatus, **values: Any
    ) -> bool:
        """Compare-and-set on ``status``: applies *values* only from *expected*."""
        result = await self.session.execute(
            update(TripModel)
            .where(TripModel.id == trip_id, TripModel.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def delete(self, trip_id: int) -> bool:
        result = await self.session.execute(
            delete(TripModel)
            .where(TripModel.id == trip_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def count_for_driver(self, driver_id: int) -> int:
        return await self._count(TripModel.driver_id == driver_id)

    async def count_for_vehicle(self, vehicle_id: int) -> int:
        return await self._count(TripModel.vehicle_id == vehicle_id)

    async def _count(self, criterion) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(TripModel).where(criterion)
        )
        return result.scalar() or 0


async def is_linked(
    session: AsyncSession,
    driver_id: Optional[int] = None,
    vehicle_id: Optional[int] = None,
) -> bool:
    """True if any assignment link, on either side, involves the given id."""
    clauses = []
    if driver_id is not None:
        clauses.append(
            exists().where(
                DriverModel.id == driver_id,
                DriverModel.assigned_vehicle_id.is_not(None),
            )
        )
        clauses.append(exists().where(VehicleModel.assigned_driver_id == driver_id))
    if vehicle_id is not None:
        clauses.append(
            exists().where(
                VehicleModel.id == vehicle_id,
                VehicleModel.assigned_driver_id.is_not(None),
            )
        )
        clauses.append(exists().where(DriverModel.assigned_vehicle_id == vehicle_id))
    if not clauses:
        return False
    result = await session.execute(select(or_(*clauses)))
    return bool(result.scalar())


async def _attach_trip_previews(
    session: AsyncSession, owners: Iterable, key_column, limit: int
) -> None:
    """Populate ``owner.trips`` with at most *limit* trips each, in id order."""
    owners = list(owners)
    ids = [o.id for o in owners]
    grouped: dict[int, list[TripModel]] = defaultdict(list)
    if ids and limit > 0:
        result = await session.execute(
            select(TripModel).where(key_column.in_(ids)).order_by(TripModel.id)
        )
        for trip in result.scalars().all():
            bucket = grouped[getattr(trip, key_column.key)]
            if len(bucket) < limit:
                bucket.append(trip)
    for owner in owners:
        set_committed_value(owner, "trips", grouped.get(owner.id, []))
