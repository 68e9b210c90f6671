"""
Trip lifecycle manager.

Trips start ACTIVE and move once, to ENDED or CANCELLED.  The terminal
check and the write are a single conditional UPDATE on ``status``, so two
concurrent ``end`` / ``cancel`` calls on the same trip cannot both win.
Trips never touch the driver <-> vehicle assignment.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from microfleet.domain.enums import TripStatus
from microfleet.domain.errors import ConflictError, NotFoundError, ValidationError
from microfleet.domain.lifecycle import ensure_transition
from microfleet.domain.parsing import (
    parse_distance,
    parse_id,
    parse_timestamp,
    require_text,
)
from microfleet.infrastructure.models import TripModel
from microfleet.infrastructure.repositories import (
    DriverRepository,
    TripRepository,
    VehicleRepository,
)
from microfleet.infrastructure.unit_of_work import run_in_transaction

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(moment: datetime) -> datetime:
    # SQLite hands timestamps back naive; they were written as UTC.
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class TripLifecycleManager:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def list(self) -> list[TripModel]:
        return await run_in_transaction(
            self.session_factory, lambda s: TripRepository(s).list_all()
        )

    async def get(self, trip_id: Any) -> TripModel:
        t_id = parse_id(trip_id, "trip id")

        async def work(session: AsyncSession) -> TripModel:
            trip = await TripRepository(session).get_detail(t_id)
            if trip is None:
                raise NotFoundError("Trip")
            return trip

        return await run_in_transaction(self.session_factory, work)

    async def create(
        self,
        origin: Any,
        destination: Any,
        driver_id: Any,
        vehicle_id: Any,
        distance_km: Any = None,
    ) -> TripModel:
        fields = {
            "origin": require_text(origin, "origin"),
            "destination": require_text(destination, "destination"),
            "driver_id": parse_id(driver_id, "driverId"),
            "vehicle_id": parse_id(vehicle_id, "vehicleId"),
            "distance_km": parse_distance(distance_km, "distanceKm"),
        }

        async def work(session: AsyncSession) -> TripModel:
            if await DriverRepository(session).get_by_id(fields["driver_id"]) is None:
                raise NotFoundError("Driver")
            if await VehicleRepository(session).get_by_id(fields["vehicle_id"]) is None:
                raise NotFoundError("Vehicle")
            repo = TripRepository(session)
            try:
                trip = await repo.create(
                    status=TripStatus.ACTIVE,
                    start_time=_utcnow(),
                    end_time=None,
                    **fields,
                )
            except IntegrityError as exc:
                raise ValidationError(
                    "driverId and vehicleId must reference existing records"
                ) from exc
            return await repo.get_detail(trip.id)

        trip = await run_in_transaction(self.session_factory, work)
        logger.info(
            "Started trip %d (driver %d, vehicle %d)",
            trip.id,
            trip.driver_id,
            trip.vehicle_id,
        )
        return trip

    async def end(
        self, trip_id: Any, distance_km: Any = None, end_time: Any = None
    ) -> TripModel:
        t_id = parse_id(trip_id, "trip id")
        distance = parse_distance(distance_km, "distanceKm")
        ended_at = parse_timestamp(end_time, "endTime")

        async def work(session: AsyncSession) -> TripModel:
            repo = TripRepository(session)
            trip = await self._load_for_transition(repo, t_id, TripStatus.ENDED)
            moment = ended_at or _utcnow()
            if moment < _as_utc(trip.start_time):
                raise ValidationError("endTime cannot be earlier than the trip start")
            values: dict[str, Any] = {"status": TripStatus.ENDED, "end_time": moment}
            if distance is not None:
                values["distance_km"] = distance
            if not await repo.transition(t_id, TripStatus.ACTIVE, **values):
                raise ConflictError("Trip is no longer active")
            return await repo.get_detail(t_id)

        trip = await run_in_transaction(self.session_factory, work)
        logger.info("Ended trip %d", t_id)
        return trip

    async def cancel(self, trip_id: Any) -> TripModel:
        t_id = parse_id(trip_id, "trip id")

        async def work(session: AsyncSession) -> TripModel:
            repo = TripRepository(session)
            await self._load_for_transition(repo, t_id, TripStatus.CANCELLED)
            if not await repo.transition(
                t_id, TripStatus.ACTIVE, status=TripStatus.CANCELLED
            ):
                raise ConflictError("Trip is no longer active")
            return await repo.get_detail(t_id)

        trip = await run_in_transaction(self.session_factory, work)
        logger.info("Cancelled trip %d", t_id)
        return trip

    async def update(self, trip_id: Any, changes: Mapping[str, Any]) -> TripModel:
        """Status-driven update: ENDED delegates to ``end``, CANCELLED to ``cancel``."""
        raw = changes.get("status")
        try:
            target: Optional[TripStatus] = TripStatus(raw) if raw is not None else None
        except ValueError:
            raise ValidationError(f"Invalid trip status: {raw!r}") from None

        if target is TripStatus.ENDED:
            return await self.end(
                trip_id, changes.get("distance_km"), changes.get("end_time")
            )
        if target is TripStatus.CANCELLED:
            return await self.cancel(trip_id)
        raise ValidationError("status must be ENDED or CANCELLED")

    async def delete(self, trip_id: Any) -> None:
        t_id = parse_id(trip_id, "trip id")

        async def work(session: AsyncSession) -> None:
            if not await TripRepository(session).delete(t_id):
                raise NotFoundError("Trip")

        await run_in_transaction(self.session_factory, work)
        logger.info("Deleted trip %d", t_id)

    @staticmethod
    async def _load_for_transition(
        repo: TripRepository, trip_id: int, target: TripStatus
    ) -> TripModel:
        trip = await repo.get_by_id(trip_id)
        if trip is None:
            raise NotFoundError("Trip")
        ensure_transition(trip.status, target)
        return trip
