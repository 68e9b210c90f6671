"""Vehicle registry: mirrors the driver registry for vehicles."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from microfleet.config import settings
from microfleet.domain.enums import EntityKind, VehicleStatus
from microfleet.domain.errors import ConflictError, NotFoundError, ValidationError
from microfleet.domain.parsing import parse_id, parse_positive_int, require_text
from microfleet.infrastructure.models import VehicleModel
from microfleet.infrastructure.repositories import VehicleRepository
from microfleet.infrastructure.unit_of_work import run_in_transaction

from .integrity import can_delete

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"model", "status", "capacity"}


class VehicleRegistry:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def list(self) -> list[VehicleModel]:
        return await run_in_transaction(
            self.session_factory,
            lambda s: VehicleRepository(s).list_all(settings.trip_preview_limit),
        )

    async def create(self, model: Any, reg_number: Any, capacity: Any) -> VehicleModel:
        fields = {
            "model": require_text(model, "model"),
            "reg_number": require_text(reg_number, "regNumber"),
            "capacity": parse_positive_int(capacity, "capacity"),
            "status": VehicleStatus.AVAILABLE,
        }

        async def work(session: AsyncSession) -> VehicleModel:
            repo = VehicleRepository(session)
            vehicle = await repo.create(**fields)
            return await repo.get_detail(vehicle.id)

        vehicle = await run_in_transaction(self.session_factory, work)
        logger.info("Created vehicle %d (%s)", vehicle.id, vehicle.reg_number)
        return vehicle

    async def get(self, vehicle_id: Any) -> VehicleModel:
        v_id = parse_id(vehicle_id, "vehicle id")

        async def work(session: AsyncSession) -> VehicleModel:
            vehicle = await VehicleRepository(session).get_detail(v_id)
            if vehicle is None:
                raise NotFoundError("Vehicle")
            return vehicle

        return await run_in_transaction(self.session_factory, work)

    async def update(self, vehicle_id: Any, changes: Mapping[str, Any]) -> VehicleModel:
        v_id = parse_id(vehicle_id, "vehicle id")
        fields = _clean_changes(changes)

        async def work(session: AsyncSession) -> VehicleModel:
            repo = VehicleRepository(session)
            vehicle = await repo.get_by_id(v_id)
            if vehicle is None:
                raise NotFoundError("Vehicle")
            if fields:
                await repo.update(vehicle, fields)
            return await repo.get_detail(v_id)

        return await run_in_transaction(self.session_factory, work)

    async def delete(self, vehicle_id: Any) -> None:
        v_id = parse_id(vehicle_id, "vehicle id")

        async def work(session: AsyncSession) -> None:
            repo = VehicleRepository(session)
            if await repo.get_for_update(v_id) is None:
                raise NotFoundError("Vehicle")
            if not await can_delete(session, EntityKind.VEHICLE, v_id):
                raise ConflictError("Vehicle has an active assignment or trips")
            try:
                await repo.delete(v_id)
            except IntegrityError as exc:
                raise ConflictError("Vehicle has an active assignment or trips") from exc

        await run_in_transaction(self.session_factory, work)
        logger.info("Deleted vehicle %d", v_id)


def _clean_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(
            f"Cannot update vehicle field(s): {', '.join(sorted(unknown))}"
        )
    fields: dict[str, Any] = {}
    if changes.get("model") is not None:
        fields["model"] = require_text(changes["model"], "model")
    if changes.get("capacity") is not None:
        fields["capacity"] = parse_positive_int(changes["capacity"], "capacity")
    if changes.get("status") is not None:
        try:
            fields["status"] = VehicleStatus(changes["status"])
        except ValueError:
            raise ValidationError(f"Invalid vehicle status: {changes['status']!r}") from None
    return fields
