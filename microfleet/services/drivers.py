"""Driver registry: CRUD over drivers, plus the assignment entry points."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from microfleet.config import settings
from microfleet.domain.enums import DriverStatus, EntityKind
from microfleet.domain.errors import ConflictError, NotFoundError, ValidationError
from microfleet.domain.parsing import parse_id, require_text
from microfleet.infrastructure.models import DriverModel
from microfleet.infrastructure.repositories import DriverRepository
from microfleet.infrastructure.unit_of_work import run_in_transaction

from .assignments import AssignmentManager
from .integrity import can_delete

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"name", "license", "phone", "status"}


class DriverRegistry:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        assignments: Optional[AssignmentManager] = None,
    ):
        self.session_factory = session_factory
        self.assignments = assignments or AssignmentManager(session_factory)

    async def list(self) -> list[DriverModel]:
        """All drivers with their vehicle and a short trip preview."""
        return await run_in_transaction(
            self.session_factory,
            lambda s: DriverRepository(s).list_all(settings.trip_preview_limit),
        )

    async def create(self, name: Any, license: Any, phone: Any) -> DriverModel:
        fields = {
            "name": require_text(name, "name"),
            "license": require_text(license, "license"),
            "phone": require_text(phone, "phone"),
            "status": DriverStatus.AVAILABLE,
        }

        async def work(session: AsyncSession) -> DriverModel:
            repo = DriverRepository(session)
            driver = await repo.create(**fields)
            return await repo.get_detail(driver.id)

        driver = await run_in_transaction(self.session_factory, work)
        logger.info("Created driver %d (%s)", driver.id, driver.license)
        return driver

    async def get(self, driver_id: Any) -> DriverModel:
        d_id = parse_id(driver_id, "driver id")

        async def work(session: AsyncSession) -> DriverModel:
            driver = await DriverRepository(session).get_detail(d_id)
            if driver is None:
                raise NotFoundError("Driver")
            return driver

        return await run_in_transaction(self.session_factory, work)

    async def update(self, driver_id: Any, changes: Mapping[str, Any]) -> DriverModel:
        """Apply only the fields present in *changes*."""
        d_id = parse_id(driver_id, "driver id")
        fields = _clean_changes(changes)

        async def work(session: AsyncSession) -> DriverModel:
            repo = DriverRepository(session)
            driver = await repo.get_by_id(d_id)
            if driver is None:
                raise NotFoundError("Driver")
            if fields:
                await repo.update(driver, fields)
            return await repo.get_detail(d_id)

        return await run_in_transaction(self.session_factory, work)

    async def delete(self, driver_id: Any) -> None:
        d_id = parse_id(driver_id, "driver id")

        async def work(session: AsyncSession) -> None:
            repo = DriverRepository(session)
            if await repo.get_for_update(d_id) is None:
                raise NotFoundError("Driver")
            if not await can_delete(session, EntityKind.DRIVER, d_id):
                raise ConflictError("Driver has an active assignment or trips")
            try:
                await repo.delete(d_id)
            except IntegrityError as exc:
                # a trip slipped in between the guard and the delete
                raise ConflictError("Driver has an active assignment or trips") from exc

        await run_in_transaction(self.session_factory, work)
        logger.info("Deleted driver %d", d_id)

    async def assign_vehicle(self, driver_id: Any, vehicle_id: Any) -> DriverModel:
        return await self.assignments.assign(driver_id, vehicle_id)

    async def unassign_vehicle(self, driver_id: Any) -> DriverModel:
        return await self.assignments.unassign(driver_id)


def _clean_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(
            f"Cannot update driver field(s): {', '.join(sorted(unknown))}"
        )
    fields: dict[str, Any] = {}
    for key in ("name", "license", "phone"):
        if key in changes and changes[key] is not None:
            fields[key] = require_text(changes[key], key)
    if changes.get("status") is not None:
        try:
            fields["status"] = DriverStatus(changes["status"])
        except ValueError:
            raise ValidationError(f"Invalid driver status: {changes['status']!r}") from None
    return fields
