"""
Deletion-safety guard shared by the driver and vehicle registries.

A driver or vehicle may only be removed when no trip references it and no
assignment link (on either side) involves it.  The check is a plain
function of the session and the id; it keeps no state of its own and is
meant to run inside the same transaction as the delete it protects.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from microfleet.domain.enums import EntityKind
from microfleet.infrastructure.repositories import TripRepository, is_linked


async def can_delete(session: AsyncSession, kind: EntityKind, entity_id: int) -> bool:
    trips = TripRepository(session)
    if kind is EntityKind.DRIVER:
        if await trips.count_for_driver(entity_id):
            return False
        return not await is_linked(session, driver_id=entity_id)
    if kind is EntityKind.VEHICLE:
        if await trips.count_for_vehicle(entity_id):
            return False
        return not await is_linked(session, vehicle_id=entity_id)
    raise ValueError(f"Unsupported entity kind: {kind!r}")
