"""FastAPI dependency injection helpers."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from microfleet.config import settings
from microfleet.infrastructure.database import async_session_factory
from microfleet.infrastructure.locks import DistributedLock
from microfleet.infrastructure.redis_client import get_redis
from microfleet.services.assignments import AssignmentManager
from microfleet.services.drivers import DriverRegistry
from microfleet.services.trips import TripLifecycleManager
from microfleet.services.vehicles import VehicleRegistry


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory the services open their transactions on."""
    return async_session_factory


async def get_assignment_manager(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AssignmentManager:
    lock_factory = None
    if settings.assignment_lock_enabled:
        redis = await get_redis()

        def lock_factory(key: str) -> DistributedLock:
            return DistributedLock(
                redis,
                key,
                ttl_seconds=settings.assignment_lock_ttl_seconds,
                wait_seconds=settings.assignment_lock_wait_seconds,
            )

    return AssignmentManager(factory, lock_factory=lock_factory)


def get_driver_registry(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    assignments: AssignmentManager = Depends(get_assignment_manager),
) -> DriverRegistry:
    return DriverRegistry(factory, assignments)


def get_vehicle_registry(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> VehicleRegistry:
    return VehicleRegistry(factory)


def get_trip_manager(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> TripLifecycleManager:
    return TripLifecycleManager(factory)
