"""
Shared test fixtures.

Each test gets its own file-backed SQLite database (via aiosqlite) so the
suite runs without Docker / PostgreSQL / Redis.  A file rather than
``:memory:`` is used on purpose: concurrent sessions then hold separate
connections and really contend for the same rows.
"""

import os

# Must be set before microfleet.config is imported.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CREATE_SCHEMA_ON_STARTUP", "false")
os.environ.setdefault("STORE_MAX_RETRIES", "5")

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from microfleet.domain.enums import ReassignmentPolicy
from microfleet.infrastructure.database import (
    build_engine,
    build_session_factory,
    init_models,
)
from microfleet.services.assignments import AssignmentManager
from microfleet.services.drivers import DriverRegistry
from microfleet.services.trips import TripLifecycleManager
from microfleet.services.vehicles import VehicleRegistry


# ── Store ─────────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create tables in a fresh database, yield a session factory, dispose."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'fleet.db'}")
    await init_models(engine)
    yield build_session_factory(engine)
    await engine.dispose()


# ── Services ──────────────────────────────────────────────────────────


@pytest.fixture
def assignments(session_factory) -> AssignmentManager:
    return AssignmentManager(session_factory, policy=ReassignmentPolicy.REJECT)


@pytest.fixture
def drivers(session_factory, assignments) -> DriverRegistry:
    return DriverRegistry(session_factory, assignments)


@pytest.fixture
def vehicles(session_factory) -> VehicleRegistry:
    return VehicleRegistry(session_factory)


@pytest.fixture
def trips(session_factory) -> TripLifecycleManager:
    return TripLifecycleManager(session_factory)


# ── HTTP ──────────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient against the real app, wired to the per-test database."""
    from microfleet.api.app import create_app
    from microfleet.api.dependencies import get_session_factory
    from microfleet.api.middleware import limiter

    limiter.reset()
    app = create_app()
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
