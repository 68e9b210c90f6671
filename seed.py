"""
Seed script -- populates the database with sample data for reviewers.

Run with:
    python seed.py

Creates (through the service layer, so every invariant is honoured):
  - 6 sample drivers
  - 5 sample vehicles
  - 3 driver <-> vehicle assignments
  - 4 sample trips (mix of ACTIVE, ENDED, CANCELLED)
"""

import asyncio

from sqlalchemy import func, select

from microfleet.infrastructure.database import async_session_factory, engine, init_models
from microfleet.infrastructure.models import DriverModel
from microfleet.services.drivers import DriverRegistry
from microfleet.services.trips import TripLifecycleManager
from microfleet.services.vehicles import VehicleRegistry


DRIVERS = [
    {"name": "Alice Moreau", "license": "LIC-1001", "phone": "555-0101"},
    {"name": "Bob Okafor", "license": "LIC-1002", "phone": "555-0102"},
    {"name": "Chen Wei", "license": "LIC-1003", "phone": "555-0103"},
    {"name": "Dana Kowalski", "license": "LIC-1004", "phone": "555-0104"},
    {"name": "Emeka Bello", "license": "LIC-1005", "phone": "555-0105"},
    {"name": "Farah Haddad", "license": "LIC-1006", "phone": "555-0106"},
]

VEHICLES = [
    {"model": "Ford Transit", "reg_number": "REG-001", "capacity": 8},
    {"model": "Toyota Prius", "reg_number": "REG-002", "capacity": 4},
    {"model": "Mercedes Sprinter", "reg_number": "REG-003", "capacity": 12},
    {"model": "Renault Kangoo", "reg_number": "REG-004", "capacity": 2},
    {"model": "Tesla Model Y", "reg_number": "REG-005", "capacity": 5},
]


async def seed():
    await init_models()

    async with async_session_factory() as session:
        result = await session.execute(select(func.count()).select_from(DriverModel))
        already_seeded = result.scalar() > 0
    if already_seeded:
        print("Database already seeded. Skipping.")
        await engine.dispose()
        return

    drivers = DriverRegistry(async_session_factory)
    vehicles = VehicleRegistry(async_session_factory)
    trips = TripLifecycleManager(async_session_factory)

    # ── Drivers & vehicles ────────────────────────────────────────────
    driver_ids = [(await drivers.create(**d)).id for d in DRIVERS]
    vehicle_ids = [(await vehicles.create(**v)).id for v in VEHICLES]
    print(f"  Created {len(driver_ids)} drivers and {len(vehicle_ids)} vehicles")

    # ── Assignments ───────────────────────────────────────────────────
    for driver_id, vehicle_id in zip(driver_ids[:3], vehicle_ids[:3]):
        await drivers.assign_vehicle(driver_id, vehicle_id)
    print("  Assigned 3 vehicles")

    # ── Trips ─────────────────────────────────────────────────────────
    t1 = await trips.create("Depot", "Airport", driver_ids[0], vehicle_ids[0], "32.4")
    await trips.end(t1.id, distance_km="33.1")
    await trips.create("Airport", "Old Town", driver_ids[1], vehicle_ids[1])
    t3 = await trips.create("Harbour", "Stadium", driver_ids[2], vehicle_ids[2], 12)
    await trips.cancel(t3.id)
    await trips.create("Depot", "University", driver_ids[0], vehicle_ids[0], "7.5")
    print("  Created 4 trips")

    await engine.dispose()
    print("Seed complete!")


if __name__ == "__main__":
    asyncio.run(seed())
