"""
SQLAlchemy ORM models.

Tables
------
* ``drivers``   -- people who drive; ``assigned_vehicle_id`` is one half of
  the assignment link
* ``vehicles``  -- fleet vehicles; ``assigned_driver_id`` mirrors the driver
  side
* ``trips``     -- journeys, each bound to one driver and one vehicle

Both link columns are UNIQUE so the store itself refuses a second driver on
the same vehicle (and vice versa).  The two foreign keys form a cycle, so
the vehicle side is created with ``use_alter``.
"""

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base
from microfleet.domain.enums import DriverStatus, TripStatus, VehicleStatus


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    license = Column(String(64), nullable=False)
    phone = Column(String(32), nullable=False)
    status = Column(
        Enum(DriverStatus), default=DriverStatus.AVAILABLE, nullable=False
    )
    assigned_vehicle_id = Column(
        Integer,
        ForeignKey("vehicles.id", name="fk_drivers_assigned_vehicle"),
        unique=True,
        nullable=True,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    assigned_vehicle = relationship(
        "VehicleModel", foreign_keys=[assigned_vehicle_id], lazy="raise"
    )
    trips = relationship(
        "TripModel",
        back_populates="driver",
        order_by="TripModel.id",
        lazy="raise",
    )


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    model = Column(String(120), nullable=False)
    reg_number = Column(String(32), nullable=False)
    capacity = Column(Integer, nullable=False)
    status = Column(
        Enum(VehicleStatus), default=VehicleStatus.AVAILABLE, nullable=False
    )
    assigned_driver_id = Column(
        Integer,
        ForeignKey(
            "drivers.id", name="fk_vehicles_assigned_driver", use_alter=True
        ),
        unique=True,
        nullable=True,
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    assigned_driver = relationship(
        "DriverModel", foreign_keys=[assigned_driver_id], lazy="raise"
    )
    trips = relationship(
        "TripModel",
        back_populates="vehicle",
        order_by="TripModel.id",
        lazy="raise",
    )

    __table_args__ = (Index("idx_vehicles_reg_number", "reg_number"),)


class TripModel(Base):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, autoincrement=True)
    origin = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    distance_km = Column(Numeric(10, 2), nullable=True)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=False)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False)
    status = Column(Enum(TripStatus), default=TripStatus.ACTIVE, nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    driver = relationship("DriverModel", back_populates="trips", lazy="raise")
    vehicle = relationship("VehicleModel", back_populates="trips", lazy="raise")

    __table_args__ = (
        Index("idx_trips_driver", "driver_id"),
        Index("idx_trips_vehicle", "vehicle_id"),
        Index("idx_trips_status", "status"),
    )
