"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from microfleet.domain.enums import DriverStatus, TripStatus, VehicleStatus

# Numeric fields arrive as JSON numbers or as strings ("12.5") from older
# clients; the services do the parsing and report bad values uniformly.
NumberLike = Union[int, float, str]


# ── Requests ──────────────────────────────────────────────────────────


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class DriverCreateRequest(_Request):
    name: Optional[str] = None
    license: Optional[str] = None
    phone: Optional[str] = None


class DriverUpdateRequest(_Request):
    name: Optional[str] = None
    license: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[str] = None


class AssignVehicleRequest(_Request):
    vehicle_id: Optional[NumberLike] = Field(None, alias="vehicleId")


class VehicleCreateRequest(_Request):
    model: Optional[str] = None
    reg_number: Optional[str] = Field(None, alias="regNumber")
    capacity: Optional[NumberLike] = None


class VehicleUpdateRequest(_Request):
    model: Optional[str] = None
    status: Optional[str] = None
    capacity: Optional[NumberLike] = None


class TripCreateRequest(_Request):
    origin: Optional[str] = None
    destination: Optional[str] = None
    driver_id: Optional[NumberLike] = Field(None, alias="driverId")
    vehicle_id: Optional[NumberLike] = Field(None, alias="vehicleId")
    distance_km: Optional[NumberLike] = Field(None, alias="distanceKm")


class TripEndRequest(_Request):
    distance_km: Optional[NumberLike] = Field(None, alias="distanceKm")
    end_time: Optional[str] = Field(None, alias="endTime")


class TripUpdateRequest(TripEndRequest):
    status: Optional[str] = None


# ── Responses ─────────────────────────────────────────────────────────


class _Response(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class DriverBrief(_Response):
    id: int
    name: str
    license: str
    phone: str
    status: DriverStatus
    assigned_vehicle_id: Optional[int] = None


class VehicleBrief(_Response):
    id: int
    model: str
    reg_number: str
    capacity: int
    status: VehicleStatus
    assigned_driver_id: Optional[int] = None


class TripBrief(_Response):
    id: int
    origin: str
    destination: str
    distance_km: Optional[float] = None
    driver_id: int
    vehicle_id: int
    status: TripStatus
    start_time: datetime
    end_time: Optional[datetime] = None


class DriverResponse(DriverBrief):
    assigned_vehicle: Optional[VehicleBrief] = None
    trips: list[TripBrief] = []


class VehicleResponse(VehicleBrief):
    assigned_driver: Optional[DriverBrief] = None
    trips: list[TripBrief] = []


class TripResponse(TripBrief):
    driver: DriverBrief
    vehicle: VehicleBrief


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorBody(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    error: ErrorBody
