"""
Vehicle endpoints
=================

GET    /api/vehicles               -- list vehicles (driver + trip preview)
POST   /api/vehicles               -- register a vehicle
GET    /api/vehicles/{vehicle_id}  -- vehicle with driver and all trips
PUT    /api/vehicles/{vehicle_id}  -- partial update
DELETE /api/vehicles/{vehicle_id}  -- delete (guarded)
"""

from fastapi import APIRouter, Depends, Request, Response

from microfleet.api.dependencies import get_vehicle_registry
from microfleet.api.middleware import limiter
from microfleet.api.schemas import (
    ErrorResponse,
    VehicleCreateRequest,
    VehicleResponse,
    VehicleUpdateRequest,
)
from microfleet.config import settings
from microfleet.services.vehicles import VehicleRegistry

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.get("", response_model=list[VehicleResponse], summary="List vehicles")
@limiter.limit(settings.rate_limit)
async def list_vehicles(
    request: Request,
    registry: VehicleRegistry = Depends(get_vehicle_registry),
):
    return await registry.list()


@router.post(
    "",
    status_code=201,
    response_model=VehicleResponse,
    summary="Register a vehicle",
    responses={400: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def create_vehicle(
    request: Request,
    body: VehicleCreateRequest,
    registry: VehicleRegistry = Depends(get_vehicle_registry),
):
    return await registry.create(body.model, body.reg_number, body.capacity)


@router.get(
    "/{vehicle_id}",
    response_model=VehicleResponse,
    summary="Get a vehicle with its driver and trips",
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def get_vehicle(
    request: Request,
    vehicle_id: str,
    registry: VehicleRegistry = Depends(get_vehicle_registry),
):
    return await registry.get(vehicle_id)


@router.put(
    "/{vehicle_id}",
    response_model=VehicleResponse,
    summary="Update vehicle details",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def update_vehicle(
    request: Request,
    vehicle_id: str,
    body: VehicleUpdateRequest,
    registry: VehicleRegistry = Depends(get_vehicle_registry),
):
    return await registry.update(vehicle_id, body.model_dump(exclude_unset=True))


@router.delete(
    "/{vehicle_id}",
    status_code=204,
    response_class=Response,
    summary="Delete a vehicle",
    description="Refused with 409 while the vehicle has a driver or trips.",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def delete_vehicle(
    request: Request,
    vehicle_id: str,
    registry: VehicleRegistry = Depends(get_vehicle_registry),
):
    await registry.delete(vehicle_id)
    return Response(status_code=204)
