"""
Driver endpoints
================

GET    /api/drivers                         -- list drivers (vehicle + trip preview)
POST   /api/drivers                         -- register a driver
GET    /api/drivers/{driver_id}             -- driver with vehicle and all trips
PUT    /api/drivers/{driver_id}             -- partial update
POST   /api/drivers/{driver_id}/assign-vehicle   -- link a vehicle
POST   /api/drivers/{driver_id}/unassign-vehicle -- clear the link
DELETE /api/drivers/{driver_id}             -- delete (guarded)
"""

from fastapi import APIRouter, Depends, Request, Response

from microfleet.api.dependencies import get_driver_registry
from microfleet.api.middleware import limiter
from microfleet.api.schemas import (
    AssignVehicleRequest,
    DriverCreateRequest,
    DriverResponse,
    DriverUpdateRequest,
    ErrorResponse,
)
from microfleet.config import settings
from microfleet.services.drivers import DriverRegistry

router = APIRouter(prefix="/drivers", tags=["drivers"])


@router.get("", response_model=list[DriverResponse], summary="List drivers")
@limiter.limit(settings.rate_limit)
async def list_drivers(
    request: Request,
    registry: DriverRegistry = Depends(get_driver_registry),
):
    return await registry.list()


@router.post(
    "",
    status_code=201,
    response_model=DriverResponse,
    summary="Register a driver",
    responses={400: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def create_driver(
    request: Request,
    body: DriverCreateRequest,
    registry: DriverRegistry = Depends(get_driver_registry),
):
    return await registry.create(body.name, body.license, body.phone)


@router.get(
    "/{driver_id}",
    response_model=DriverResponse,
    summary="Get a driver with its vehicle and trips",
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def get_driver(
    request: Request,
    driver_id: str,
    registry: DriverRegistry = Depends(get_driver_registry),
):
    return await registry.get(driver_id)


@router.put(
    "/{driver_id}",
    response_model=DriverResponse,
    summary="Update driver details",
    description="Only the fields present in the body are changed.",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def update_driver(
    request: Request,
    driver_id: str,
    body: DriverUpdateRequest,
    registry: DriverRegistry = Depends(get_driver_registry),
):
    return await registry.update(driver_id, body.model_dump(exclude_unset=True))


@router.post(
    "/{driver_id}/assign-vehicle",
    response_model=DriverResponse,
    summary="Assign a vehicle to a driver",
    description=(
        "Fails with 409 if the vehicle already belongs to a driver. "
        "Both sides of the link are written in one transaction."
    ),
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
@limiter.limit(settings.rate_limit)
async def assign_vehicle(
    request: Request,
    driver_id: str,
    body: AssignVehicleRequest,
    registry: DriverRegistry = Depends(get_driver_registry),
):
    return await registry.assign_vehicle(driver_id, body.vehicle_id)


@router.post(
    "/{driver_id}/unassign-vehicle",
    response_model=DriverResponse,
    summary="Remove a driver's vehicle assignment",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def unassign_vehicle(
    request: Request,
    driver_id: str,
    registry: DriverRegistry = Depends(get_driver_registry),
):
    return await registry.unassign_vehicle(driver_id)


@router.delete(
    "/{driver_id}",
    status_code=204,
    response_class=Response,
    summary="Delete a driver",
    description="Refused with 409 while the driver holds a vehicle or has trips.",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def delete_driver(
    request: Request,
    driver_id: str,
    registry: DriverRegistry = Depends(get_driver_registry),
):
    await registry.delete(driver_id)
    return Response(status_code=204)
