"""
Trip endpoints
==============

GET    /api/trips                   -- list trips with driver / vehicle
POST   /api/trips                   -- start a trip (ACTIVE)
GET    /api/trips/{trip_id}         -- one trip
POST   /api/trips/{trip_id}/end     -- ACTIVE -> ENDED
POST   /api/trips/{trip_id}/cancel  -- ACTIVE -> CANCELLED
PUT    /api/trips/{trip_id}         -- status update (ENDED | CANCELLED)
DELETE /api/trips/{trip_id}         -- delete
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from microfleet.api.dependencies import get_trip_manager
from microfleet.api.middleware import limiter
from microfleet.api.schemas import (
    ErrorResponse,
    TripCreateRequest,
    TripEndRequest,
    TripResponse,
    TripUpdateRequest,
)
from microfleet.config import settings
from microfleet.services.trips import TripLifecycleManager

router = APIRouter(prefix="/trips", tags=["trips"])


@router.get("", response_model=list[TripResponse], summary="List trips")
@limiter.limit(settings.rate_limit)
async def list_trips(
    request: Request,
    trips: TripLifecycleManager = Depends(get_trip_manager),
):
    return await trips.list()


@router.post(
    "",
    status_code=201,
    response_model=TripResponse,
    summary="Start a trip",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def create_trip(
    request: Request,
    body: TripCreateRequest,
    trips: TripLifecycleManager = Depends(get_trip_manager),
):
    return await trips.create(
        body.origin,
        body.destination,
        body.driver_id,
        body.vehicle_id,
        body.distance_km,
    )


@router.get(
    "/{trip_id}",
    response_model=TripResponse,
    summary="Get a trip",
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def get_trip(
    request: Request,
    trip_id: str,
    trips: TripLifecycleManager = Depends(get_trip_manager),
):
    return await trips.get(trip_id)


@router.post(
    "/{trip_id}/end",
    response_model=TripResponse,
    summary="End an active trip",
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
@limiter.limit(settings.rate_limit)
async def end_trip(
    request: Request,
    trip_id: str,
    body: Optional[TripEndRequest] = None,
    trips: TripLifecycleManager = Depends(get_trip_manager),
):
    body = body or TripEndRequest()
    return await trips.end(trip_id, body.distance_km, body.end_time)


@router.post(
    "/{trip_id}/cancel",
    response_model=TripResponse,
    summary="Cancel an active trip",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def cancel_trip(
    request: Request,
    trip_id: str,
    trips: TripLifecycleManager = Depends(get_trip_manager),
):
    return await trips.cancel(trip_id)


@router.put(
    "/{trip_id}",
    response_model=TripResponse,
    summary="Update trip status",
    description="Accepts status ENDED (with optional endTime / distanceKm) or CANCELLED.",
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
@limiter.limit(settings.rate_limit)
async def update_trip(
    request: Request,
    trip_id: str,
    body: TripUpdateRequest,
    trips: TripLifecycleManager = Depends(get_trip_manager),
):
    return await trips.update(trip_id, body.model_dump(exclude_unset=True))


@router.delete(
    "/{trip_id}",
    status_code=204,
    response_class=Response,
    summary="Delete a trip",
    responses={404: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit)
async def delete_trip(
    request: Request,
    trip_id: str,
    trips: TripLifecycleManager = Depends(get_trip_manager),
):
    await trips.delete(trip_id)
    return Response(status_code=204)
