"""
Service endpoints
=================

GET /           -- banner
GET /api/health -- simple health check
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from microfleet.api.schemas import HealthResponse

router = APIRouter(tags=["service"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse()


root_router = APIRouter(tags=["service"])


@root_router.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def banner():
    return "Microfleet API is running!"
