"""
FastAPI application factory.

* Registers routes for drivers, vehicles, trips and health under ``/api``.
* Creates the schema on startup (when enabled) and disposes the engine on
  shutdown via lifespan events.
* Maps service errors to JSON error bodies and applies rate limiting.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from microfleet.api.errors import register_error_handlers
from microfleet.api.middleware import limiter, log_requests
from microfleet.api.routes import drivers, health, trips, vehicles
from microfleet.config import settings
from microfleet.infrastructure import database
from microfleet.infrastructure.redis_client import close_redis

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup; release pooled connections on shutdown."""
    if settings.create_schema_on_startup:
        await database.init_models()
        logger.info("Database schema ready")
    yield
    await database.engine.dispose()
    await close_redis()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Microfleet API",
        description=(
            "Tracks a fleet's drivers, vehicles and trips.  A vehicle is "
            "assigned to at most one driver at a time, and trips move "
            "irreversibly from ACTIVE to ENDED or CANCELLED."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_error_handlers(app)
    app.middleware("http")(log_requests)

    # Routers
    app.include_router(health.root_router)
    app.include_router(health.router, prefix="/api")
    app.include_router(drivers.router, prefix="/api")
    app.include_router(vehicles.router, prefix="/api")
    app.include_router(trips.router, prefix="/api")

    return app
