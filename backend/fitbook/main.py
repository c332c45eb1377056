# backend/fitbook/main.py
"""
FitBook API application.

Wires the v1 routers, error envelopes, Prometheus metrics and the startup
check that decides where availability exceptions are stored.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI, Response

from .api.dependencies.services import get_cache_service_singleton, get_exception_store_capability
from .core.config import is_running_tests, settings
from .core.constants import API_DESCRIPTION, API_TITLE, API_VERSION, BRAND_NAME
from .errors import register_error_handlers
from .middleware.prometheus_middleware import PrometheusMiddleware
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes.v1 import (
    availability as availability_v1,
    bookings as bookings_v1,
    health as health_v1,
    notifications as notifications_v1,
    services as services_v1,
    trainers as trainers_v1,
)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment}")
    if is_running_tests():
        logger.info("Running under pytest (test mode active)")

    # Check once; every request reuses the cached answer
    exception_store = "database" if get_exception_store_capability() else "local"
    cache_backend = get_cache_service_singleton().backend
    logger.info(
        "Availability exception store ready",
        extra={"exception_store": exception_store, "cache_backend": cache_backend},
    )

    yield

    logger.info(f"{BRAND_NAME} API shutting down...")


app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    lifespan=app_lifespan,
)

register_error_handlers(app)
app.add_middleware(PrometheusMiddleware)

api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(trainers_v1.router, prefix="/trainers")
api_v1.include_router(availability_v1.router, prefix="/availability")
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(notifications_v1.router, prefix="/notifications")
api_v1.include_router(services_v1.router)
api_v1.include_router(health_v1.router, prefix="/health")

app.include_router(api_v1)


@app.get("/health", include_in_schema=False)
def root_health() -> dict:
    """Lightweight liveness check that does not touch the database."""
    return {"status": "ok"}


@app.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    """Prometheus scrape endpoint; public like every Prometheus target."""
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
