# backend/fitbook/routes/v1/health.py
"""
Health check endpoint for monitoring and load balancer checks.
"""

from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...api.dependencies import get_db
from ...api.dependencies.services import get_cache_service_dep, get_exception_store_available
from ...core.config import settings
from ...core.constants import API_VERSION, BRAND_NAME
from ...schemas.health import HealthResponse
from ...services.cache_service import CacheService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _database_reachable(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as exc:
        logger.warning("Health check database check failed", extra={"error": str(exc)})
        db.rollback()
        return False


@router.get("", response_model=HealthResponse)
def health_check(
    response: Response,
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service_dep),
    exception_store_available: bool = Depends(get_exception_store_available),
) -> HealthResponse:
    """
    Health check endpoint.

    Reports degraded (503) when the database cannot be reached; reads then
    come back flagged as degraded and writes fail with a retryable error.
    """
    database_ok = _database_reachable(db)
    if not database_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        service=f"{BRAND_NAME.lower()}-api",
        version=API_VERSION,
        environment=settings.environment,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        database=database_ok,
        exception_store="database" if exception_store_available else "local",
        cache_backend=cache.backend,
        cache_stats=cache.get_stats(),
    )
