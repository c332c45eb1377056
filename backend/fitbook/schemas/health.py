# backend/fitbook/schemas/health.py
"""Health check responses."""

from typing import Dict, Literal

from .base import StandardizedModel


class HealthResponse(StandardizedModel):
    status: Literal["healthy", "degraded"]
    service: str
    version: str
    environment: str
    timestamp: str
    database: bool
    exception_store: Literal["database", "local"]
    cache_backend: str
    cache_stats: Dict[str, int]
