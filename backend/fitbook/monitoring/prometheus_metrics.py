# backend/fitbook/monitoring/prometheus_metrics.py
"""
Prometheus collectors for FitBook, exposed on ``/metrics``.

Everything registers on a private registry so test processes that import
the app repeatedly never hit duplicate-collector errors.
"""

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

HTTP_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
SERVICE_BUCKETS = (0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5)

http_request_duration_seconds = Histogram(
    "fitbook_http_request_duration_seconds",
    "Wall time spent answering an HTTP request",
    ["method", "endpoint", "status_code"],
    buckets=HTTP_BUCKETS,
    registry=REGISTRY,
)

service_operation_duration_seconds = Histogram(
    "fitbook_service_operation_duration_seconds",
    "Wall time of a measured service method",
    ["service", "operation"],
    buckets=SERVICE_BUCKETS,
    registry=REGISTRY,
)

service_operations_total = Counter(
    "fitbook_service_operations_total",
    "Measured service method calls by outcome",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

service_errors_total = Counter(
    "fitbook_service_errors_total",
    "Measured service method failures by exception class",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

booking_transitions_total = Counter(
    "fitbook_booking_transitions_total",
    "Booking status changes that were committed",
    ["to_status"],
    registry=REGISTRY,
)

degraded_reads_total = Counter(
    "fitbook_degraded_reads_total",
    "Reads answered with an empty degraded result after a transient store failure",
    ["operation"],
    registry=REGISTRY,
)

exception_fallback_writes_total = Counter(
    "fitbook_exception_fallback_writes_total",
    "Availability exceptions persisted to the local cache instead of the database",
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Recording helpers so callers never touch label names directly."""

    @staticmethod
    def record_http_request(method: str, endpoint: str, status_code: int, duration: float) -> None:
        http_request_duration_seconds.labels(method, endpoint, str(status_code)).observe(duration)

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """Called by ``BaseService.measure_operation`` once per invocation."""
        service_operation_duration_seconds.labels(service, operation).observe(duration)
        service_operations_total.labels(service, operation, status).inc()
        if error_type:
            service_errors_total.labels(service, operation, error_type).inc()

    @staticmethod
    def record_booking_transition(to_status: str) -> None:
        booking_transitions_total.labels(to_status).inc()

    @staticmethod
    def record_degraded_read(operation: str) -> None:
        degraded_reads_total.labels(operation).inc()

    @staticmethod
    def record_exception_fallback_write() -> None:
        exception_fallback_writes_total.inc()

    @staticmethod
    def get_metrics() -> bytes:
        return generate_latest(REGISTRY)

    @staticmethod
    def get_content_type() -> str:
        return CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()
