"""
Prometheus metrics for the marketplace API.

Service timings come from ``@BaseService.measure_operation``; domain counters
track provider assignment outcomes and best-effort live pushes.
"""

from typing import Optional

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Histogram, generate_latest

# Custom registry so tests and multiple app instances never collide with defaults
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "marketplace_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

service_operations_total = Counter(
    "marketplace_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "marketplace_errors_total",
    "Total number of service errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

provider_assignments_total = Counter(
    "marketplace_provider_assignments_total",
    "Provider assignment attempts by reason and outcome",
    ["reason", "outcome"],  # reason: create|reject|cancel; outcome: assigned|no_provider|stale
    registry=REGISTRY,
)

live_push_total = Counter(
    "marketplace_live_push_total",
    "Live push attempts by event and outcome",
    ["event", "outcome"],  # outcome: sent|skipped|failed
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Records marketplace metrics and renders the exposition payload."""

    content_type = CONTENT_TYPE_LATEST

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'BookingService')
            operation: Operation/method name (e.g., 'create_booking')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def record_provider_assignment(reason: str, outcome: str) -> None:
        provider_assignments_total.labels(reason=reason, outcome=outcome).inc()

    @staticmethod
    def record_live_push(event: str, outcome: str) -> None:
        live_push_total.labels(event=event, outcome=outcome).inc()

    @staticmethod
    def get_metrics() -> bytes:
        return generate_latest(REGISTRY)


prometheus_metrics = PrometheusMetrics()
