"""
Prometheus metrics for the trainer scheduling service.

Service operation timings come from the @measure_operation decorator;
calendar lock outcomes, confirmations, conflict resolutions and swallowed
side-effect failures are counted by the code paths that produce them.
"""

from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry so tests can import the module repeatedly without collisions
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "trainbook_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "trainbook_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "trainbook_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

calendar_lock_total = Counter(
    "trainbook_calendar_lock_total",
    "Trainer calendar mutex acquire/release outcomes",
    ["action", "outcome"],  # acquire|release, success|blocked|error|redis_unavailable|not_owner
    registry=REGISTRY,
)

booking_transitions_total = Counter(
    "trainbook_booking_transitions_total",
    "Booking status transitions applied",
    ["from_status", "to_status"],
    registry=REGISTRY,
)

conflict_resolutions_total = Counter(
    "trainbook_conflict_resolutions_total",
    "Admin conflict resolutions applied",
    ["resolution"],
    registry=REGISTRY,
)

side_effect_failures_total = Counter(
    "trainbook_side_effect_failures_total",
    "Best-effort notification/activity-log writes that failed and were discarded",
    ["channel"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

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
            operation: Operation name (e.g., 'confirm_booking')
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
    def record_calendar_lock(action: str, outcome: str) -> None:
        calendar_lock_total.labels(action=action, outcome=outcome).inc()

    @staticmethod
    def record_booking_transition(from_status: str, to_status: str) -> None:
        booking_transitions_total.labels(from_status=from_status, to_status=to_status).inc()

    @staticmethod
    def record_conflict_resolution(resolution: str) -> None:
        conflict_resolutions_total.labels(resolution=resolution).inc()

    @staticmethod
    def record_side_effect_failure(channel: str) -> None:
        side_effect_failures_total.labels(channel=channel).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Generate metrics in Prometheus text exposition format."""
        return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)


# Global instance
prometheus_metrics = PrometheusMetrics()
