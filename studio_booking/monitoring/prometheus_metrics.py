"""
Prometheus metrics for the studio booking engine.

Service timings come from the @measure_operation decorator; the domain
counters track the outcomes an operator needs to reconcile by hand
(slot conflicts, ledger races, pending refunds).
"""

from typing import Optional, cast

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Custom registry so tests can import the module repeatedly
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "studio_booking_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

service_operations_total = Counter(
    "studio_booking_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "studio_booking_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

slot_conflicts_total = Counter(
    "studio_booking_slot_conflicts_total",
    "Slot claims rejected because the slot was taken",
    ["source"],  # precheck | unique_index
    registry=REGISTRY,
)

optimistic_lock_conflicts_total = Counter(
    "studio_booking_optimistic_lock_conflicts_total",
    "Reschedule writes that lost the reschedule_count race",
    registry=REGISTRY,
)

loyalty_consumption_races_total = Counter(
    "studio_booking_loyalty_consumption_races_total",
    "Ledger consumptions aborted because an entry was spent concurrently",
    registry=REGISTRY,
)

refunds_pending_total = Counter(
    "studio_booking_refunds_pending_total",
    "Cancellations recorded with a refund awaiting reconciliation",
    ["source"],  # processor | placeholder
    registry=REGISTRY,
)

notifications_total = Counter(
    "studio_booking_notifications_total",
    "Best-effort notifications by kind and outcome",
    ["kind", "status"],
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Thin static facade so callers never touch metric objects directly."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def inc_slot_conflict(source: str) -> None:
        slot_conflicts_total.labels(source=source).inc()

    @staticmethod
    def inc_optimistic_lock_conflict() -> None:
        optimistic_lock_conflicts_total.inc()

    @staticmethod
    def inc_loyalty_race() -> None:
        loyalty_consumption_races_total.inc()

    @staticmethod
    def inc_refund_pending(source: str) -> None:
        refunds_pending_total.labels(source=source).inc()

    @staticmethod
    def record_notification(kind: str, status: str) -> None:
        notifications_total.labels(kind=kind, status=status).inc()

    @staticmethod
    def get_metrics() -> bytes:
        """Generate Prometheus metrics in exposition format."""
        return cast(bytes, generate_latest(REGISTRY))

    @staticmethod
    def get_content_type() -> str:
        return cast(str, CONTENT_TYPE_LATEST)


prometheus_metrics = PrometheusMetrics()
