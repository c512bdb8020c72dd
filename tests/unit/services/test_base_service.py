import pytest

from studio_booking.core.exceptions import ValidationException
from studio_booking.monitoring.prometheus_metrics import REGISTRY
from studio_booking.services.base import BaseService


class TimedService(BaseService):
    @BaseService.measure_operation("timed_ok")
    def ok(self) -> str:
        return "done"

    @BaseService.measure_operation("timed_fail")
    def fail(self) -> None:
        raise ValidationException("bad input")


def _sample(name: str, **labels: str) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestMeasureOperation:
    def test_success_is_counted_in_prometheus(self, db) -> None:
        labels = {"service": "TimedService", "operation": "timed_ok", "status": "success"}
        before = _sample("studio_booking_service_operations_total", **labels)

        assert TimedService(db).ok() == "done"

        assert _sample("studio_booking_service_operations_total", **labels) == before + 1

    def test_failure_is_counted_with_error_type(self, db) -> None:
        error_labels = {
            "service": "TimedService",
            "operation": "timed_fail",
            "error_type": "ValidationException",
        }
        before = _sample("studio_booking_errors_total", **error_labels)

        with pytest.raises(ValidationException):
            TimedService(db).fail()

        assert _sample("studio_booking_errors_total", **error_labels) == before + 1

    def test_no_in_process_timing_store(self) -> None:
        assert not hasattr(BaseService, "get_metrics")
        assert not hasattr(BaseService, "_class_metrics")
