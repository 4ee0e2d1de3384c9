import logging

import pytest

from slotbook.core.logging_config import LOG_FORMAT, configure_logging
from slotbook.monitoring.prometheus_metrics import REGISTRY, prometheus_metrics
from slotbook.services.base import BaseService


class TimedService(BaseService):
    @BaseService.measure_operation("run")
    def run(self, fail=False):
        if fail:
            raise RuntimeError("timed failure")
        return "ok"


def test_measure_operation_records_success_and_failure():
    service = TimedService()
    before = service.get_metrics().get("run", {}).get("count", 0)

    assert service.run() == "ok"
    with pytest.raises(RuntimeError):
        service.run(fail=True)

    metrics = service.get_metrics()["run"]
    assert metrics["count"] == before + 2
    assert 0 < metrics["success_rate"] < 1
    assert metrics["min_time"] <= metrics["avg_time"] <= metrics["max_time"]


def metric_value(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_measured_operations_reach_prometheus():
    success = {"service": "TimedService", "operation": "run", "status": "success"}
    before = metric_value("slotbook_service_operations_total", **success)
    conflicts_before = metric_value("slotbook_booking_conflicts_total", source="precheck")

    TimedService().run()
    prometheus_metrics.record_booking_conflict("precheck")

    assert metric_value("slotbook_service_operations_total", **success) == before + 1
    conflicts = metric_value("slotbook_booking_conflicts_total", source="precheck")
    assert conflicts == conflicts_before + 1
    assert b"slotbook_service_operation_duration_seconds" in prometheus_metrics.get_metrics()
    assert prometheus_metrics.get_content_type().startswith("text/plain")


def test_measured_method_keeps_its_name():
    assert TimedService.run.__name__ == "run"
    assert TimedService.run._operation_name == "run"


def test_configure_logging_accepts_level_names(monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    configure_logging("debug")
    configure_logging()

    assert calls[0] == {"level": logging.DEBUG, "format": LOG_FORMAT}
    assert calls[1]["level"] == logging.INFO
