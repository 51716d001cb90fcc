"""Automation run instruments."""

from __future__ import annotations

from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader

from app.core.telemetry import AutomationMetrics


def _collect(reader: InMemoryMetricReader) -> dict[str, list]:
    data = reader.get_metrics_data()
    return {
        metric.name: list(metric.data.data_points)
        for resource_metrics in data.resource_metrics
        for scope_metrics in resource_metrics.scope_metrics
        for metric in scope_metrics.metrics
    }


def test_runs_are_counted_by_status_with_durations():
    reader = InMemoryMetricReader()
    provider = MeterProvider(metric_readers=[reader])
    instruments = AutomationMetrics(provider.get_meter("test"))

    instruments.record("success", 0.25, insights=7, categorized=2)
    instruments.record("success", 0.75, insights=5)
    instruments.record("failure", 0.1)

    points = _collect(reader)
    runs = {point.attributes["automation.status"]: point.value for point in points["automation.runs"]}
    durations = {point.attributes["automation.status"]: point for point in points["automation.run.duration"]}

    assert runs == {"success": 2, "failure": 1}
    assert durations["success"].count == 2
    assert durations["success"].sum == 1.0
    assert points["automation.insights"][0].value == 12
    assert points["automation.categorized"][0].value == 2
    provider.shutdown()
