"""OpenTelemetry setup for the API and the automation run instruments."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.metrics import Meter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.semconv.resource import ResourceAttributes
from sqlalchemy.ext.asyncio import AsyncEngine

from app.config import AppSettings

logger = logging.getLogger(__name__)

SERVICE_NAMESPACE = "finance-cloud"
_METRIC_EXPORT_INTERVAL_MS = 30000
_TELEMETRY_INITIALISED = False


class AutomationMetrics:
    """Counters and durations recorded once per automation run."""

    def __init__(self, meter: Meter):
        self.runs = meter.create_counter(
            "automation.runs",
            unit="1",
            description="Automation runs by final status",
        )
        self.duration = meter.create_histogram(
            "automation.run.duration",
            unit="s",
            description="Wall time of one user's automation run",
        )
        self.insights = meter.create_counter(
            "automation.insights",
            unit="1",
            description="Insights stored by successful runs",
        )
        self.categorized = meter.create_counter(
            "automation.categorized",
            unit="1",
            description="Transactions labelled by auto-categorization",
        )

    def record(self, status: str, duration_s: float, *, insights: int = 0, categorized: int = 0) -> None:
        attributes = {"automation.status": status}
        self.runs.add(1, attributes)
        self.duration.record(duration_s, attributes)
        if insights:
            self.insights.add(insights)
        if categorized:
            self.categorized.add(categorized)


# Bound to the global meter provider; exports once setup_telemetry installs one.
automation_metrics = AutomationMetrics(metrics.get_meter("finance_cloud.automation"))


def setup_telemetry(app: FastAPI, settings: AppSettings, engine: AsyncEngine | None = None) -> None:
    """Export traces and metrics over OTLP and instrument the API, quote lookups and the engine.

    Only the first call per process has an effect.
    """

    global _TELEMETRY_INITIALISED  # noqa: PLW0603 - single initialisation guard

    if _TELEMETRY_INITIALISED:
        return
    if not settings.telemetry_enabled:
        logger.info("Telemetry disabled via configuration")
        return

    resource = Resource.create(
        {
            ResourceAttributes.SERVICE_NAME: settings.telemetry_service_name or settings.app_name,
            ResourceAttributes.SERVICE_NAMESPACE: SERVICE_NAMESPACE,
        }
    )
    exporter_options: dict[str, Any] = {"insecure": settings.telemetry_otlp_insecure}
    if settings.telemetry_otlp_endpoint:
        exporter_options["endpoint"] = settings.telemetry_otlp_endpoint

    tracer_provider = TracerProvider(
        resource=resource,
        sampler=ParentBased(TraceIdRatioBased(settings.telemetry_sample_ratio)),
    )
    tracer_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(**exporter_options)))
    trace.set_tracer_provider(tracer_provider)

    meter_provider = MeterProvider(
        resource=resource,
        metric_readers=[
            PeriodicExportingMetricReader(
                OTLPMetricExporter(**exporter_options),
                export_interval_millis=_METRIC_EXPORT_INTERVAL_MS,
            )
        ],
    )
    metrics.set_meter_provider(meter_provider)

    FastAPIInstrumentor.instrument_app(app, tracer_provider=tracer_provider, meter_provider=meter_provider)
    HTTPXClientInstrumentor().instrument(tracer_provider=tracer_provider)
    if engine is not None:
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine, tracer_provider=tracer_provider)
    # trace and span ids on every log record
    LoggingInstrumentor().instrument(set_logging_format=False)

    _TELEMETRY_INITIALISED = True
    logger.info(
        "Telemetry exporting to %s (sample ratio %.2f)",
        settings.telemetry_otlp_endpoint or "the default OTLP endpoint",
        settings.telemetry_sample_ratio,
    )


__all__ = ["AutomationMetrics", "automation_metrics", "setup_telemetry"]
