"""OpenTelemetry wiring for the dashboard API."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import FastAPI
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor, SpanExporter
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased
from opentelemetry.semconv.resource import ResourceAttributes
from sqlalchemy.ext.asyncio import AsyncEngine

from crm_dashboard import __version__
from crm_dashboard.config import AppSettings

logger = logging.getLogger(__name__)

INSTRUMENTATION_NAME = "crm_dashboard"
_METRIC_EXPORT_INTERVAL_MS = 10000


@dataclass(frozen=True)
class Telemetry:
    """Providers installed for one application instance."""

    tracer_provider: TracerProvider
    meter_provider: MeterProvider

    def tracer(self) -> trace.Tracer:
        return self.tracer_provider.get_tracer(INSTRUMENTATION_NAME, __version__)

    def meter(self) -> metrics.Meter:
        return self.meter_provider.get_meter(INSTRUMENTATION_NAME, __version__)


def setup_telemetry(
    app: FastAPI,
    settings: AppSettings,
    engine: AsyncEngine | None = None,
    *,
    span_exporter: SpanExporter | None = None,
    metric_reader: MetricReader | None = None,
) -> Telemetry | None:
    """Instrument ``app`` and ``engine`` when telemetry is enabled.

    Spans and metrics go to the OTLP collector at ``telemetry_otlp_endpoint``
    unless an explicit exporter or reader is given; those are flushed
    synchronously, which is what tests and local debugging want.
    """

    if not settings.telemetry_enabled:
        logger.info("Telemetry disabled via configuration")
        return None

    if getattr(app.state, "telemetry", None) is not None:
        return app.state.telemetry

    resource = Resource.create(
        {
            ResourceAttributes.SERVICE_NAME: settings.telemetry_service_name or settings.app_name,
            ResourceAttributes.SERVICE_VERSION: __version__,
        }
    )

    tracer_provider = TracerProvider(
        resource=resource,
        sampler=ParentBased(TraceIdRatioBased(settings.telemetry_sample_ratio)),
    )
    if span_exporter is None:
        tracer_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(**_otlp_options(settings))))
    else:
        tracer_provider.add_span_processor(SimpleSpanProcessor(span_exporter))

    if metric_reader is None:
        metric_reader = PeriodicExportingMetricReader(
            OTLPMetricExporter(**_otlp_options(settings)),
            export_interval_millis=_METRIC_EXPORT_INTERVAL_MS,
        )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])

    trace.set_tracer_provider(tracer_provider)
    metrics.set_meter_provider(meter_provider)

    FastAPIInstrumentor.instrument_app(app, tracer_provider=tracer_provider, meter_provider=meter_provider)
    if engine is not None:
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine, tracer_provider=tracer_provider)

    telemetry = Telemetry(tracer_provider=tracer_provider, meter_provider=meter_provider)
    app.state.telemetry = telemetry
    logger.info("Telemetry enabled for %s", settings.telemetry_service_name)
    return telemetry


def _otlp_options(settings: AppSettings) -> dict[str, object]:
    options: dict[str, object] = {"insecure": settings.telemetry_otlp_insecure}
    if settings.telemetry_otlp_endpoint:
        options["endpoint"] = settings.telemetry_otlp_endpoint
    return options


__all__ = ["INSTRUMENTATION_NAME", "Telemetry", "setup_telemetry"]
