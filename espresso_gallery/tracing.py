"""OpenTelemetry tracing configuration."""

import logging
from typing import Any

from opentelemetry import trace

from espresso_gallery.config import settings

logger = logging.getLogger(__name__)


def setup_tracing(app: Any) -> None:
    """Initialize OpenTelemetry tracing with an OTLP/HTTP exporter.

    Args:
        app: FastAPI application instance
    """
    if not settings.otel_enabled:
        logger.info("OpenTelemetry tracing disabled (set OTEL_ENABLED=true to enable)")
        return

    try:
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        from espresso_gallery.db.engine import engine

        resource = Resource.create(
            {
                "service.name": settings.otel_service_name,
                "deployment.environment": "development" if settings.dev_mode else "production",
            }
        )
        provider = TracerProvider(resource=resource)
        provider.add_span_processor(
            BatchSpanProcessor(
                OTLPSpanExporter(endpoint=f"{settings.otel_exporter_endpoint}/v1/traces")
            )
        )
        trace.set_tracer_provider(provider)

        FastAPIInstrumentor.instrument_app(app, excluded_urls="health,api/health")
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)

        logger.info(
            f"OpenTelemetry tracing enabled, exporting to {settings.otel_exporter_endpoint}"
        )
    except Exception as e:
        logger.error(f"Failed to initialize OpenTelemetry tracing: {e}")


def get_current_trace_id() -> str | None:
    """Get the current trace ID as a hex string, if a span is recording."""
    span = trace.get_current_span()
    if not span.is_recording():
        return None
    return format(span.get_span_context().trace_id, "032x")
