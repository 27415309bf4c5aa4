import logging

import structlog
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_fastapi_instrumentator import Instrumentator

from shared.config.settings import OTLP_ENDPOINT


def add_otel_ids(logger, log_method, event_dict):
    """Stamps the active span's trace and span ids onto the log event."""
    span = trace.get_current_span()
    if span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = trace.format_trace_id(ctx.trace_id)
        event_dict["span_id"] = trace.format_span_id(ctx.span_id)
    return event_dict


def configure_logging():
    # One JSON object per line on stdout
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_otel_ids,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.INFO),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_tracing(app: FastAPI, service_name: str):
    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))
    if OTLP_ENDPOINT:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=OTLP_ENDPOINT, insecure=True))
        )
    trace.set_tracer_provider(provider)

    # Server spans for inbound requests, client spans for product lookups and proxied calls
    FastAPIInstrumentor.instrument_app(app)
    HTTPXClientInstrumentor().instrument()


def configure_metrics(app: FastAPI):
    Instrumentator().instrument(app).expose(app, include_in_schema=False)


def setup_observability(app: FastAPI, service_name: str):
    """
    Wires JSON logging, tracing and the /metrics endpoint into an app.
    Called once per app at import time.
    """
    configure_logging()
    configure_tracing(app, service_name)
    configure_metrics(app)
