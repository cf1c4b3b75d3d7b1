import logging
import structlog
from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

# OpenTelemetry
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from shared.config import settings

# Health checks and metric scrapes stay out of traces and latency histograms
UNINSTRUMENTED_PATHS = ("/healthz", "/metrics")


def add_trace_ids(logger, log_method, event_dict):
    """Stamps the active span onto the log line so checkout logs join their trace."""
    span = trace.get_current_span()
    if span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = trace.format_trace_id(ctx.trace_id)
        event_dict["span_id"] = trace.format_span_id(ctx.span_id)
    return event_dict


def configure_logging(service_name: str):
    level = logging.getLevelName(settings.LOG_LEVEL)
    if not isinstance(level, int):
        level = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_trace_ids,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.bind_contextvars(service=service_name)


def configure_tracing(app: FastAPI, service_name: str):
    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))
    provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.OTLP_ENDPOINT, insecure=True))
    )
    trace.set_tracer_provider(provider)

    FastAPIInstrumentor.instrument_app(app, excluded_urls=",".join(UNINSTRUMENTED_PATHS))


def configure_metrics(app: FastAPI):
    # Request counts and latency per route, scraped from /metrics next to the storefront_* counters
    Instrumentator(excluded_handlers=list(UNINSTRUMENTED_PATHS)).instrument(app).expose(app)


def setup_observability(app: FastAPI, service_name: str):
    """
    Wires structured logs, and optionally tracing and Prometheus metrics,
    onto the storefront app. Tracing and metrics follow OTEL_TRACING_ENABLED
    and METRICS_ENABLED.
    """
    configure_logging(service_name)
    if settings.OTEL_TRACING_ENABLED:
        configure_tracing(app, service_name)
    if settings.METRICS_ENABLED:
        configure_metrics(app)
