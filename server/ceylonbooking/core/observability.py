"""Tracing, Prometheus metrics and structured logging for the booking API."""

import logging

import structlog
from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

from .config import settings

SERVICE_NAME = "ceylonbooking-api"
SERVICE_VERSION = "1.0.0"

# Own registry so test runs and reloads never collide with the process default
REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    "ceylonbooking_http_requests_total",
    "HTTP requests by method, path and status",
    ["method", "endpoint", "status_code"],
    registry=REGISTRY,
)
REQUEST_DURATION = Histogram(
    "ceylonbooking_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
    registry=REGISTRY,
)

AVAILABILITY_CHECKS = Counter(
    "ceylonbooking_availability_checks_total",
    "Availability checks by outcome (available / unavailable)",
    ["outcome"],
    registry=REGISTRY,
)
BOOKINGS_CREATED = Counter(
    "ceylonbooking_bookings_created_total",
    "Bookings recorded in the ledger, by charged currency",
    ["currency"],
    registry=REGISTRY,
)
UNITS_BOOKED = Counter(
    "ceylonbooking_units_booked_total",
    "Capacity units consumed by recorded bookings",
    registry=REGISTRY,
)
BOOKINGS_REJECTED = Counter(
    "ceylonbooking_bookings_rejected_total",
    "Booking attempts not recorded, by reason",
    ["reason"],
    registry=REGISTRY,
)
LEDGER_READS_DENIED = Counter(
    "ceylonbooking_ledger_reads_denied_total",
    "Availability checks that failed closed because the ledger refused the read",
    registry=REGISTRY,
)
ADMISSION_WAIT = Histogram(
    "ceylonbooking_admission_wait_seconds",
    "Time a booking waited for its conflict key before re-checking capacity",
    buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
    registry=REGISTRY,
)

tracer = trace.get_tracer("ceylonbooking")


def _add_trace_context(logger, method_name, event_dict):
    """Stamp log events with the active span so logs and traces join up."""
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def setup_structured_logging():
    """Console rendering in development, one JSON object per line elsewhere."""
    renderer = structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, settings.log_level)),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _resource(service_name: str) -> Resource:
    return Resource.create({
        "service.name": service_name,
        "service.version": SERVICE_VERSION,
        "deployment.environment": settings.environment,
    })


def setup_tracing(service_name: str = SERVICE_NAME):
    """Install the tracer provider; spans are exported only when an OTLP endpoint is set."""
    provider = TracerProvider(resource=_resource(service_name))
    if settings.otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint)))
    trace.set_tracer_provider(provider)
    return trace.get_tracer(__name__)


def setup_metrics(service_name: str = SERVICE_NAME):
    """Push OpenTelemetry metrics to the collector; Prometheus scraping works regardless."""
    if settings.otlp_endpoint:
        reader = PeriodicExportingMetricReader(
            exporter=OTLPMetricExporter(endpoint=settings.otlp_endpoint),
            export_interval_millis=60000,
        )
        metrics.set_meter_provider(MeterProvider(resource=_resource(service_name), metric_readers=[reader]))
    return metrics.get_meter(__name__)


def instrument_fastapi(app):
    FastAPIInstrumentor.instrument_app(app, excluded_urls="health,ready,metrics")


def instrument_sqlalchemy():
    SQLAlchemyInstrumentor().instrument()


class MetricsCollector:
    """Facade the services and middleware record through."""

    @staticmethod
    def record_request(method: str, endpoint: str, status_code: int, duration: float):
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)

    @staticmethod
    def record_availability_check(available: bool):
        AVAILABILITY_CHECKS.labels(outcome="available" if available else "unavailable").inc()

    @staticmethod
    def record_booking_created(currency: str, quantity: int):
        BOOKINGS_CREATED.labels(currency=currency).inc()
        UNITS_BOOKED.inc(quantity)

    @staticmethod
    def record_booking_rejected(reason: str):
        BOOKINGS_REJECTED.labels(reason=reason).inc()

    @staticmethod
    def record_ledger_read_denied():
        LEDGER_READS_DENIED.inc()

    @staticmethod
    def record_admission_wait(seconds: float):
        ADMISSION_WAIT.observe(seconds)


def get_prometheus_metrics() -> bytes:
    return generate_latest(REGISTRY)


metrics_collector = MetricsCollector()
