"""Observability setup for OpenTelemetry, metrics, and structured logging."""

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
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

from .config import settings

SERVICE_NAME = "conexus-registrations"
SERVICE_VERSION = "1.0.0"

# Prometheus metrics
REGISTRY = CollectorRegistry()

# Request metrics
REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=REGISTRY
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=REGISTRY
)

# Business metrics
REGISTRATIONS_SUBMITTED = Counter(
    'registrations_submitted_total',
    'Total registrations submitted',
    registry=REGISTRY
)

REGISTRATION_STATUS_CHANGES = Counter(
    'registration_status_changes_total',
    'Registration status transitions',
    ['from_status', 'to_status'],
    registry=REGISTRY
)

ROOM_ASSIGNMENTS_REJECTED = Counter(
    'room_assignments_rejected_total',
    'Room assignments refused because the room was full',
    registry=REGISTRY
)

ROOM_OCCUPANCY = Gauge(
    'room_occupancy',
    'Approved registrations assigned to a room',
    ['room_id'],
    registry=REGISTRY
)

CARD_BINDINGS = Counter(
    'card_bindings_total',
    'Card binding attempts by result',
    ['result'],
    registry=REGISTRY
)

ATTENDANCE_SCANS = Counter(
    'attendance_scans_total',
    'Attendance scans by outcome',
    ['outcome'],
    registry=REGISTRY
)

NOTIFICATIONS = Counter(
    'notifications_total',
    'Notification sends by result',
    ['result'],
    registry=REGISTRY
)

ACTIVE_DISPATCH_RUNS = Gauge(
    'dispatch_runs_active',
    'Dispatch runs currently sending',
    registry=REGISTRY
)


def add_trace_context(logger, method_name, event_dict):
    """Add trace context to log events."""
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict['trace_id'] = format(ctx.trace_id, '032x')
        event_dict['span_id'] = format(ctx.span_id, '016x')
    return event_dict


def _install_context_record_factory():
    """Copy bound structlog context (request_id, ...) onto every stdlib LogRecord."""
    base_factory = logging.getLogRecordFactory()
    if getattr(base_factory, "_conexus_context", False):
        return

    def factory(*args, **kwargs):
        record = base_factory(*args, **kwargs)
        for key, value in structlog.contextvars.get_contextvars().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return record

    factory._conexus_context = True
    logging.setLogRecordFactory(factory)


def build_log_formatter() -> structlog.stdlib.ProcessorFormatter:
    """Formatter that renders stdlib records through the structlog pipeline."""
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.ExtraAdder(),
            add_trace_context,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
    )


def setup_structured_logging():
    """
    Configure structured logging with structlog.

    Modules log through ``logging.getLogger(__name__)``; the root handler
    renders those records with structlog so the request ID, trace context
    and ``extra`` fields end up in every line.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    _install_context_record_factory()

    root = logging.getLogger()
    if not any(isinstance(h.formatter, structlog.stdlib.ProcessorFormatter) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(build_log_formatter())
        root.addHandler(handler)
    root.setLevel(settings.log_level)


def _resource() -> Resource:
    return Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": SERVICE_VERSION,
        "environment": settings.environment,
    })


def setup_tracing(app_name: str = SERVICE_NAME):
    """Setup OpenTelemetry tracing."""
    trace.set_tracer_provider(TracerProvider(resource=_resource()))

    if settings.otlp_endpoint:
        otlp_exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint)
        trace.get_tracer_provider().add_span_processor(BatchSpanProcessor(otlp_exporter))

    return trace.get_tracer(app_name)


def setup_metrics(app_name: str = SERVICE_NAME):
    """Setup OpenTelemetry metrics."""
    if settings.otlp_endpoint:
        otlp_exporter = OTLPMetricExporter(endpoint=settings.otlp_endpoint)
        reader = PeriodicExportingMetricReader(exporter=otlp_exporter, export_interval_millis=60000)
        metrics.set_meter_provider(MeterProvider(resource=_resource(), metric_readers=[reader]))

    return metrics.get_meter(app_name)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine=None):
    """Instrument SQLAlchemy with OpenTelemetry."""
    if engine is not None:
        SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)
    else:
        SQLAlchemyInstrumentor().instrument()


class MetricsCollector:
    """Collector for business metrics."""

    @staticmethod
    def record_request(method: str, endpoint: str, status_code: int, duration_seconds: float):
        """Record a served HTTP request."""
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status_code=str(status_code)).inc()
        REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration_seconds)

    @staticmethod
    def record_registration_submitted():
        """Record a new registration."""
        REGISTRATIONS_SUBMITTED.inc()

    @staticmethod
    def record_status_change(from_status: str, to_status: str):
        """Record a registration status transition."""
        REGISTRATION_STATUS_CHANGES.labels(from_status=from_status, to_status=to_status).inc()

    @staticmethod
    def record_capacity_rejection():
        """Record a room assignment refused for capacity."""
        ROOM_ASSIGNMENTS_REJECTED.inc()

    @staticmethod
    def set_room_occupancy(room_id: str, occupancy: int):
        """Set the current occupancy of a room."""
        ROOM_OCCUPANCY.labels(room_id=room_id).set(occupancy)

    @staticmethod
    def record_card_binding(result: str):
        """Record a card binding attempt ("bound", "unbound" or "conflict")."""
        CARD_BINDINGS.labels(result=result).inc()

    @staticmethod
    def record_scan(outcome: str):
        """Record an attendance scan outcome."""
        ATTENDANCE_SCANS.labels(outcome=outcome).inc()

    @staticmethod
    def record_notification(result: str):
        """Record a notification send ("sent" or "failed")."""
        NOTIFICATIONS.labels(result=result).inc()

    @staticmethod
    def dispatch_run_started():
        ACTIVE_DISPATCH_RUNS.inc()

    @staticmethod
    def dispatch_run_finished():
        ACTIVE_DISPATCH_RUNS.dec()


def get_prometheus_metrics():
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)


# Global metrics collector instance
metrics_collector = MetricsCollector()
