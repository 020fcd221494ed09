"""OpenTelemetry export (optional)

Nothing here runs unless OTEL_EXPORTER_OTLP_ENDPOINT is set. Without it the
``tracer`` below is the API's no-op tracer, so callers can create spans
unconditionally.
"""
import logging

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from stripe_cli_demo import __version__
from stripe_cli_demo.core.config import settings

logger = logging.getLogger(__name__)

# Spans around webhook verification and event logging
tracer = trace.get_tracer("stripe_cli_demo.webhooks", __version__)

METRIC_EXPORT_INTERVAL_MS = 5000


def otel_enabled() -> bool:
    return bool(settings.OTEL_EXPORTER_OTLP_ENDPOINT)


def _resource() -> Resource:
    return Resource.create({
        "service.name": settings.OTEL_SERVICE_NAME,
        "service.version": __version__,
        "deployment.environment": settings.OTEL_ENVIRONMENT,
    })


def _exporter_options() -> dict:
    # `stripe listen` setups run a local collector without TLS
    return {"endpoint": settings.OTEL_EXPORTER_OTLP_ENDPOINT, "insecure": True}


def configure_tracing_and_metrics(resource: Resource) -> None:
    trace_provider = TracerProvider(resource=resource)
    trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(**_exporter_options())))
    trace.set_tracer_provider(trace_provider)

    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(**_exporter_options()),
        export_interval_millis=METRIC_EXPORT_INTERVAL_MS,
    )
    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=[reader]))


def configure_log_export(resource: Resource) -> None:
    """Ship records from the root logger over OTLP as well"""
    from opentelemetry._logs import set_logger_provider
    from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
    from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
    from opentelemetry.sdk._logs.export import BatchLogRecordProcessor

    provider = LoggerProvider(resource=resource)
    provider.add_log_record_processor(BatchLogRecordProcessor(OTLPLogExporter(**_exporter_options())))
    set_logger_provider(provider)
    logging.getLogger().addHandler(LoggingHandler(level=logging.NOTSET, logger_provider=provider))


def initialize_otel() -> bool:
    """Set up OTLP export of traces, metrics and logs

    Returns True when traces and metrics are exported. A failure to set up
    log export is logged and does not disable the rest.
    """
    if not otel_enabled():
        logger.info("OpenTelemetry not configured - running without distributed tracing")
        return False

    resource = _resource()
    try:
        configure_tracing_and_metrics(resource)
    except Exception as e:
        logger.warning(f"Failed to initialize OpenTelemetry: {e}")
        return False

    try:
        configure_log_export(resource)
    except Exception as e:
        logger.warning(f"OpenTelemetry traces/metrics enabled but log export failed: {e}")

    try:
        RedisInstrumentor().instrument()
    except Exception as e:
        logger.warning(f"Failed to instrument Redis: {e}")

    logger.info(f"OpenTelemetry exporting to {settings.OTEL_EXPORTER_OTLP_ENDPOINT}")
    return True


def instrument_app(app) -> None:
    """Request spans for every route (the webhook span nests inside)"""
    if otel_enabled():
        FastAPIInstrumentor.instrument_app(app)
