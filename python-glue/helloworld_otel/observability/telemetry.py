"""OpenTelemetry SDK bootstrap

Builds the tracer provider, meter provider and propagator a process exports
telemetry through. A ``Telemetry`` handle can be owned explicitly (it is a
context manager that shuts the pipelines down on exit), or obtained through
``get_or_init_telemetry()``, which keeps exactly one handle per process and
flushes it at interpreter exit.
"""

import atexit
import signal
import threading
from typing import Iterable, Optional

from opentelemetry import metrics, propagate, trace
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.propagators.textmap import TextMapPropagator
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import (
    ConsoleMetricExporter,
    MetricReader,
    PeriodicExportingMetricReader,
)
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from ..config import Config, TelemetryConfig
from ..errors import TelemetryConfigError
from .logging import get_logger

logger = get_logger(__name__)

_telemetry: Optional["Telemetry"] = None
_telemetry_lock = threading.Lock()


def create_resource(service_name: str) -> Resource:
    """Resource with the SDK default attributes plus ``service.name``"""
    # Resource.create merges in the SDK defaults and OTEL_RESOURCE_ATTRIBUTES
    return Resource.create({SERVICE_NAME: service_name})


def create_pipelines(telemetry_config: TelemetryConfig):
    """Build the span processor and metric reader for the configured exporter"""
    exporter = telemetry_config.exporter.lower()

    if exporter == "otlp":
        span_exporter = OTLPSpanExporter(
            endpoint=telemetry_config.otlp_endpoint,
            insecure=telemetry_config.insecure,
        )
        metric_exporter = OTLPMetricExporter(
            endpoint=telemetry_config.otlp_endpoint,
            insecure=telemetry_config.insecure,
        )
    elif exporter == "console":
        span_exporter = ConsoleSpanExporter()
        metric_exporter = ConsoleMetricExporter()
    else:
        raise TelemetryConfigError(
            f"Unknown telemetry exporter '{telemetry_config.exporter}'. "
            f"Expected 'otlp' or 'console'"
        )

    span_processor = BatchSpanProcessor(span_exporter)
    metric_reader = PeriodicExportingMetricReader(
        metric_exporter,
        export_interval_millis=telemetry_config.metric_export_interval_millis,
    )
    return span_processor, metric_reader


class Telemetry:
    """Handle over one tracing pipeline and one metrics pipeline"""

    def __init__(
        self,
        resource: Resource,
        span_processors: Iterable[SpanProcessor] = (),
        metric_readers: Iterable[MetricReader] = (),
        propagator: Optional[TextMapPropagator] = None,
    ):
        self.resource = resource
        # Shutdown is owned by this handle, not by the SDK's own atexit hooks
        self.tracer_provider = TracerProvider(resource=resource, shutdown_on_exit=False)
        for processor in span_processors:
            self.tracer_provider.add_span_processor(processor)

        self.meter_provider = MeterProvider(
            resource=resource,
            metric_readers=list(metric_readers),
            shutdown_on_exit=False,
        )
        self.propagator = propagator or TraceContextTextMapPropagator()

        self._shutdown = False
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> "Telemetry":
        """Build OTLP (or console) pipelines; construction errors propagate"""
        telemetry_config = (config or Config()).telemetry
        span_processor, metric_reader = create_pipelines(telemetry_config)

        telemetry = cls(
            resource=create_resource(telemetry_config.service_name),
            span_processors=[span_processor],
            metric_readers=[metric_reader],
        )
        logger.info(
            f"Telemetry initialized: {telemetry_config.service_name} -> "
            f"{telemetry_config.exporter} ({telemetry_config.otlp_endpoint or 'default endpoint'})"
        )
        return telemetry

    def get_tracer(self, name: str, version: Optional[str] = None) -> trace.Tracer:
        """Get a named, versioned tracer"""
        return self.tracer_provider.get_tracer(name, version)

    def get_meter(self, name: str, version: Optional[str] = None) -> metrics.Meter:
        """Get a named, versioned meter"""
        return self.meter_provider.get_meter(name, version=version)

    def install_global(self) -> None:
        """Register providers and propagator as the process-wide defaults"""
        trace.set_tracer_provider(self.tracer_provider)
        metrics.set_meter_provider(self.meter_provider)
        propagate.set_global_textmap(self.propagator)

    @property
    def is_shutdown(self) -> bool:
        with self._lock:
            return self._shutdown

    def shutdown(self) -> None:
        """Flush and shut down both providers; later calls are no-ops"""
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True

        logger.info("Shutting down span exporter and processing remaining spans")
        self.tracer_provider.shutdown()
        self.meter_provider.shutdown()
        logger.info("Telemetry exporters shut down")

    def __enter__(self) -> "Telemetry":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
        return False


def _exit_on_signal(signum, frame):
    # Turns a signal into a normal interpreter exit so atexit callbacks run
    raise SystemExit(128 + signum)


def install_exit_on_sigterm() -> bool:
    """Make SIGTERM exit through atexit unless the process already handles it

    Returns True when the handler was installed. Signal handlers can only be
    set from the main thread; elsewhere this is a no-op.
    """
    if threading.current_thread() is not threading.main_thread():
        return False
    if signal.getsignal(signal.SIGTERM) is not signal.SIG_DFL:
        return False

    signal.signal(signal.SIGTERM, _exit_on_signal)
    return True


def get_or_init_telemetry(config: Optional[Config] = None) -> Telemetry:
    """Return the process-wide telemetry handle, building it on first use

    The handle is flushed at interpreter exit, including exit on SIGTERM.
    """
    global _telemetry

    with _telemetry_lock:
        if _telemetry is not None:
            return _telemetry

        telemetry = Telemetry.from_config(config)
        telemetry.install_global()
        atexit.register(telemetry.shutdown)
        install_exit_on_sigterm()
        _telemetry = telemetry
        return telemetry
