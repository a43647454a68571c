"""Greeter service implementation"""

from typing import Optional

import grpc

from .observability import GreeterMetrics, Telemetry, get_logger, trace_request
from .protocol import HelloReply, HelloRequest

logger = get_logger(__name__)

INSTRUMENTATION_NAME = "instrumentation-library-name"
INSTRUMENTATION_VERSION = "1.0.0"

SPAN_NAME = "my span"
HTTP_METHOD = "http.method"


def build_reply(name: str) -> HelloReply:
    """Greeting for ``name``"""
    return HelloReply(message="Hello " + name)


class GreeterServicer:
    """Handles ``SayHello`` calls and records telemetry for each one

    Holds no per-call state, so the gRPC thread pool can invoke it
    concurrently.
    """

    def __init__(self, telemetry: Telemetry):
        self.telemetry = telemetry
        self.tracer = telemetry.get_tracer(INSTRUMENTATION_NAME, INSTRUMENTATION_VERSION)
        self.metrics = GreeterMetrics(
            telemetry.get_meter(INSTRUMENTATION_NAME, INSTRUMENTATION_VERSION)
        )
        self.metrics.ensure_cpu_usage_gauge()

    def SayHello(
        self,
        request: HelloRequest,
        context: Optional[grpc.ServicerContext] = None,
    ) -> HelloReply:
        reply = build_reply(request.name)

        with trace_request(self.tracer, SPAN_NAME) as span:
            span.set_attribute(HTTP_METHOD, "grpc")

        self.metrics.record_processed_job()
        self.metrics.ensure_cpu_usage_gauge()

        logger.info("say Hello!")

        return reply
