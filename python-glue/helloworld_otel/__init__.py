"""Greeter gRPC service instrumented with OpenTelemetry traces and metrics"""

__version__ = "0.1.0"
