"""Observability: logging, metrics, tracing"""

from .logging import setup_logging, get_logger, TraceContextFilter
from .metrics import GreeterMetrics
from .telemetry import Telemetry, get_or_init_telemetry
from .tracing import trace_request

__all__ = [
    "setup_logging",
    "get_logger",
    "TraceContextFilter",
    "GreeterMetrics",
    "Telemetry",
    "get_or_init_telemetry",
    "trace_request",
]
