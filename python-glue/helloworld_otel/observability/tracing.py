"""Span helpers"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from opentelemetry import trace


@contextmanager
def trace_request(
    tracer: trace.Tracer,
    operation_name: str,
    attributes: Optional[Dict[str, Any]] = None,
) -> Iterator[trace.Span]:
    """Start a span, make it current for the block and end it on exit"""
    span = tracer.start_span(operation_name)

    try:
        with trace.use_span(
            span,
            end_on_exit=False,
            record_exception=False,
            set_status_on_exception=False,
        ):
            if attributes:
                for key, value in attributes.items():
                    span.set_attribute(key, value)
            yield span
    except Exception as e:
        span.record_exception(e)
        span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
        raise
    finally:
        span.end()
