"""Logging setup with trace correlation"""

import logging
import json
import os
import sys
from typing import Optional, Dict, Any
from datetime import datetime, timezone

from opentelemetry import trace

NOT_AVAILABLE = "N/A"

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(trace_id)s] - %(message)s"


def get_trace_ids() -> Dict[str, str]:
    """Get hex trace and span IDs of the current span"""
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return {"trace_id": NOT_AVAILABLE, "span_id": NOT_AVAILABLE}
    return {
        "trace_id": trace.format_trace_id(span_context.trace_id),
        "span_id": trace.format_span_id(span_context.span_id),
    }


class TraceContextFilter(logging.Filter):
    """Filter to add trace and span IDs to log records"""

    def filter(self, record: logging.LogRecord) -> bool:
        ids = get_trace_ids()
        record.trace_id = ids["trace_id"]
        record.span_id = ids["span_id"]
        return True


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging with trace IDs"""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        trace_id = getattr(record, "trace_id", NOT_AVAILABLE)
        if trace_id != NOT_AVAILABLE:
            log_data["trace_id"] = trace_id
            log_data["span_id"] = getattr(record, "span_id", NOT_AVAILABLE)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Setup logging to standard error"""
    # Get log level from environment or use default
    log_level_str = os.getenv("LOG_LEVEL", level).upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    handlers = []

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    if json_output or os.getenv("LOG_FORMAT", "").lower() == "json":
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    handlers.append(console_handler)

    # File handler if specified
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JSONFormatter())
        handlers.append(file_handler)

    for handler in handlers:
        handler.addFilter(TraceContextFilter())

    # Configure root logger
    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True,
    )

    # grpc's own logging is noisy at INFO
    logging.getLogger("grpc").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance"""
    return logging.getLogger(name)
