"""Pytest configuration and fixtures"""

import os
from pathlib import Path

import pytest
from opentelemetry.sdk.metrics.export import InMemoryMetricReader
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from helloworld_otel.config import ServerConfig
from helloworld_otel.observability.telemetry import Telemetry, create_resource
from helloworld_otel.server import GreeterServer
from helloworld_otel.service import GreeterServicer

CONFIG_ENV_VARS = (
    "GREETER_HOST",
    "GREETER_PORT",
    "GREETER_GRACE_PERIOD",
    "GREETER_MAX_WORKERS",
    "GREETER_TELEMETRY_EXPORTER",
    "OTEL_SERVICE_NAME",
    "OTEL_EXPORTER_OTLP_ENDPOINT",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Environment without any configuration overrides"""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def span_exporter():
    """In-memory span exporter"""
    return InMemorySpanExporter()


@pytest.fixture
def metric_reader():
    """In-memory metric reader (cumulative temporality)"""
    return InMemoryMetricReader()


@pytest.fixture
def telemetry(span_exporter, metric_reader):
    """Telemetry handle exporting synchronously to memory"""
    handle = Telemetry(
        resource=create_resource("greeter-test"),
        span_processors=[SimpleSpanProcessor(span_exporter)],
        metric_readers=[metric_reader],
    )
    yield handle
    handle.shutdown()


@pytest.fixture
def collect_metrics(metric_reader):
    """Collect current metrics as a ``{name: Metric}`` dict"""
    def collect():
        collected = {}
        metrics_data = metric_reader.get_metrics_data()
        if metrics_data is None:
            return collected
        for resource_metrics in metrics_data.resource_metrics:
            for scope_metrics in resource_metrics.scope_metrics:
                for metric in scope_metrics.metrics:
                    collected[metric.name] = metric
        return collected

    return collect


@pytest.fixture
def servicer(telemetry):
    """Greeter servicer bound to the in-memory telemetry"""
    return GreeterServicer(telemetry)


@pytest.fixture
def server_config():
    """Loopback server config on an ephemeral port"""
    return ServerConfig(host="127.0.0.1", port=0, grace_period=1.0, max_workers=4)


@pytest.fixture
def running_server(servicer, server_config):
    """Started Greeter server, stopped after the test"""
    server = GreeterServer(servicer, server_config)
    server.start()
    yield server
    server.stop(grace=0)


@pytest.fixture
def subprocess_env(tmp_path):
    """Environment for child interpreters: package importable, no user config"""
    env = {name: value for name, value in os.environ.items() if name not in CONFIG_ENV_VARS}
    package_root = str(Path(__file__).resolve().parents[1])
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [package_root, env.get("PYTHONPATH")]))
    env["HOME"] = str(tmp_path)
    env["PYTHONUNBUFFERED"] = "1"
    env.pop("LOG_FORMAT", None)
    return env
