"""Tests for the Greeter servicer"""

import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from helloworld_otel.protocol import HelloReply, HelloRequest
from helloworld_otel.service import (
    INSTRUMENTATION_NAME,
    INSTRUMENTATION_VERSION,
    GreeterServicer,
    build_reply,
)


class TestReply:
    """Test reply construction"""

    @pytest.mark.parametrize("name", ["World", "", "tab\there", "line\nbreak\x00\x07", "héllo ✓"])
    def test_reply_prefixes_name(self, servicer, name):
        """Reply message is 'Hello ' followed by the name, verbatim"""
        reply = servicer.SayHello(HelloRequest(name=name))

        assert isinstance(reply, HelloReply)
        assert reply.message == "Hello " + name

    def test_build_reply(self):
        """build_reply uses a single space separator"""
        assert build_reply("there").message == "Hello there"


class TestTracing:
    """Test spans emitted per call"""

    def test_one_span_per_call(self, servicer, span_exporter):
        """Each call ends exactly one span named 'my span'"""
        servicer.SayHello(HelloRequest(name="World"))

        spans = span_exporter.get_finished_spans()
        assert len(spans) == 1
        assert spans[0].name == "my span"
        assert spans[0].attributes["http.method"] == "grpc"

    def test_span_instrumentation_scope(self, servicer, span_exporter):
        """Span comes from the named, versioned tracer"""
        servicer.SayHello(HelloRequest(name="World"))

        scope = span_exporter.get_finished_spans()[0].instrumentation_scope
        assert scope.name == INSTRUMENTATION_NAME
        assert scope.version == INSTRUMENTATION_VERSION

    def test_span_carries_service_resource(self, servicer, span_exporter):
        """Span resource holds the service name and SDK defaults"""
        servicer.SayHello(HelloRequest(name="World"))

        attributes = span_exporter.get_finished_spans()[0].resource.attributes
        assert attributes["service.name"] == "greeter-test"
        assert attributes["telemetry.sdk.language"] == "python"


class TestMetrics:
    """Test counter and gauge instruments"""

    def test_counter_adds_123_per_call(self, servicer, collect_metrics):
        """processed_jobs accumulates 123 for every call"""
        for _ in range(3):
            servicer.SayHello(HelloRequest(name="World"))

        metric = collect_metrics()["processed_jobs"]
        points = list(metric.data.data_points)

        assert len(points) == 1
        assert points[0].value == 369
        assert dict(points[0].attributes) == {"key": "value"}
        assert metric.description == "Processed jobs"
        assert metric.unit == "1"
        assert metric.data.is_monotonic

    def test_cpu_usage_gauge(self, servicer, collect_metrics):
        """cpu_usage reports 2.0 with the cpuKey attribute"""
        servicer.SayHello(HelloRequest(name="World"))

        metric = collect_metrics()["cpu_usage"]
        points = list(metric.data.data_points)

        assert len(points) == 1
        assert points[0].value == 2.0
        assert dict(points[0].attributes) == {"cpuKey": "value"}
        assert metric.description == "CPU Usage"
        assert metric.unit == "ms"

    def test_gauge_registered_before_first_call(self, servicer, collect_metrics):
        """The gauge is available as soon as the servicer exists"""
        assert "cpu_usage" in collect_metrics()

    def test_gauge_registered_once(self, servicer, collect_metrics):
        """Repeated calls do not add gauge callbacks"""
        for _ in range(5):
            servicer.SayHello(HelloRequest(name="World"))

        assert servicer.metrics.ensure_cpu_usage_gauge() is False
        points = list(collect_metrics()["cpu_usage"].data.data_points)
        assert len(points) == 1


class TestScenario:
    """End-to-end handler scenario"""

    def test_say_hello_world(self, servicer, span_exporter, collect_metrics, caplog):
        """Reply, span, counter delta and log line for one call"""
        caplog.set_level(logging.INFO, logger="helloworld_otel.service")

        reply = servicer.SayHello(HelloRequest(name="World"))

        assert reply.message == "Hello World"
        assert [span.name for span in span_exporter.get_finished_spans()] == ["my span"]
        assert list(collect_metrics()["processed_jobs"].data.data_points)[0].value == 123
        assert "say Hello!" in caplog.messages

    def test_concurrent_calls(self, servicer, span_exporter, collect_metrics):
        """Concurrent calls each emit their own telemetry"""
        names = [f"user-{i}" for i in range(200)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            replies = list(pool.map(lambda n: servicer.SayHello(HelloRequest(name=n)), names))

        assert [reply.message for reply in replies] == ["Hello " + n for n in names]
        assert len(span_exporter.get_finished_spans()) == 200
        assert list(collect_metrics()["processed_jobs"].data.data_points)[0].value == 123 * 200

    def test_telemetry_errors_propagate(self, telemetry, monkeypatch):
        """Errors raised by telemetry calls are not swallowed"""
        servicer = GreeterServicer(telemetry)

        class BrokenCounter:
            def add(self, amount, attributes=None):
                raise RuntimeError("exporter exploded")

        monkeypatch.setattr(servicer.metrics, "processed_jobs", BrokenCounter())

        with pytest.raises(RuntimeError, match="exporter exploded"):
            servicer.SayHello(HelloRequest(name="World"))
