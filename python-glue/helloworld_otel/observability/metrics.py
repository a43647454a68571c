"""Greeter metric instruments"""

import threading
from typing import Iterable

from opentelemetry.metrics import CallbackOptions, Meter, Observation

PROCESSED_JOBS_INCREMENT = 123
PROCESSED_JOBS_ATTRIBUTES = {"key": "value"}

CPU_USAGE_VALUE = 2.0
CPU_USAGE_ATTRIBUTES = {"cpuKey": "value"}


def observe_cpu_usage(options: CallbackOptions) -> Iterable[Observation]:
    """Gauge callback, polled by the metric reader on each collection"""
    yield Observation(CPU_USAGE_VALUE, CPU_USAGE_ATTRIBUTES)


class GreeterMetrics:
    """Instruments recorded by the greeter service"""

    def __init__(self, meter: Meter):
        self.meter = meter

        self.processed_jobs = meter.create_counter(
            "processed_jobs",
            unit="1",
            description="Processed jobs",
        )

        self._cpu_usage_gauge = None
        self._gauge_lock = threading.Lock()

    def record_processed_job(self) -> None:
        """Count one handled call"""
        self.processed_jobs.add(PROCESSED_JOBS_INCREMENT, PROCESSED_JOBS_ATTRIBUTES)

    def ensure_cpu_usage_gauge(self) -> bool:
        """Register the ``cpu_usage`` gauge callback unless already registered

        Returns True only for the call that registered it.
        """
        with self._gauge_lock:
            if self._cpu_usage_gauge is not None:
                return False

            self._cpu_usage_gauge = self.meter.create_observable_gauge(
                "cpu_usage",
                callbacks=[observe_cpu_usage],
                unit="ms",
                description="CPU Usage",
            )
            return True
