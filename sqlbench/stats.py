"""Timing and allocation statistics for benchmark scenarios.

The runner only talks to :class:`BenchmarkEngine`; :class:`SamplingEngine`
is the default implementation and can be swapped for any object with the
same ``run(name, fn)`` method.
"""

import dataclasses
import gc
import logging
import math
import statistics
import time
import tracemalloc
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

import psutil

from sqlbench.errors import ScenarioExecutionError

_log = logging.getLogger("sqlbench.stats")

# Half-width of a 99.9% confidence interval, in standard errors.
Z_999 = statistics.NormalDist().inv_cdf(0.9995)


def pctl(sorted_values: Sequence[float], pct: float) -> float:
    if not sorted_values:
        return 0.0
    if pct <= 0:
        return float(sorted_values[0])
    if pct >= 100:
        return float(sorted_values[-1])
    idx = int(round((pct / 100.0) * (len(sorted_values) - 1)))
    idx = max(0, min(len(sorted_values) - 1, idx))
    return float(sorted_values[idx])


@dataclasses.dataclass(frozen=True)
class Measurement:
    scenario: str
    samples: int
    mean_ns: float
    stddev_ns: float
    error_ns: float
    median_ns: float
    p95_ns: float
    min_ns: float
    max_ns: float
    allocated_bytes: float = 0.0
    rss_delta_bytes: int = 0
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @classmethod
    def failure(cls, scenario: str, error: str) -> "Measurement":
        return cls(scenario, 0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, error=error)

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


def summarize(scenario: str, samples_ns: Sequence[int], allocated_bytes: float = 0.0, rss_delta_bytes: int = 0) -> Measurement:
    """Reduce raw per-call timings to a :class:`Measurement`."""
    if not samples_ns:
        raise ValueError(f"no samples recorded for {scenario}")
    ordered = sorted(samples_ns)
    n = len(ordered)
    stddev = statistics.stdev(ordered) if n > 1 else 0.0
    return Measurement(
        scenario=scenario,
        samples=n,
        mean_ns=statistics.fmean(ordered),
        stddev_ns=stddev,
        error_ns=Z_999 * stddev / math.sqrt(n),
        median_ns=float(statistics.median(ordered)),
        p95_ns=pctl(ordered, 95),
        min_ns=float(ordered[0]),
        max_ns=float(ordered[-1]),
        allocated_bytes=allocated_bytes,
        rss_delta_bytes=rss_delta_bytes,
    )


class BenchmarkEngine(Protocol):
    def run(self, name: str, fn: Callable[[], Any]) -> Measurement:
        ...


class SamplingEngine:
    """Warm up, time every call, then measure allocations in a separate pass.

    Allocation is the peak of traced Python heap above the starting point
    during one call, averaged over ``memory_iterations`` calls. Tracing is
    never active while calls are being timed.
    """

    def __init__(self, warmup: int = 3, iterations: int = 20, memory_iterations: int = 1, process: Optional[psutil.Process] = None) -> None:
        if iterations < 1:
            raise ValueError("iterations must be at least 1")
        self.warmup = max(0, warmup)
        self.iterations = iterations
        self.memory_iterations = max(0, memory_iterations)
        self._process = process or psutil.Process()

    def run(self, name: str, fn: Callable[[], Any]) -> Measurement:
        try:
            for _ in range(self.warmup):
                fn()
            samples_ns, rss_delta = self._time(fn)
            allocated = self._allocations(fn)
        except ScenarioExecutionError as exc:
            _log.error("%s", exc, exc_info=exc)
            return Measurement.failure(name, str(exc))
        return summarize(name, samples_ns, allocated, rss_delta)

    def _time(self, fn: Callable[[], Any]):
        samples: List[int] = []
        gc.collect()
        rss_before = self._process.memory_info().rss
        for _ in range(self.iterations):
            start = time.perf_counter_ns()
            fn()
            samples.append(time.perf_counter_ns() - start)
        rss_delta = self._process.memory_info().rss - rss_before
        return samples, rss_delta

    def _allocations(self, fn: Callable[[], Any]) -> float:
        if not self.memory_iterations:
            return 0.0
        started_here = not tracemalloc.is_tracing()
        if started_here:
            tracemalloc.start()
        try:
            total = 0
            for _ in range(self.memory_iterations):
                baseline, _ = tracemalloc.get_traced_memory()
                tracemalloc.reset_peak()
                fn()
                _, peak = tracemalloc.get_traced_memory()
                total += max(0, peak - baseline)
        finally:
            if started_here:
                tracemalloc.stop()
        return total / self.memory_iterations
