import math

import pytest

from sqlbench.errors import ScenarioExecutionError
from sqlbench.stats import Z_999, Measurement, SamplingEngine, pctl, summarize


def test_pctl_edges():
    values = [1.0, 2.0, 3.0, 4.0, 5.0]
    assert pctl(values, 0) == 1.0
    assert pctl(values, 50) == 3.0
    assert pctl(values, 100) == 5.0
    assert pctl([], 95) == 0.0


def test_summarize():
    m = summarize("sample", [400, 100, 300, 200], allocated_bytes=64.0, rss_delta_bytes=4096)
    assert m.scenario == "sample"
    assert m.samples == 4
    assert m.mean_ns == 250.0
    assert m.median_ns == 250.0
    assert m.min_ns == 100.0
    assert m.max_ns == 400.0
    assert m.stddev_ns == pytest.approx(129.0994, rel=1e-4)
    assert m.error_ns == pytest.approx(Z_999 * m.stddev_ns / 2)
    assert m.allocated_bytes == 64.0
    assert m.rss_delta_bytes == 4096
    assert not m.failed


def test_summarize_single_sample_has_no_spread():
    m = summarize("one", [42])
    assert m.stddev_ns == 0.0
    assert m.error_ns == 0.0


def test_summarize_requires_samples():
    with pytest.raises(ValueError):
        summarize("none", [])


def test_z_value():
    assert Z_999 == pytest.approx(3.2905, rel=1e-4)


def test_failure_measurement():
    m = Measurement.failure("broken", "boom")
    assert m.failed
    assert m.samples == 0
    assert m.to_dict()["error"] == "boom"


def test_engine_call_counts():
    calls = []
    engine = SamplingEngine(warmup=2, iterations=5, memory_iterations=3)

    m = engine.run("count", lambda: calls.append(1))

    assert len(calls) == 2 + 5 + 3
    assert m.samples == 5
    assert all(value >= 0 for value in (m.mean_ns, m.min_ns, m.p95_ns))
    assert m.min_ns <= m.median_ns <= m.max_ns


def test_engine_measures_allocations():
    engine = SamplingEngine(warmup=0, iterations=1, memory_iterations=1)
    m = engine.run("alloc", lambda: bytearray(1_000_000))
    assert m.allocated_bytes >= 1_000_000


def test_engine_can_skip_allocation_pass():
    calls = []
    engine = SamplingEngine(warmup=0, iterations=2, memory_iterations=0)
    m = engine.run("no-alloc", lambda: calls.append(1))
    assert len(calls) == 2
    assert m.allocated_bytes == 0.0


def test_engine_records_scenario_failures():
    def fail():
        raise ScenarioExecutionError("reader_x", "no such table: OneRow", table="OneRow")

    m = SamplingEngine(warmup=1, iterations=3).run("reader_x", fail)

    assert m.failed
    assert "no such table" in m.error
    assert m.samples == 0


def test_engine_propagates_other_errors():
    def explode():
        raise RuntimeError("not a query failure")

    with pytest.raises(RuntimeError):
        SamplingEngine(warmup=0, iterations=1).run("explode", explode)


def test_engine_rejects_zero_iterations():
    with pytest.raises(ValueError):
        SamplingEngine(iterations=0)


def test_error_shrinks_with_more_samples():
    few = summarize("few", [100, 200] * 2)
    many = summarize("many", [100, 200] * 50)
    assert many.error_ns < few.error_ns
    assert math.isclose(few.mean_ns, many.mean_ns)
