"""Micro-benchmarks for sync and async database calling conventions."""

from .errors import (
    BenchmarkError,
    FixtureLoadError,
    ProvisioningError,
    ScenarioExecutionError,
    TeardownError,
)
from .runner import BenchmarkRunner, HarnessConfig, RunState
from .stats import BenchmarkEngine, Measurement, SamplingEngine

__version__ = "0.1.0"

__all__ = [
    "BenchmarkEngine",
    "BenchmarkError",
    "BenchmarkRunner",
    "FixtureLoadError",
    "HarnessConfig",
    "Measurement",
    "ProvisioningError",
    "RunState",
    "SamplingEngine",
    "ScenarioExecutionError",
    "TeardownError",
]
