"""Benchmark runner: one-time setup, per-scenario measurement, guaranteed teardown."""

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from sqlbench.db import BenchmarkContext, DatabaseHandle, load_fixtures, provision, teardown
from sqlbench.db.fixtures import DEFAULT_ROW_COUNTS, MAX_BATCH_SIZE
from sqlbench.db.provisioning import DEFAULT_SERVER_URL
from sqlbench.errors import ProvisioningError
from sqlbench.scenarios import Scenario, discover_scenarios, get_scenario
from sqlbench.stats import BenchmarkEngine, Measurement, SamplingEngine

_log = logging.getLogger("sqlbench.runner")


class RunState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    PROVISIONED = "provisioned"
    FIXTURES_LOADED = "fixtures_loaded"
    BENCHMARKING = "benchmarking"
    TORN_DOWN = "torn_down"


# Teardown is reachable from every live state.
_TRANSITIONS = {
    RunState.UNINITIALIZED: {RunState.PROVISIONED},
    RunState.PROVISIONED: {RunState.FIXTURES_LOADED, RunState.TORN_DOWN},
    RunState.FIXTURES_LOADED: {RunState.BENCHMARKING, RunState.TORN_DOWN},
    RunState.BENCHMARKING: {RunState.TORN_DOWN},
    RunState.TORN_DOWN: set(),
}


@dataclass
class HarnessConfig:
    server_url: str = DEFAULT_SERVER_URL
    row_counts: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_ROW_COUNTS))
    batch_size: int = MAX_BATCH_SIZE
    name_filter: Optional[str] = None
    full_matrix: bool = False
    warmup: int = 3
    iterations: int = 20


class BenchmarkRunner:
    """Drives one process run through provision, load, benchmark and teardown.

    Every run owns its own database handle, engines and event loop, so two
    runners can live in the same process.
    """

    def __init__(
        self,
        config: Optional[HarnessConfig] = None,
        engine: Optional[BenchmarkEngine] = None,
        progress: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.config = config or HarnessConfig()
        self.engine = engine or SamplingEngine(warmup=self.config.warmup, iterations=self.config.iterations)
        self.progress = progress or (lambda message: None)
        self.state = RunState.UNINITIALIZED
        self.handle: Optional[DatabaseHandle] = None
        self.context: Optional[BenchmarkContext] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def _advance(self, new_state: RunState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"cannot move from {self.state.value} to {new_state.value}")
        _log.debug("State %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    def scenarios(self) -> List[Scenario]:
        return discover_scenarios(self.config.name_filter, self.config.full_matrix)

    def setup(self) -> BenchmarkContext:
        """Provision the throwaway database and load every fixture table."""
        if self.state is not RunState.UNINITIALIZED:
            raise RuntimeError(f"runner already used (state {self.state.value}); create a new one")
        self.progress(f"Provisioning database on {self.config.server_url}")
        self.handle = provision(self.config.server_url)
        self._advance(RunState.PROVISIONED)

        try:
            self.context = BenchmarkContext.from_handle(self.handle)
        except (SQLAlchemyError, ImportError) as exc:
            raise ProvisioningError(self.config.server_url, str(exc), database=self.handle.name) from exc
        self._loop = asyncio.new_event_loop()
        self.progress(f"Loading fixtures into {self.handle.name}")
        load_fixtures(self.context.sync_engine, self.config.row_counts, self.config.batch_size)
        self._advance(RunState.FIXTURES_LOADED)
        return self.context

    def cleanup(self) -> None:
        """Dispose engines, close the loop and drop the database. Never raises."""
        if self.state in (RunState.UNINITIALIZED, RunState.TORN_DOWN):
            return
        if self.context is not None:
            try:
                self.context.dispose(self._loop)
            except Exception as exc:
                _log.warning("Failed to dispose engines: %s", exc)
        if self._loop is not None:
            try:
                self._loop.run_until_complete(self._loop.shutdown_default_executor())
            except RuntimeError as exc:
                _log.warning("Failed to shut down executor: %s", exc)
            finally:
                self._loop.close()
        if self.handle is not None:
            teardown(self.handle)
        self._advance(RunState.TORN_DOWN)
        self.progress("Torn down")

    def bind(self, scenario: Scenario) -> Callable[[], Any]:
        """A zero-argument callable that runs ``scenario`` once."""
        ctx, loop = self.context, self._loop
        if scenario.is_async:
            return lambda: loop.run_until_complete(scenario(ctx))
        return lambda: scenario(ctx)

    def run(self) -> List[Measurement]:
        """Run every selected scenario and return their measurements."""
        scenarios = self.scenarios()
        results: List[Measurement] = []
        try:
            self.setup()
            self._advance(RunState.BENCHMARKING)
            for index, scenario in enumerate(scenarios, 1):
                self.progress(f"[{index}/{len(scenarios)}] {scenario.name}")
                measurement = self.engine.run(scenario.name, self.bind(scenario))
                results.append(measurement)
        finally:
            self.cleanup()
        return results

    def debug(self, scenario_name: str) -> Any:
        """Setup, one unmeasured call of ``scenario_name``, teardown."""
        scenario = get_scenario(scenario_name)
        try:
            self.setup()
            self._advance(RunState.BENCHMARKING)
            self.progress(f"Debug run of {scenario.name}")
            return self.bind(scenario)()
        finally:
            self.cleanup()
