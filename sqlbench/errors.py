"""Error taxonomy for the benchmark harness."""

from typing import Optional


class BenchmarkError(Exception):
    """Base class for every harness failure."""

    def __init__(self, message: str, driver_message: Optional[str] = None) -> None:
        self.driver_message = driver_message
        if driver_message:
            message = f"{message}: {driver_message}"
        super().__init__(message)


class ProvisioningError(BenchmarkError):
    """The throwaway database could not be created."""

    def __init__(self, server_url: str, driver_message: Optional[str] = None, database: Optional[str] = None) -> None:
        self.server_url = server_url
        self.database = database
        target = f"database {database!r} on {server_url}" if database else server_url
        super().__init__(f"Could not provision {target}", driver_message)


class FixtureLoadError(BenchmarkError):
    """A fixture table could not be created or filled."""

    def __init__(self, table: str, driver_message: Optional[str] = None, batch: Optional[int] = None) -> None:
        self.table = table
        self.batch = batch
        where = f"table {table!r}" if batch is None else f"table {table!r} (batch {batch})"
        super().__init__(f"Failed to load {where}", driver_message)


class ScenarioExecutionError(BenchmarkError):
    """A query failed inside a timed scenario."""

    def __init__(self, scenario: str, driver_message: Optional[str] = None, table: Optional[str] = None) -> None:
        self.scenario = scenario
        self.table = table
        where = scenario if table is None else f"{scenario} on {table!r}"
        super().__init__(f"Scenario {where} failed", driver_message)


class TeardownError(BenchmarkError):
    """Dropping the throwaway database failed. Logged, never raised."""

    def __init__(self, database: str, driver_message: Optional[str] = None) -> None:
        self.database = database
        super().__init__(f"Could not drop database {database!r}", driver_message)
