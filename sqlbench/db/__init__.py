"""Database package for the benchmark harness."""

from .engine import BenchmarkContext, build_async_engine, build_sync_engine
from .fixtures import DEFAULT_ROW_COUNTS, MAX_BATCH_SIZE, batched, load_fixtures, load_table
from .provisioning import DEFAULT_SERVER_URL, DatabaseHandle, provision, teardown
from .schema import FIXTURE_TABLES, OneMillionRows, OneRow, OneThousandRows

__all__ = [
    "BenchmarkContext",
    "build_async_engine",
    "build_sync_engine",
    "DEFAULT_ROW_COUNTS",
    "MAX_BATCH_SIZE",
    "batched",
    "load_fixtures",
    "load_table",
    "DEFAULT_SERVER_URL",
    "DatabaseHandle",
    "provision",
    "teardown",
    "FIXTURE_TABLES",
    "OneRow",
    "OneThousandRows",
    "OneMillionRows",
]
