"""Create the fixture tables and seed them with random identifiers."""

import logging
import uuid
from itertools import islice
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, TypeVar, Union

from sqlalchemy import insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from sqlbench.errors import FixtureLoadError

from .engine import build_sync_engine
from .provisioning import DatabaseHandle
from .schema import FIXTURE_TABLES

_log = logging.getLogger("sqlbench.fixtures")

# Multi-row inserts are capped at 1,000 rows per statement by some engines.
MAX_BATCH_SIZE = 1_000

DEFAULT_ROW_COUNTS: Dict[str, int] = {
    "OneRow": 1,
    "OneThousandRows": 1_000,
    "OneMillionRows": 1_000_000,
}

T = TypeVar("T")


def batched(iterable: Iterable[T], size: int) -> Iterator[List[T]]:
    """Split ``iterable`` into consecutive lists of at most ``size`` items."""
    if size < 1:
        raise ValueError(f"batch size must be positive, got {size}")
    it = iter(iterable)
    while True:
        batch = list(islice(it, size))
        if not batch:
            return
        yield batch


def load_table(engine: Engine, table_name: str, row_count: int, batch_size: int = MAX_BATCH_SIZE) -> int:
    """Create ``table_name`` and insert ``row_count`` fresh ids into it.

    The table is created and filled in one transaction. On failure it is
    dropped before :class:`FixtureLoadError` propagates, so no half-seeded
    table survives. Returns the number of insert statements issued.
    """
    table = FIXTURE_TABLES.get(table_name)
    if table is None:
        raise FixtureLoadError(table_name, "unknown fixture table")
    if row_count < 0:
        raise FixtureLoadError(table_name, f"negative row count {row_count}")

    ids = (uuid.uuid4() for _ in range(row_count))
    statements = 0
    batch_no: Optional[int] = None
    try:
        with engine.begin() as conn:
            table.create(conn)
            for batch_no, batch in enumerate(batched(ids, batch_size)):
                conn.execute(insert(table), [{"id": value} for value in batch])
                statements += 1
                if batch_no and batch_no % 100 == 0:
                    _log.debug("%s: %d rows inserted", table_name, batch_no * batch_size)
    except SQLAlchemyError as exc:
        _drop_partial_table(engine, table_name)
        raise FixtureLoadError(table_name, str(exc), batch=batch_no) from exc

    _log.info("Loaded %s with %d rows in %d statements", table_name, row_count, statements)
    return statements


def _drop_partial_table(engine: Engine, table_name: str) -> None:
    try:
        with engine.begin() as conn:
            FIXTURE_TABLES[table_name].drop(conn, checkfirst=True)
    except SQLAlchemyError as exc:
        _log.warning("Could not drop partially loaded table %s: %s", table_name, exc)


def load_fixtures(
    target: Union[Engine, DatabaseHandle],
    row_counts: Optional[Mapping[str, int]] = None,
    batch_size: int = MAX_BATCH_SIZE,
) -> Dict[str, int]:
    """Load every fixture table. Returns statements issued per table."""
    if row_counts is None:
        row_counts = DEFAULT_ROW_COUNTS
    if batch_size < 1:
        raise ValueError(f"batch size must be positive, got {batch_size}")

    owned = isinstance(target, DatabaseHandle)
    engine = build_sync_engine(target.sync_url) if owned else target
    try:
        return {
            table_name: load_table(engine, table_name, row_count, batch_size)
            for table_name, row_count in row_counts.items()
        }
    finally:
        if owned:
            engine.dispose()
