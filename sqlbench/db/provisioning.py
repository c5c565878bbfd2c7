"""Throwaway database provisioning.

A run gets its own database, named ``sqlbench_<hex>``, created on the target
server before any fixture is loaded and dropped when the run ends. SQLite
has no server, so the "server" is a directory and the database a file in it.
"""

import logging
import os
import tempfile
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from sqlbench.errors import ProvisioningError, TeardownError

_log = logging.getLogger("sqlbench.provisioning")

DEFAULT_SERVER_URL = os.getenv("SQLBENCH_SERVER_URL", "sqlite:///")

# backend -> (sync driver, async driver)
DRIVERS = {
    "sqlite": ("pysqlite", "aiosqlite"),
    "postgresql": ("psycopg2", "asyncpg"),
    "mysql": ("pymysql", "aiomysql"),
    "mssql": ("pyodbc", "aioodbc"),
}
ASYNC_DRIVER_NAMES = frozenset(async_driver for _, async_driver in DRIVERS.values())

SQLITE_SUFFIXES = ("", "-journal", "-wal", "-shm")


@dataclass
class DatabaseHandle:
    """A provisioned throwaway database. Drop it with :func:`teardown`."""

    name: str
    server_url: str
    sync_url: URL
    async_url: URL
    backend: str
    path: Optional[Path] = None
    dropped: bool = field(default=False, compare=False)

    def __enter__(self) -> "DatabaseHandle":
        return self

    def __exit__(self, *exc_info) -> None:
        teardown(self)


def split_url(server_url: Union[str, URL]):
    """Return ``(backend, sync_url, async_url)`` for a server URL."""
    url = make_url(server_url)
    backend = url.get_backend_name()
    if backend not in DRIVERS:
        raise ProvisioningError(str(server_url), f"unsupported backend {backend!r}")
    sync_driver, async_driver = DRIVERS[backend]
    driver = url.get_driver_name()
    if driver in ASYNC_DRIVER_NAMES:
        sync_url = url.set(drivername=f"{backend}+{sync_driver}")
    else:
        sync_url = url
    async_url = url.set(drivername=f"{backend}+{async_driver}")
    return backend, sync_url, async_url


def new_database_name() -> str:
    return f"sqlbench_{uuid.uuid4().hex}"


def provision(server_url: Union[str, URL, None] = None) -> DatabaseHandle:
    """Create a fresh database on ``server_url`` and return its handle."""
    server_url = str(server_url or DEFAULT_SERVER_URL)
    try:
        backend, sync_url, async_url = split_url(server_url)
    except SQLAlchemyError as exc:
        raise ProvisioningError(server_url, str(exc)) from exc

    name = new_database_name()
    if backend == "sqlite":
        handle = _provision_sqlite(server_url, name, sync_url, async_url)
    else:
        handle = _provision_server(server_url, name, backend, sync_url, async_url)
    _log.info("Provisioned %s database %s", backend, name)
    return handle


def _provision_sqlite(server_url: str, name: str, sync_url: URL, async_url: URL) -> DatabaseHandle:
    directory = Path(sync_url.database or tempfile.gettempdir())
    if not directory.is_dir():
        raise ProvisioningError(server_url, f"directory {directory} does not exist", database=name)

    path = directory / f"{name}.db"
    handle = DatabaseHandle(
        name=name,
        server_url=server_url,
        sync_url=sync_url.set(database=str(path)),
        async_url=async_url.set(database=str(path)),
        backend="sqlite",
        path=path,
    )
    engine = create_engine(handle.sync_url, poolclass=NullPool)
    try:
        with engine.connect() as conn:
            conn.execute(text("select 1"))
    except SQLAlchemyError as exc:
        _remove_sqlite_files(path)
        raise ProvisioningError(server_url, str(exc), database=name) from exc
    finally:
        engine.dispose()
    return handle


def _provision_server(server_url: str, name: str, backend: str, sync_url: URL, async_url: URL) -> DatabaseHandle:
    try:
        engine = create_engine(sync_url, isolation_level="AUTOCOMMIT", poolclass=NullPool)
    except (SQLAlchemyError, ImportError) as exc:
        raise ProvisioningError(server_url, str(exc), database=name) from exc

    try:
        quoted = engine.dialect.identifier_preparer.quote(name)
        with engine.connect() as conn:
            conn.execute(text(f"CREATE DATABASE {quoted}"))
    except SQLAlchemyError as exc:
        raise ProvisioningError(server_url, str(exc), database=name) from exc
    finally:
        engine.dispose()

    return DatabaseHandle(
        name=name,
        server_url=server_url,
        sync_url=sync_url.set(database=name),
        async_url=async_url.set(database=name),
        backend=backend,
    )


def _drop_statements(backend: str, quoted: str, name: str):
    if backend == "postgresql":
        return [f"DROP DATABASE IF EXISTS {quoted} WITH (FORCE)"]
    if backend == "mssql":
        return [
            f"IF DB_ID(N'{name}') IS NOT NULL "
            f"ALTER DATABASE {quoted} SET SINGLE_USER WITH ROLLBACK IMMEDIATE",
            f"DROP DATABASE IF EXISTS {quoted}",
        ]
    return [f"DROP DATABASE IF EXISTS {quoted}"]


def _drop_server_database(handle: DatabaseHandle) -> None:
    # Connect to the server-level database, not the one being dropped.
    server_url = handle.sync_url.set(database=make_url(handle.server_url).database)
    engine = create_engine(server_url, isolation_level="AUTOCOMMIT", poolclass=NullPool)
    try:
        quoted = engine.dialect.identifier_preparer.quote(handle.name)
        with engine.connect() as conn:
            for statement in _drop_statements(handle.backend, quoted, handle.name):
                conn.execute(text(statement))
    finally:
        engine.dispose()


def _remove_sqlite_files(path: Path) -> None:
    for suffix in SQLITE_SUFFIXES:
        Path(f"{path}{suffix}").unlink(missing_ok=True)


def teardown(handle: DatabaseHandle) -> bool:
    """Drop the throwaway database.

    Safe to call repeatedly. Failures are logged as :class:`TeardownError`
    and never raised, so a cleanup problem cannot hide benchmark results.
    Returns True once the database is known to be gone.
    """
    if handle.dropped:
        return True
    try:
        if handle.backend == "sqlite":
            _remove_sqlite_files(handle.path)
        else:
            _drop_server_database(handle)
    except (SQLAlchemyError, OSError, ImportError) as exc:
        _log.error("%s", TeardownError(handle.name, str(exc)), exc_info=exc)
        return False
    handle.dropped = True
    _log.info("Dropped database %s", handle.name)
    return True
