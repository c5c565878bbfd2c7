"""Engine configuration for the benchmark scenarios."""

import asyncio
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from .provisioning import DatabaseHandle


def _connect_args(url: URL) -> dict:
    # Connections opened on a worker thread are used on the event loop thread.
    if url.get_backend_name() == "sqlite":
        return {"check_same_thread": False}
    return {}


def _dialect_options(url: URL) -> dict:
    # pyodbc otherwise sends an executemany batch one row per round-trip.
    if url.get_backend_name() == "mssql" and url.get_driver_name() == "pyodbc":
        return {"fast_executemany": True}
    return {}


def build_sync_engine(url: URL) -> Engine:
    """Sync engine without pooling, so every connect() is a real open."""
    return create_engine(
        url,
        connect_args=_connect_args(url),
        echo=False,
        poolclass=NullPool,
        **_dialect_options(url),
    )


def build_async_engine(url: URL) -> AsyncEngine:
    """Async engine without pooling, so every connect() is a real open."""
    return create_async_engine(
        url,
        echo=False,
        poolclass=NullPool,
    )


@dataclass
class BenchmarkContext:
    """Everything a scenario needs, passed explicitly instead of held globally."""

    handle: DatabaseHandle
    sync_engine: Engine
    async_engine: AsyncEngine

    @classmethod
    def from_handle(cls, handle: DatabaseHandle) -> "BenchmarkContext":
        return cls(
            handle=handle,
            sync_engine=build_sync_engine(handle.sync_url),
            async_engine=build_async_engine(handle.async_url),
        )

    def dispose(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Release both engines. Uses ``loop`` for the async side when given."""
        self.sync_engine.dispose()
        if loop is not None and not loop.is_closed():
            loop.run_until_complete(self.async_engine.dispose())
        else:
            asyncio.run(self.async_engine.dispose())
