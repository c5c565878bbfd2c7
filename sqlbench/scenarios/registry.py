"""Scenario groups: collect benchmark functions the way a router collects endpoints."""

import inspect
import re
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError

from sqlbench.errors import ScenarioExecutionError

# Calling conventions, ordered by how many suspension points they add.
SYNC = "sync"
ASYNC_CONNECTION = "async_connection"
ASYNC_EXECUTE = "async_execute"
ASYNC_READ = "async_read"
CONVENTIONS = (SYNC, ASYNC_CONNECTION, ASYNC_EXECUTE, ASYNC_READ)

TABLE_ORDER = ("OneRow", "OneThousandRows", "OneMillionRows")


def snake_case(name: str) -> str:
    """``OneThousandRows`` -> ``one_thousand_rows``."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


@dataclass(frozen=True)
class Scenario:
    """One named, repeatable unit of work."""

    name: str
    group: str
    convention: str
    fn: Callable[..., Any] = field(repr=False)
    is_async: bool = False
    table: Optional[str] = None

    def __call__(self, ctx, sink: Optional[Callable[[Any], None]] = None):
        """Run against ``ctx``. Returns a coroutine for async scenarios."""
        if self.is_async:
            return self._run_async(ctx, sink)
        try:
            return self.fn(ctx, sink=sink)
        except SQLAlchemyError as exc:
            raise self._failure(exc) from exc

    async def _run_async(self, ctx, sink):
        try:
            return await self.fn(ctx, sink=sink)
        except SQLAlchemyError as exc:
            raise self._failure(exc) from exc

    def _failure(self, exc: Exception) -> ScenarioExecutionError:
        return ScenarioExecutionError(self.name, str(exc), table=self.table)


@dataclass(frozen=True)
class _Registration:
    suffix: str
    convention: str
    fn: Callable[..., Any]
    tables: Optional[Tuple[str, ...]]


class ScenarioGroup:
    """A named collection of scenarios.

    Functions registered with ``per_table=True`` are expanded into one
    scenario per fixture table; ``tables`` limits the default expansion and
    is ignored when the full matrix is requested.
    """

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix
        self._registrations: List[_Registration] = []

    def scenario(
        self,
        suffix: str,
        convention: str,
        per_table: bool = False,
        tables: Optional[Sequence[str]] = None,
    ):
        if convention not in CONVENTIONS:
            raise ValueError(f"unknown calling convention {convention!r}")

        def decorator(fn):
            if per_table:
                allowed = tuple(tables) if tables is not None else TABLE_ORDER
            else:
                allowed = None
            self._registrations.append(_Registration(suffix, convention, fn, allowed))
            return fn

        return decorator

    def scenarios(self, full_matrix: bool = False) -> List[Scenario]:
        found = []
        for reg in self._registrations:
            is_async = inspect.iscoroutinefunction(reg.fn)
            if reg.tables is None:
                found.append(Scenario(
                    name=f"{self.prefix}_{reg.suffix}",
                    group=self.prefix,
                    convention=reg.convention,
                    fn=reg.fn,
                    is_async=is_async,
                ))
                continue
            for table in TABLE_ORDER:
                if not full_matrix and table not in reg.tables:
                    continue
                found.append(Scenario(
                    name=f"{self.prefix}_{reg.suffix}_{snake_case(table)}",
                    group=self.prefix,
                    convention=reg.convention,
                    fn=partial(reg.fn, table=table),
                    is_async=is_async,
                    table=table,
                ))
        return found
