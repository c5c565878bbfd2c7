"""
Scalar scenarios: ``select 1`` under each calling convention.

EXPECTED RESULTS:
- sync: cheapest per call, the thread blocks on open and on execute
- async_connection: adds a worker-thread hop for the open, execute still blocks the loop
- async_connection_async_execute: suspends at open and execute, pays the async driver overhead

Each call opens its own connection and closes it before returning, so the
connection cost is part of every measurement.
"""

import asyncio

from sqlalchemy import text

from .registry import ASYNC_CONNECTION, ASYNC_EXECUTE, SYNC, ScenarioGroup

scalar_scenarios = ScenarioGroup("scalar")

SELECT_ONE = text("select 1")


@scalar_scenarios.scenario("sync", convention=SYNC)
def scalar_sync(ctx, sink=None):
    """Blocking open, blocking execute."""
    with ctx.sync_engine.connect() as conn:
        value = conn.execute(SELECT_ONE).scalar()
    if sink is not None:
        sink(value)
    return value


@scalar_scenarios.scenario("async_connection", convention=ASYNC_CONNECTION)
async def scalar_async_connection(ctx, sink=None):
    """
    Open the connection off the event loop, then execute inline.

    The scalar query blocks the event loop; only the open is awaited.
    """
    conn = await asyncio.to_thread(ctx.sync_engine.connect)
    with conn:
        value = conn.execute(SELECT_ONE).scalar()
    if sink is not None:
        sink(value)
    return value


@scalar_scenarios.scenario("async_connection_async_execute", convention=ASYNC_EXECUTE)
async def scalar_async_connection_async_execute(ctx, sink=None):
    """Awaited open, awaited scalar."""
    async with ctx.async_engine.connect() as conn:
        value = await conn.scalar(SELECT_ONE)
    if sink is not None:
        sink(value)
    return value
