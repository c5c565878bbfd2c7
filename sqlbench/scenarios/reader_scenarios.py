"""
Reader scenarios: ``select id from <table>`` and decode every row.

Each function is its own code path on purpose; where the code suspends is
what is being measured. Decoded ids are discarded unless a ``sink`` is
passed in.

The all-sync reader only runs against ``OneRow`` unless the full matrix is
requested, keeping a blocking million-row read out of the default run.

Every reader fetches the first row before entering its loop, so an empty
result never reaches the loop body.
"""

import asyncio

from sqlalchemy import select

from sqlbench.db.schema import FIXTURE_TABLES

from .registry import ASYNC_CONNECTION, ASYNC_EXECUTE, ASYNC_READ, SYNC, ScenarioGroup

reader_scenarios = ScenarioGroup("reader")

SELECT_IDS = {name: select(table.c.id) for name, table in FIXTURE_TABLES.items()}


@reader_scenarios.scenario("all_sync", convention=SYNC, per_table=True, tables=("OneRow",))
def reader_all_sync(ctx, table, sink=None):
    """Blocking open, execute and read loop."""
    with ctx.sync_engine.connect() as conn:
        result = conn.execute(SELECT_IDS[table])
        row = result.fetchone()
        if row is not None:
            value = row[0]
            if sink is not None:
                sink(value)
            for row in result:
                value = row[0]
                if sink is not None:
                    sink(value)


@reader_scenarios.scenario("async_connection", convention=ASYNC_CONNECTION, per_table=True)
async def reader_async_connection(ctx, table, sink=None):
    """Awaited open; execute and the read loop block the event loop."""
    conn = await asyncio.to_thread(ctx.sync_engine.connect)
    with conn:
        result = conn.execute(SELECT_IDS[table])
        row = result.fetchone()
        if row is not None:
            value = row[0]
            if sink is not None:
                sink(value)
            for row in result:
                value = row[0]
                if sink is not None:
                    sink(value)


@reader_scenarios.scenario("async_connection_async_execute", convention=ASYNC_EXECUTE, per_table=True)
async def reader_async_connection_async_execute(ctx, table, sink=None):
    """Awaited open and execute; rows come back buffered and are read inline."""
    async with ctx.async_engine.connect() as conn:
        result = await conn.execute(SELECT_IDS[table])
        row = result.fetchone()
        if row is not None:
            value = row[0]
            if sink is not None:
                sink(value)
            for row in result:
                value = row[0]
                if sink is not None:
                    sink(value)


@reader_scenarios.scenario("async_connection_async_execute_async_read", convention=ASYNC_READ, per_table=True)
async def reader_async_connection_async_execute_async_read(ctx, table, sink=None):
    """Awaited open, execute and every row fetch, over a server-side cursor."""
    async with ctx.async_engine.connect() as conn:
        async with conn.stream(SELECT_IDS[table]) as result:
            # The first fetch doubles as the has-rows check.
            row = await result.fetchone()
            while row is not None:
                value = row[0]
                if sink is not None:
                    sink(value)
                row = await result.fetchone()
