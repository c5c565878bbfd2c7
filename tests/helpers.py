"""Shared test helpers."""

import asyncio

from sqlalchemy import select

from sqlbench.db import FIXTURE_TABLES

SMALL_ROW_COUNTS = {
    "OneRow": 1,
    "OneThousandRows": 1_000,
    "OneMillionRows": 25,
}


def run_scenario(scenario, ctx, sink=None):
    """Call a scenario once, driving async ones on a fresh loop."""
    if scenario.is_async:
        return asyncio.run(scenario(ctx, sink=sink))
    return scenario(ctx, sink=sink)


def stored_ids(ctx, table_name):
    with ctx.sync_engine.connect() as conn:
        return list(conn.execute(select(FIXTURE_TABLES[table_name].c.id)).scalars())
