import asyncio
import uuid
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest

from helpers import run_scenario, stored_ids
from sqlbench.db import load_fixtures
from sqlbench.errors import ScenarioExecutionError
from sqlbench.scenarios import discover_scenarios, get_scenario, snake_case
from sqlbench.scenarios.registry import ASYNC_CONNECTION, SYNC, ScenarioGroup
from sqlbench.scenarios.reader_scenarios import (
    reader_all_sync,
    reader_async_connection,
    reader_async_connection_async_execute,
)

READER_VARIANTS = (
    "all_sync",
    "async_connection",
    "async_connection_async_execute",
    "async_connection_async_execute_async_read",
)
SCALAR_NAMES = (
    "scalar_sync",
    "scalar_async_connection",
    "scalar_async_connection_async_execute",
)


def test_snake_case():
    assert snake_case("OneRow") == "one_row"
    assert snake_case("OneThousandRows") == "one_thousand_rows"
    assert snake_case("OneMillionRows") == "one_million_rows"


def test_default_scenarios_keep_sync_reader_on_one_row():
    names = [s.name for s in discover_scenarios()]
    assert names[:3] == list(SCALAR_NAMES)
    assert "reader_all_sync_one_row" in names
    assert "reader_all_sync_one_thousand_rows" not in names
    assert "reader_all_sync_one_million_rows" not in names
    assert "reader_async_connection_async_execute_async_read_one_million_rows" in names
    assert len(names) == 13


def test_full_matrix_adds_sync_reader_everywhere():
    names = [s.name for s in discover_scenarios(full_matrix=True)]
    assert len(names) == 15
    for table in ("one_row", "one_thousand_rows", "one_million_rows"):
        for variant in READER_VARIANTS:
            assert f"reader_{variant}_{table}" in names


def test_filter_by_prefix():
    names = [s.name for s in discover_scenarios("scalar_")]
    assert names == list(SCALAR_NAMES)
    assert discover_scenarios("nothing_matches") == []


def test_scenario_metadata():
    scenario = get_scenario("reader_async_connection_async_execute_async_read_one_thousand_rows")
    assert scenario.table == "OneThousandRows"
    assert scenario.group == "reader"
    assert scenario.convention == "async_read"
    assert scenario.is_async

    scalar = get_scenario("scalar_sync")
    assert scalar.table is None
    assert not scalar.is_async


def test_get_scenario_unknown():
    with pytest.raises(KeyError):
        get_scenario("reader_all_sync_two_rows")


def test_group_rejects_unknown_convention():
    group = ScenarioGroup("x")
    with pytest.raises(ValueError):
        group.scenario("y", convention="threaded")


def test_group_expands_per_table():
    group = ScenarioGroup("sample")

    @group.scenario("plain", convention=SYNC)
    def plain(ctx, sink=None):
        return ctx

    @group.scenario("each", convention=ASYNC_CONNECTION, per_table=True, tables=("OneThousandRows",))
    async def each(ctx, table, sink=None):
        return table

    assert [s.name for s in group.scenarios()] == ["sample_plain", "sample_each_one_thousand_rows"]
    assert len(group.scenarios(full_matrix=True)) == 4


@pytest.mark.parametrize("name", SCALAR_NAMES)
def test_scalar_scenarios_return_one(seeded, name):
    seen = []
    assert run_scenario(get_scenario(name), seeded, sink=seen.append) == 1
    assert seen == [1]


@pytest.mark.asyncio
async def test_scalar_async_execute_awaits(seeded):
    assert await get_scenario("scalar_async_connection_async_execute")(seeded) == 1


@pytest.mark.parametrize("variant", READER_VARIANTS)
def test_reader_decodes_every_inserted_id(seeded, variant):
    scenario = get_scenario(f"reader_{variant}_one_thousand_rows")
    decoded = []

    assert run_scenario(scenario, seeded, sink=decoded.append) is None

    assert len(decoded) == 1000
    assert all(isinstance(value, uuid.UUID) for value in decoded)
    assert len(set(decoded)) == 1000
    assert set(decoded) == set(stored_ids(seeded, "OneThousandRows"))


@pytest.mark.parametrize("variant", READER_VARIANTS)
def test_reader_repeats_without_state(seeded, variant):
    scenario = get_scenario(f"reader_{variant}_one_million_rows")
    for _ in range(3):
        decoded = []
        run_scenario(scenario, seeded, sink=decoded.append)
        assert len(decoded) == 25


@pytest.mark.parametrize("variant", READER_VARIANTS)
def test_reader_skips_empty_table(context, variant):
    load_fixtures(context.sync_engine, {"OneRow": 0})
    decoded = []

    run_scenario(get_scenario(f"reader_{variant}_one_row"), context, sink=decoded.append)

    assert decoded == []


@pytest.mark.parametrize("variant", READER_VARIANTS)
def test_reader_without_sink_discards_rows(seeded, variant):
    assert run_scenario(get_scenario(f"reader_{variant}_one_row"), seeded) is None


@pytest.mark.parametrize("variant", READER_VARIANTS)
def test_missing_table_raises_scenario_error(context, variant):
    scenario = get_scenario(f"reader_{variant}_one_row")

    with pytest.raises(ScenarioExecutionError) as info:
        run_scenario(scenario, context)

    assert info.value.scenario == scenario.name
    assert info.value.table == "OneRow"
    assert "OneRow" in info.value.driver_message


def fake_result(rows):
    """A buffered result that serves ``rows`` and records how it was read."""
    result = MagicMock()
    result.fetchone.return_value = rows[0] if rows else None
    result.__iter__.return_value = iter(rows[1:])
    return result


def fake_context(result):
    conn = MagicMock()
    conn.__enter__.return_value = conn
    conn.execute.return_value = result
    async_conn = MagicMock()
    async_conn.execute = AsyncMock(return_value=result)

    ctx = MagicMock()
    ctx.sync_engine.connect.return_value = conn
    ctx.async_engine.connect.return_value.__aenter__.return_value = async_conn
    return ctx


BUFFERED_READERS = (
    reader_all_sync,
    reader_async_connection,
    reader_async_connection_async_execute,
)


def call_reader(reader, ctx, sink):
    outcome = reader(ctx, "OneRow", sink=sink)
    if asyncio.iscoroutine(outcome):
        outcome = asyncio.run(outcome)
    return outcome


@pytest.mark.parametrize("reader", BUFFERED_READERS)
def test_empty_result_never_enters_the_loop(reader):
    result = fake_result([])
    sink = Mock()

    call_reader(reader, fake_context(result), sink)

    result.fetchone.assert_called_once_with()
    result.__iter__.assert_not_called()
    sink.assert_not_called()


@pytest.mark.parametrize("reader", BUFFERED_READERS)
def test_first_row_is_decoded_before_the_rest(reader):
    result = fake_result([("first",), ("second",), ("third",)])
    decoded = []

    call_reader(reader, fake_context(result), decoded.append)

    assert decoded == ["first", "second", "third"]
    result.fetchone.assert_called_once_with()
