"""pytest configuration and fixtures.

Every test gets its own SQLite "server" directory under ``tmp_path``, so
the throwaway databases never leave the test's sandbox.
"""

import pytest

from helpers import SMALL_ROW_COUNTS
from sqlbench.db import BenchmarkContext, load_fixtures, provision, teardown


@pytest.fixture
def server_url(tmp_path):
    return f"sqlite:///{tmp_path}"


@pytest.fixture
def handle(server_url):
    handle = provision(server_url)
    yield handle
    teardown(handle)


@pytest.fixture
def context(handle):
    ctx = BenchmarkContext.from_handle(handle)
    yield ctx
    ctx.dispose()


@pytest.fixture
def seeded(context):
    load_fixtures(context.sync_engine, SMALL_ROW_COUNTS)
    return context
