"""Shared fakes: a stand-in for the psycopg async pool."""

from contextlib import asynccontextmanager

import pytest


class FakeConnection:

    def __init__(self, pool):
        self._pool = pool

    async def execute(self, query, params):
        if self._pool.gate is not None:
            await self._pool.gate.wait()
        if self._pool.fail_with is not None:
            raise self._pool.fail_with
        self._pool.queries.append(query)
        self._pool.rows.append(list(params))


class FakePool:
    """Records inserted rows. Set `fail_with` to make every insert raise,
    or `gate` (an asyncio.Event) to hold inserts until it's set."""

    def __init__(self):
        self.rows = []
        self.queries = []
        self.fail_with = None
        self.gate = None
        self.closed = False

    @asynccontextmanager
    async def connection(self):
        yield FakeConnection(self)

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_pool():
    return FakePool()
