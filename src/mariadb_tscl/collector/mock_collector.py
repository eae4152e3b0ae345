"""
Collector that reads from the simulated MariaDB server.
Used for local development on machines without a database.
"""

from mariadb_tscl.collector.base import StatusCollector
from mariadb_tscl.metrics import Snapshot
from mariadb_tscl.mock.generator import MockMariaDBServer


class MockCollector(StatusCollector):
    """Wraps the mock generator as a standard collector."""

    def __init__(self, seed: int = 42):
        self._server = MockMariaDBServer(seed=seed)

    def collect(self) -> Snapshot:
        return self._server.snapshot()

    def name(self) -> str:
        return "Mock MariaDB (simulated OLTP load)"
