"""
Mock MariaDB status generator.

Produces fake but plausible SHOW GLOBAL STATUS counters so we can develop
and test without a database. Numbers are loosely based on a small OLTP
server under moderate read-heavy traffic.
"""

import math
import random
from datetime import datetime, timezone

from mariadb_tscl.metrics import COUNTER_FIELDS, Snapshot


class MockMariaDBServer:

    def __init__(self, seed: int = 42):
        self._rng = random.Random(seed)
        self._tick = 0
        self._counters = dict.fromkeys(COUNTER_FIELDS, 0)
        self._max_used_connections = 0

    def snapshot(self) -> Snapshot:
        """Generate one reading, advancing the simulation clock."""
        self._tick += 1
        t = self._tick

        # Sinusoidal base load with occasional random spikes
        base_load = 20 + 15 * math.sin(t * 0.05)
        spike = self._rng.random() * 30 if self._rng.random() > 0.9 else 0
        threads = max(1, int(base_load + spike))
        self._max_used_connections = max(self._max_used_connections, threads)

        # Read-heavy mix, roughly 10 seconds of traffic per tick
        selects = int(threads * self._rng.uniform(30, 60))
        inserts = int(selects * self._rng.uniform(0.05, 0.15))
        updates = int(selects * self._rng.uniform(0.03, 0.08))
        deletes = int(selects * self._rng.uniform(0.0, 0.02))
        statements = selects + inserts + updates + deletes

        # Buffer pool misses climb once the working set stops fitting
        read_requests = statements * self._rng.randint(20, 40)
        miss_rate = 0.001 + max(0, threads - 30) * 0.0005

        self._add("com_select", selects)
        self._add("com_insert", inserts)
        self._add("com_update", updates)
        self._add("com_delete", deletes)
        self._add("aborted_connects", 1 if self._rng.random() > 0.95 else 0)
        self._add("slow_queries", int(max(0, threads - 25) * self._rng.uniform(0, 0.5)))
        self._add("innodb_buffer_pool_read_requests", read_requests)
        self._add("innodb_buffer_pool_reads", int(read_requests * miss_rate))
        self._add("innodb_row_lock_time", int((updates + deletes) * self._rng.uniform(0, 2)))
        self._add("handler_read_first", int(selects * 0.01))
        self._add("handler_read_key", int(selects * self._rng.uniform(1, 3)))
        self._add("handler_read_next", int(selects * self._rng.uniform(5, 20)))
        self._add("handler_read_rnd", int(selects * 0.05))
        self._add("handler_read_rnd_next", int(selects * self._rng.uniform(10, 50)))
        self._add("bytes_received", statements * self._rng.randint(150, 400))
        self._add("bytes_sent", selects * self._rng.randint(800, 4000))

        values = dict(self._counters)
        values["threads_connected"] = threads
        values["max_used_connections"] = self._max_used_connections
        return Snapshot(timestamp=datetime.now(timezone.utc), values=values)

    def restart(self):
        """Simulate a server restart: every status counter starts over."""
        self._counters = dict.fromkeys(COUNTER_FIELDS, 0)
        self._max_used_connections = 0

    def _add(self, name: str, amount: int):
        self._counters[name] += amount
