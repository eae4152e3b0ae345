"""Turn two consecutive snapshots into a StatusRecord."""

from __future__ import annotations

from datetime import datetime

from mariadb_tscl.metrics import COUNTER_FIELDS, GAUGE_FIELDS, Snapshot, StatusRecord


def compute_delta(
    previous: Snapshot,
    current: Snapshot,
    instance: str,
    now: datetime,
) -> StatusRecord:
    """Gauges come from `current`, counters are `current - previous`.

    No clamping: a counter that went backwards (server restart) gives a
    negative value, and consumers are expected to read it as such.
    """
    values = {name: current.get(name) for name in GAUGE_FIELDS}
    for name in COUNTER_FIELDS:
        values[name] = current.get(name) - previous.get(name)
    return StatusRecord(created=now, instance=instance, values=values)
