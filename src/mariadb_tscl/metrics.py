"""
Core metric definitions for mariadb-tscl.

A Snapshot is whatever SHOW GLOBAL STATUS returned on one tick. A
StatusRecord is what goes out to TimescaleDB: gauges as they were read,
cumulative counters turned into per-tick deltas.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Mapping

if TYPE_CHECKING:
    from mariadb_tscl.reporting.timescale import Entry, TableWriter


STATUS_MONITORING_TABLE = "mariadb_tscl_status_monitoring"

# Instantaneous values, reported as read
GAUGE_FIELDS = (
    "threads_connected",
    "max_used_connections",
)

# Cumulative since server start, reported as per-tick deltas
COUNTER_FIELDS = (
    "aborted_connects",
    "com_select",
    "com_insert",
    "com_update",
    "com_delete",
    "slow_queries",
    "innodb_buffer_pool_reads",
    "innodb_buffer_pool_read_requests",
    "innodb_row_lock_time",
    "handler_read_first",
    "handler_read_key",
    "handler_read_next",
    "handler_read_rnd",
    "handler_read_rnd_next",
    "bytes_sent",
    "bytes_received",
)

TRACKED_FIELDS = GAUGE_FIELDS + COUNTER_FIELDS


@dataclass(frozen=True)
class Snapshot:
    """A single point-in-time reading of the server's status counters."""

    timestamp: datetime
    values: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self):
        # read-only view over a private copy
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def get(self, name: str) -> int:
        """Counters the server didn't report read as zero."""
        return self.values.get(name, 0)


@dataclass(frozen=True)
class StatusRecord:
    """One row for the status monitoring table.

    `values` holds every tracked field. Counter deltas can be negative
    when the server restarted between two ticks; they are kept as-is.
    """

    created: datetime
    instance: str
    values: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    @property
    def table_name(self) -> str:
        return STATUS_MONITORING_TABLE

    def get(self, name: str) -> int:
        return self.values.get(name, 0)

    def to_entry(self, table_writer: TableWriter) -> Entry:
        """Project into the tag/field shape the table writer inserts."""
        return table_writer.new_entry(
            self.created,
            tags={"instance": self.instance},
            fields={name: self.get(name) for name in TRACKED_FIELDS},
        )

    def summary(self) -> dict:
        """Return a plain dict for logging."""
        record = {"created": self.created.isoformat(), "instance": self.instance}
        record.update((name, self.get(name)) for name in TRACKED_FIELDS)
        return record

    def __str__(self) -> str:
        return json.dumps(self.summary())
