"""
Reporting writer interface.

The poller hands finished records to a ReportingWriter and never waits
on delivery. Two implementations exist: TimescaleDBWriter (queues per
table, background inserts) and NullWriter (just logs), picked at startup
depending on whether `reporting` is configured.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from mariadb_tscl.reporting.timescale import Entry, TableWriter


class Timescalable(Protocol):
    """Anything that can be written as one row of a TimescaleDB table."""

    created: datetime

    @property
    def table_name(self) -> str:
        ...

    def to_entry(self, table_writer: TableWriter) -> Entry:
        ...


class ReportingWriter(ABC):

    @abstractmethod
    def add_table_writer(self, table_name: str):
        """Register a destination table. Must be called before write()."""
        ...

    @abstractmethod
    def write(self, item: Timescalable):
        """Queue one record for its table. Never blocks, never raises."""
        ...

    @abstractmethod
    def log_errors(self):
        """Start watching every registered table for delivery failures."""
        ...

    async def close(self):
        pass
