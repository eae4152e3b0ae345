"""
Base collector interface.

A collector is anything that can produce a status Snapshot. The poller
doesn't care whether it talks to a real MariaDB server or the simulator.
"""

from abc import ABC, abstractmethod

from mariadb_tscl.metrics import Snapshot


class StatusCollector(ABC):
    """Interface for all status sources."""

    @abstractmethod
    def collect(self) -> Snapshot:
        """Fetch one snapshot of current counters.

        Raises instead of returning partial data.
        """
        ...

    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this source."""
        ...

    def close(self):
        pass
