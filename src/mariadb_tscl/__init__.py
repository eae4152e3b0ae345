"""MariaDB status counters -> TimescaleDB collector."""

__version__ = "0.3.0"
