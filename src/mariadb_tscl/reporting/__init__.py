from mariadb_tscl.reporting.base import ReportingWriter, Timescalable
from mariadb_tscl.reporting.null_writer import NullWriter
from mariadb_tscl.reporting.timescale import TimescaleDBWriter, open_pool

__all__ = [
    "ReportingWriter",
    "Timescalable",
    "NullWriter",
    "TimescaleDBWriter",
    "open_pool",
]
