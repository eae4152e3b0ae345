"""Fallback writer used when no TimescaleDB is configured."""

from __future__ import annotations

import logging

from mariadb_tscl.reporting.base import ReportingWriter, Timescalable

log = logging.getLogger(__name__)


class NullWriter(ReportingWriter):
    """Logs every call instead of delivering anything."""

    def add_table_writer(self, table_name: str):
        log.info("NullWriter.add_table_writer(%s) [fallback reporting]", table_name)

    def write(self, item: Timescalable):
        log.info("NullWriter.write() [fallback reporting] record=%s", item)

    def log_errors(self):
        log.info("NullWriter.log_errors() [fallback reporting]")
