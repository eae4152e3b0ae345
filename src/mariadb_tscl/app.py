"""
Process wiring: pick the reporting writer, run the poller, shut down in
order.

Teardown runs poller -> error observers -> table writers -> TimescaleDB
pool. The monitored database connection belongs to the caller and is
closed last, after serve() returns.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Optional

from mariadb_tscl.collector.base import StatusCollector
from mariadb_tscl.config import Conf
from mariadb_tscl.metrics import STATUS_MONITORING_TABLE
from mariadb_tscl.poller import StatusPoller
from mariadb_tscl.reporting import NullWriter, ReportingWriter, TimescaleDBWriter, open_pool

log = logging.getLogger(__name__)


async def serve(conf: Conf, collector: StatusCollector, stop: asyncio.Event):
    """Collect until `stop` is set. Raises ReportingError if the pool won't open."""
    pool = None
    writer: ReportingWriter
    if conf.reporting is not None:
        pool = await open_pool(conf.reporting.db)
        writer = TimescaleDBWriter(pool, stop, tz=conf.tzinfo, queue_size=conf.queue_size)
    else:
        log.warning("reporting not configured, status records will be written to the log")
        writer = NullWriter()

    try:
        writer.add_table_writer(STATUS_MONITORING_TABLE)
        writer.log_errors()
        poller = StatusPoller(collector, writer, conf.instance_name, tz=conf.tzinfo)
        await poller.run(conf.tick_interval_secs, stop)
    finally:
        log.info("Stopping...")
        await writer.close()
        if pool is not None:
            await pool.close()


async def run(conf: Conf, collector: StatusCollector, stop: Optional[asyncio.Event] = None):
    """serve() with SIGINT/SIGTERM wired to the stop event."""
    stop = stop or asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)
    try:
        await serve(conf, collector, stop)
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
