"""
The collection loop.

Every tick: take a snapshot, diff it against the previous one, hand the
record to the reporting writer. The very first snapshot after startup
only sets the baseline. A failed snapshot skips the tick and keeps the
old baseline, so the next good tick still diffs against real data.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone, tzinfo
from typing import Optional

from mariadb_tscl.collector.base import StatusCollector
from mariadb_tscl.delta import compute_delta
from mariadb_tscl.metrics import Snapshot, StatusRecord
from mariadb_tscl.reporting.base import ReportingWriter

log = logging.getLogger(__name__)


class StatusPoller:

    def __init__(
        self,
        collector: StatusCollector,
        writer: ReportingWriter,
        instance_name: str,
        tz: Optional[tzinfo] = None,
    ):
        self._collector = collector
        self._writer = writer
        self._instance_name = instance_name
        self._tz = tz or timezone.utc
        self._previous: Optional[Snapshot] = None
        self.emitted = 0

    @property
    def previous(self) -> Optional[Snapshot]:
        return self._previous

    async def tick(self) -> Optional[StatusRecord]:
        """Run one collection step. Returns the record written, if any."""
        try:
            # collectors do blocking I/O
            current = await asyncio.to_thread(self._collector.collect)
        except Exception as e:
            log.error("Status collection failed, skipping tick: %s", e)
            return None

        log.debug("status: %s", dict(current.values))

        if self._previous is None:
            self._previous = current
            log.info("Baseline snapshot taken from %s", self._collector.name())
            return None

        record = compute_delta(
            self._previous, current, self._instance_name, datetime.now(self._tz)
        )
        self._writer.write(record)
        self._previous = current
        self.emitted += 1
        return record

    async def run(self, interval: float, stop: asyncio.Event):
        """Tick on a fixed grid until `stop` is set.

        Slots missed because a tick ran long are skipped, not caught up.
        Setting `stop` during a capture abandons that capture; the worker
        thread finishes on its own once the driver times out.
        """
        log.info(
            "Starting collection: source=%s, interval=%.1fs",
            self._collector.name(), interval,
        )
        loop = asyncio.get_running_loop()
        started = loop.time()
        stopped = asyncio.ensure_future(stop.wait())

        try:
            while not stop.is_set():
                tick = asyncio.ensure_future(self.tick())
                await asyncio.wait({tick, stopped}, return_when=asyncio.FIRST_COMPLETED)
                if not tick.done():
                    tick.cancel()
                    log.warning("Stop requested during a capture, abandoning it")
                    break
                elapsed = loop.time() - started
                await asyncio.wait({stopped}, timeout=interval - elapsed % interval)
        finally:
            stopped.cancel()

        log.info("Collection stopped after %d records", self.emitted)
