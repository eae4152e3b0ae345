"""
TimescaleDB reporting.

Every destination table gets its own TableWriter: a bounded queue of
entries plus a background task that inserts them one row at a time
through the shared psycopg pool. A failed insert doesn't stop the task;
the entry and the exception go onto the table's error feed, which the
observer tasks started by TimescaleDBWriter.log_errors() drain into the
log.

Nothing is retried and nothing is flushed on shutdown. Whatever is still
queued when the writer closes is dropped.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Dict, List, Optional, Tuple

from psycopg import sql
from psycopg_pool import AsyncConnectionPool, PoolTimeout

from mariadb_tscl.config import DEFAULT_QUEUE_SIZE, PgConf
from mariadb_tscl.errors import ReportingError
from mariadb_tscl.reporting.base import ReportingWriter, Timescalable

log = logging.getLogger(__name__)

TIME_COLUMN = "time"


@dataclass
class Entry:
    """One row: timestamp, string tags and integer fields."""

    time: datetime
    tags: Dict[str, str] = field(default_factory=dict)
    fields: Dict[str, int] = field(default_factory=dict)

    def __str__(self) -> str:
        payload = {"time": self.time.isoformat()}
        payload.update(self.tags)
        payload.update(self.fields)
        return json.dumps(payload)


@dataclass
class WriteError:
    entry: Entry
    error: Exception


class TableState(enum.Enum):
    ACTIVE = "active"
    DRAINING = "draining"
    CLOSED = "closed"


async def open_pool(conf: PgConf) -> AsyncConnectionPool:
    """Open the pool and wait until it holds `pool_min_size` connections."""
    pool = AsyncConnectionPool(
        conninfo=conf.conninfo(),
        min_size=conf.pool_min_size,
        max_size=conf.pool_max_size,
        kwargs={"autocommit": True},
        open=False,
    )
    try:
        await pool.open(wait=True, timeout=conf.connect_timeout)
    except PoolTimeout as e:
        await pool.close()
        raise ReportingError(
            f"cannot connect to TimescaleDB at {conf.host}:{conf.port}: {e}"
        ) from e
    log.info("Connected to TimescaleDB at %s:%d", conf.host, conf.port)
    return pool


class TableWriter:
    """Delivery worker for one table.

    Entries come out of the queue in the order they went in, so rows for
    a table are inserted in submission order.
    """

    def __init__(
        self,
        pool,
        table_name: str,
        time_column: str = TIME_COLUMN,
        tz: Optional[tzinfo] = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ):
        self._pool = pool
        self.table_name = table_name
        self._time_column = time_column
        self._tz = tz
        self._queue_size = queue_size
        self._queue: Optional[asyncio.Queue] = None
        self._errors: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None

    def new_entry(self, time: datetime, tags=None, fields=None) -> Entry:
        if self._tz is not None and time.tzinfo is not None:
            time = time.astimezone(self._tz)
        return Entry(time=time, tags=dict(tags or {}), fields=dict(fields or {}))

    def activate(self) -> Tuple[asyncio.Queue, asyncio.Queue]:
        """Start the worker. Returns (entry queue, error feed).

        Needs a running event loop.
        """
        if self._task is not None:
            raise RuntimeError(f"table writer for {self.table_name} is already active")
        self._queue = asyncio.Queue(maxsize=self._queue_size)
        self._errors = asyncio.Queue()
        self._task = asyncio.create_task(self._run(), name=f"tswriter:{self.table_name}")
        return self._queue, self._errors

    async def _run(self):
        while True:
            entry = await self._queue.get()
            try:
                await self._insert(entry)
            except Exception as e:
                self._errors.put_nowait(WriteError(entry=entry, error=e))
            finally:
                self._queue.task_done()

    async def _insert(self, entry: Entry):
        columns = [self._time_column, *entry.tags, *entry.fields]
        params = [entry.time, *entry.tags.values(), *entry.fields.values()]
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
            sql.Identifier(self.table_name),
            sql.SQL(", ").join(map(sql.Identifier, columns)),
            sql.SQL(", ").join(sql.Placeholder() * len(columns)),
        )
        async with self._pool.connection() as conn:
            await conn.execute(query, params)

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


@dataclass
class Table:
    writer: TableWriter
    data: asyncio.Queue
    errors: asyncio.Queue
    state: TableState = TableState.ACTIVE
    dropped: int = 0


class TimescaleDBWriter(ReportingWriter):
    """Buffered writer: one queue, one worker and one error observer per table.

    `stop` is the process-wide shutdown event. Once it is set the observer
    tasks exit; close() then stops the workers. The pool belongs to the
    caller and is not closed here.
    """

    def __init__(
        self,
        pool,
        stop: asyncio.Event,
        tz: Optional[tzinfo] = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ):
        self._pool = pool
        self._stop = stop
        self._tz = tz
        self._queue_size = queue_size
        self._tables: Dict[str, Table] = {}
        self._observers: List[asyncio.Task] = []

    def table_state(self, table_name: str) -> Optional[TableState]:
        """None means the table was never registered."""
        table = self._tables.get(table_name)
        return table.state if table else None

    def add_table_writer(self, table_name: str):
        # Second registration is a no-op, the running worker stays.
        if table_name in self._tables:
            log.warning("Table writer for %s already registered, keeping the existing one", table_name)
            return
        writer = TableWriter(self._pool, table_name, tz=self._tz, queue_size=self._queue_size)
        data, errors = writer.activate()
        self._tables[table_name] = Table(writer=writer, data=data, errors=errors)
        log.info("Table writer for %s active (queue size %d)", table_name, self._queue_size)

    def write(self, item: Timescalable):
        table = self._tables.get(item.table_name)
        if table is None:
            log.warning("Undefined table name in writer: %s", item.table_name)
            return
        if table.state is not TableState.ACTIVE:
            log.warning("Table writer for %s is %s, record dropped", item.table_name, table.state.value)
            return

        entry = item.to_entry(table.writer)
        try:
            table.data.put_nowait(entry)
        except asyncio.QueueFull:
            # drop-newest; the poller must never wait on delivery
            table.dropped += 1
            log.error(
                "Delivery queue for %s is full, dropped %d entries so far",
                item.table_name, table.dropped,
            )

    def log_errors(self):
        if self._observers:
            log.warning("Error observers already running, not starting more")
            return
        for name, table in self._tables.items():
            task = asyncio.create_task(self._observe(name, table), name=f"tserrors:{name}")
            self._observers.append(task)

    async def _observe(self, name: str, table: Table):
        stopped = asyncio.ensure_future(self._stop.wait())
        next_error = None
        try:
            while True:
                next_error = asyncio.ensure_future(table.errors.get())
                done, _ = await asyncio.wait(
                    {next_error, stopped}, return_when=asyncio.FIRST_COMPLETED
                )
                if next_error in done:
                    err = next_error.result()
                    log.error(
                        "error writing data to TimescaleDB: %s, entry: %s",
                        err.error, err.entry,
                    )
                    next_error = None
                if stopped in done:
                    table.state = TableState.DRAINING
                    log.info("about to close %s status writer", name)
                    return
        finally:
            if next_error is not None:
                next_error.cancel()
            stopped.cancel()

    async def close(self):
        """Shut down: observers exit first, then the delivery workers."""
        self._stop.set()
        if self._observers:
            await asyncio.gather(*self._observers)
            self._observers.clear()
        for name, table in self._tables.items():
            await table.writer.stop()
            table.state = TableState.CLOSED
            pending = table.data.qsize()
            if pending:
                log.warning("Discarded %d undelivered entries for %s", pending, name)
