"""
End-to-end runs of serve() with the simulated MariaDB server, with the log
fallback and with a fake TimescaleDB pool, plus shutdown via stop and SIGTERM.
"""

import asyncio
import logging
import os
import signal
import sys
import threading

import pytest

from mariadb_tscl import app
from mariadb_tscl.collector.base import StatusCollector
from mariadb_tscl.collector.mock_collector import MockCollector
from mariadb_tscl.config import Conf
from mariadb_tscl.errors import CollectorError, ReportingError
from mariadb_tscl.metrics import TRACKED_FIELDS, Snapshot


def _make_conf(**overrides) -> Conf:
    raw = {
        "db": {"name": "mysql", "host": "localhost", "user": "monitor", "password": "secret"},
        "instance_name": "db1",
        "tick_interval_secs": 0.01,
    }
    raw.update(overrides)
    return Conf.model_validate(raw)


async def _run_for(conf: Conf, seconds: float):
    stop = asyncio.Event()
    task = asyncio.create_task(app.serve(conf, MockCollector(seed=1), stop))
    await asyncio.sleep(seconds)
    stop.set()
    await asyncio.wait_for(task, timeout=1.0)


@pytest.mark.asyncio
async def test_without_reporting_records_go_to_log(caplog):
    with caplog.at_level(logging.INFO):
        await _run_for(_make_conf(), 0.2)

    messages = [r.getMessage() for r in caplog.records]
    assert any("reporting not configured" in m for m in messages)
    assert any("NullWriter.write()" in m and '"instance": "db1"' in m for m in messages)
    assert any("Stopping..." in m for m in messages)


@pytest.mark.asyncio
async def test_with_reporting_rows_reach_pool(monkeypatch, fake_pool):
    async def fake_open_pool(conf):
        return fake_pool

    monkeypatch.setattr(app, "open_pool", fake_open_pool)
    conf = _make_conf(reporting={"db": {"host": "tsdb", "password": "pw"}})

    await _run_for(conf, 0.2)

    assert len(fake_pool.rows) >= 1
    assert all(len(row) == 2 + len(TRACKED_FIELDS) for row in fake_pool.rows)
    assert all(row[1] == "db1" for row in fake_pool.rows)
    assert fake_pool.closed


@pytest.mark.asyncio
async def test_pool_failure_is_raised(monkeypatch):
    async def broken_open_pool(conf):
        raise ReportingError("cannot connect to TimescaleDB at tsdb:5432")

    monkeypatch.setattr(app, "open_pool", broken_open_pool)
    conf = _make_conf(reporting={"db": {"host": "tsdb", "password": "pw"}})

    with pytest.raises(ReportingError):
        await app.serve(conf, MockCollector(), asyncio.Event())


class _StalledCollector(StatusCollector):
    """collect() hangs like a status query on a server that went silent."""

    def __init__(self):
        self.release = threading.Event()

    def collect(self) -> Snapshot:
        self.release.wait(timeout=5.0)
        raise CollectorError("status query failed: timed out")

    def name(self) -> str:
        return "stalled"


@pytest.mark.asyncio
async def test_stop_is_not_held_up_by_a_stalled_capture():
    collector = _StalledCollector()
    stop = asyncio.Event()
    task = asyncio.create_task(app.serve(_make_conf(), collector, stop))
    try:
        await asyncio.sleep(0.1)
        stop.set()
        await asyncio.wait_for(task, timeout=1.0)
    finally:
        collector.release.set()


@pytest.mark.skipif(sys.platform == "win32", reason="needs loop signal handlers")
@pytest.mark.asyncio
async def test_sigterm_stops_run():
    stop = asyncio.Event()
    task = asyncio.create_task(app.run(_make_conf(), MockCollector(seed=1), stop))
    await asyncio.sleep(0.1)

    os.kill(os.getpid(), signal.SIGTERM)
    await asyncio.wait_for(task, timeout=1.0)

    assert stop.is_set()
