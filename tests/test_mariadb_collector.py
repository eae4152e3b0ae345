"""
Tests for the MariaDB collector, using a fake PyMySQL connection so no
server is needed.
"""

import pymysql
import pytest

from mariadb_tscl.collector.mariadb_collector import STATUS_VARIABLES, MariaDBCollector
from mariadb_tscl.config import DBConf
from mariadb_tscl.errors import CollectorError


class _FakeCursor:

    def __init__(self, conn):
        self._conn = conn

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, query, args):
        self._conn.executed.append((query, args))
        if self._conn.fail_query is True:
            raise pymysql.OperationalError(2013, "Lost connection to MySQL server during query")
        if self._conn.fail_query:
            raise self._conn.fail_query

    def fetchall(self):
        return self._conn.rows


class _FakeConnection:

    def __init__(self, rows):
        self.rows = rows
        self.executed = []
        self.pings = 0
        self.fail_query = False
        self.closed = False

    def ping(self, reconnect=True):
        self.pings += 1

    def cursor(self):
        return _FakeCursor(self)

    def close(self):
        self.closed = True


def _make_conf(**overrides) -> DBConf:
    defaults = dict(name="mysql", host="db.local:3307", user="monitor", password="secret")
    defaults.update(overrides)
    return DBConf(**defaults)


def test_rows_become_lowercase_snapshot():
    conn = _FakeConnection([
        ("Com_select", "140"),
        ("Threads_connected", "7"),
        ("Innodb_buffer_pool_reads", "12"),
    ])
    collector = MariaDBCollector(_make_conf(), connection=conn)

    snap = collector.collect()

    assert dict(snap.values) == {
        "com_select": 140,
        "threads_connected": 7,
        "innodb_buffer_pool_reads": 12,
    }
    assert snap.timestamp.tzinfo is not None


def test_query_asks_for_every_tracked_variable():
    conn = _FakeConnection([])
    collector = MariaDBCollector(_make_conf(), connection=conn)

    collector.collect()

    query, args = conn.executed[0]
    assert query.startswith("SHOW GLOBAL STATUS WHERE Variable_name IN")
    assert args == STATUS_VARIABLES
    assert "Com_select" in args
    assert "Innodb_buffer_pool_read_requests" in args
    assert conn.pings == 1


def test_query_failure_raises_collector_error():
    conn = _FakeConnection([])
    conn.fail_query = True
    collector = MariaDBCollector(_make_conf(), connection=conn)

    with pytest.raises(CollectorError, match="status query failed"):
        collector.collect()


def test_non_integer_value_rejected():
    conn = _FakeConnection([("Com_select", "lots")])
    collector = MariaDBCollector(_make_conf(), connection=conn)

    with pytest.raises(CollectorError, match="Com_select"):
        collector.collect()


def test_name_includes_host_and_port():
    collector = MariaDBCollector(_make_conf(), connection=_FakeConnection([]))
    assert "db.local:3307" in collector.name()


def test_close_closes_connection():
    conn = _FakeConnection([])
    collector = MariaDBCollector(_make_conf(), connection=conn)
    collector.close()
    assert conn.closed


def test_connect_failure_raises_collector_error(monkeypatch):
    def refuse(**kwargs):
        raise pymysql.OperationalError(2003, "Can't connect to MySQL server")

    monkeypatch.setattr(pymysql, "connect", refuse)

    with pytest.raises(CollectorError, match="cannot connect"):
        MariaDBCollector(_make_conf())


def test_timed_out_read_raises_collector_error():
    conn = _FakeConnection([])
    conn.fail_query = pymysql.OperationalError(
        2013, "Lost connection to MySQL server during query (timed out)"
    )
    collector = MariaDBCollector(_make_conf(), connection=conn)

    with pytest.raises(CollectorError, match="timed out"):
        collector.collect()


def test_connect_passes_io_timeouts(monkeypatch):
    seen = {}

    def fake_connect(**kwargs):
        seen.update(kwargs)
        return _FakeConnection([])

    monkeypatch.setattr(pymysql, "connect", fake_connect)

    MariaDBCollector(_make_conf(read_timeout=4.0, write_timeout=6.0))

    assert seen["read_timeout"] == 4.0
    assert seen["write_timeout"] == 6.0
    assert seen["connect_timeout"] == 5.0
