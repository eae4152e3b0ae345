"""
Collector for a live MariaDB (or MySQL) server. Runs SHOW GLOBAL STATUS
for the tracked variables and maps the rows into a Snapshot. Variables
the server doesn't expose (they vary by version and storage engine) are
simply absent and read as zero downstream.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pymysql

from mariadb_tscl.collector.base import StatusCollector
from mariadb_tscl.config import DBConf
from mariadb_tscl.errors import CollectorError
from mariadb_tscl.metrics import TRACKED_FIELDS, Snapshot

# Server-side spelling, e.g. com_select -> Com_select
STATUS_VARIABLES = tuple(name.capitalize() for name in TRACKED_FIELDS)

_STATUS_QUERY = "SHOW GLOBAL STATUS WHERE Variable_name IN ({})".format(
    ", ".join(["%s"] * len(STATUS_VARIABLES))
)


class MariaDBCollector(StatusCollector):

    def __init__(self, conf: DBConf, connection=None):
        self._host, self._port = conf.address()
        self._db_name = conf.name
        if connection is not None:
            self._conn = connection
            return
        try:
            self._conn = pymysql.connect(
                host=self._host,
                port=self._port,
                user=conf.user,
                password=conf.password,
                database=conf.name,
                connect_timeout=conf.connect_timeout,
                # without these a server that stops answering blocks forever
                read_timeout=conf.read_timeout,
                write_timeout=conf.write_timeout,
                autocommit=True,
            )
        except pymysql.MySQLError as e:
            raise CollectorError(f"cannot connect to {self._host}:{self._port}: {e}") from e

    def collect(self) -> Snapshot:
        """Query the status counters, return a snapshot."""
        try:
            # reconnects if the server dropped us since the last tick
            self._conn.ping(reconnect=True)
            with self._conn.cursor() as cursor:
                cursor.execute(_STATUS_QUERY, STATUS_VARIABLES)
                rows = cursor.fetchall()
        except pymysql.MySQLError as e:
            raise CollectorError(f"status query failed: {e}") from e

        values = {}
        for variable, value in rows:
            try:
                values[variable.lower()] = int(value)
            except (TypeError, ValueError):
                raise CollectorError(
                    f"non-integer value for {variable}: {value!r}"
                ) from None

        return Snapshot(timestamp=datetime.now(timezone.utc), values=values)

    def name(self) -> str:
        return f"MariaDB ({self._host}:{self._port}/{self._db_name})"

    def close(self):
        try:
            self._conn.close()
        except pymysql.MySQLError:
            # already closed by the server
            pass
