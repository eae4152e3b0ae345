"""
JSON config file loading.

The file has four parts: logging setup, the monitored MariaDB server,
the optional TimescaleDB reporting target, and the collector's own knobs
(instance label, tick interval, timezone, queue size). Leaving out
`reporting` is valid -- records are then written to the log instead.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from psycopg.conninfo import make_conninfo
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from mariadb_tscl.errors import ConfigError

DEFAULT_MARIADB_PORT = 3306
DEFAULT_TICK_INTERVAL_SECS = 10.0
DEFAULT_QUEUE_SIZE = 1000

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class LoggingConf(BaseModel):
    path: Optional[str] = None
    level: str = "info"

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.lower()
        if value not in _LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}")
        return value

    @property
    def level_no(self) -> int:
        return _LOG_LEVELS[self.level]


class DBConf(BaseModel):
    """The monitored MariaDB server.

    `host` may carry a port: `host:port`, or `[v6addr]:port` for IPv6.
    A read or write timeout left unset follows the tick interval (see Conf).
    """

    name: str = ""
    host: str = ""
    user: str = ""
    password: str = ""
    connect_timeout: float = Field(default=5.0, gt=0)
    read_timeout: Optional[float] = Field(default=None, gt=0)
    write_timeout: Optional[float] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _required(self) -> "DBConf":
        if not (self.name or self.host or self.user or self.password):
            raise ValueError("database not configured")
        for attr in ("name", "host", "user", "password"):
            if not getattr(self, attr):
                raise ValueError(f"db.{attr} is missing/empty")
        self.address()  # fail early on a bad port
        return self

    def address(self) -> Tuple[str, int]:
        host, port = self.host, None
        if host.startswith("["):
            end = host.find("]")
            rest = host[end + 1:]
            if end == -1 or (rest and not rest.startswith(":")):
                raise ValueError(f"db.host is not a valid address: {self.host!r}")
            host = host[1:end]
            if rest:
                port = rest[1:]
        elif host.count(":") == 1:
            host, port = host.split(":")
        # a bare IPv6 address has several colons and no port

        if port is None:
            return host, DEFAULT_MARIADB_PORT
        try:
            return host, int(port)
        except ValueError:
            raise ValueError(f"db.host has an invalid port: {self.host!r}") from None


class PgConf(BaseModel):
    host: str = ""
    port: int = 5432
    name: str = ""
    user: str = ""
    password: str = ""
    pool_min_size: int = Field(default=1, ge=1)
    pool_max_size: int = Field(default=4, ge=1)
    connect_timeout: float = Field(default=10.0, gt=0)

    @model_validator(mode="after")
    def _required(self) -> "PgConf":
        if not self.host:
            raise ValueError("reporting set but the `host` is missing")
        if not self.password:
            raise ValueError("reporting set but the `password` is missing")
        if self.pool_max_size < self.pool_min_size:
            raise ValueError("pool_max_size must be >= pool_min_size")
        return self

    def conninfo(self) -> str:
        return make_conninfo(
            host=self.host,
            port=self.port,
            dbname=self.name or None,
            user=self.user or None,
            password=self.password,
        )


class ReportingConf(BaseModel):
    db: PgConf


class Conf(BaseModel):
    logging: LoggingConf = Field(default_factory=LoggingConf)
    db: DBConf
    reporting: Optional[ReportingConf] = None
    instance_name: str = Field(min_length=1)
    tick_interval_secs: float = Field(default=DEFAULT_TICK_INTERVAL_SECS, gt=0)
    timezone: str = "UTC"
    queue_size: int = Field(default=DEFAULT_QUEUE_SIZE, gt=0)

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown timezone {value!r}") from None
        return value

    @model_validator(mode="after")
    def _io_timeouts(self) -> "Conf":
        # a stalled status query must give up before the next tick is due
        if self.db.read_timeout is None:
            self.db.read_timeout = self.tick_interval_secs
        if self.db.write_timeout is None:
            self.db.write_timeout = self.tick_interval_secs
        return self

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def load_config(path: str) -> Conf:
    if not path:
        raise ConfigError("Cannot load config - path not specified")
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot load config {path}: {e}") from e
    try:
        return Conf.model_validate_json(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {path}: {e}") from e
