"""Exceptions raised across mariadb-tscl."""


class TsclError(Exception):
    """Base class for all mariadb-tscl errors."""


class ConfigError(TsclError):
    """Config file is missing, unreadable or fails validation."""


class CollectorError(TsclError):
    """A status snapshot could not be taken (connection or query failure)."""


class ReportingError(TsclError):
    """The TimescaleDB connection pool could not be opened."""
