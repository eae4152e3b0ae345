"""
mariadb-tscl entry point.

Usage:
    mariadb-tscl start config.json           Collect from MariaDB
    mariadb-tscl start --mock config.json    Collect from the simulator
    mariadb-tscl version                     Print build info
"""

from __future__ import annotations

import asyncio
import logging

import click
from rich.logging import RichHandler

from mariadb_tscl.app import run
from mariadb_tscl.collector.mariadb_collector import MariaDBCollector
from mariadb_tscl.collector.mock_collector import MockCollector
from mariadb_tscl.config import LoggingConf, load_config
from mariadb_tscl.errors import CollectorError, ConfigError, ReportingError
from mariadb_tscl.version import VersionInfo


log = logging.getLogger("mariadb_tscl")

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def setup_logging(conf: LoggingConf, verbose: bool = False):
    """Log to `conf.path` if set, otherwise to the terminal via Rich."""
    if conf.path:
        handler = logging.FileHandler(conf.path, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    else:
        handler = RichHandler(show_path=False)
        handler.setFormatter(logging.Formatter("[%(name)s] %(message)s"))
    logging.basicConfig(
        level=logging.DEBUG if verbose else conf.level_no,
        handlers=[handler],
        force=True,
    )


@click.group()
@click.pass_context
def cli(ctx):
    """mariadb-tscl - MariaDB status counters to TimescaleDB."""
    ctx.obj = VersionInfo.from_environment()


@cli.command()
@click.pass_obj
def version(info: VersionInfo):
    """Print version, build date and last commit."""
    click.echo(info.describe())


@cli.command()
@click.argument("config_path", required=False, default="")
@click.option("--mock", is_flag=True, default=False, help="Use a simulated MariaDB server")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging")
@click.pass_obj
def start(info: VersionInfo, config_path: str, mock: bool, verbose: bool):
    """Start collecting with the given JSON config file."""
    try:
        conf = load_config(config_path)
    except ConfigError as e:
        click.echo(str(e), err=True)
        raise SystemExit(1)

    setup_logging(conf.logging, verbose=verbose)
    log.info("Starting MariaDB-TSCL %s (instance %s)", info.version, conf.instance_name)

    try:
        collector = MockCollector() if mock else MariaDBCollector(conf.db)
    except CollectorError as e:
        log.error("Cannot open the monitored database: %s", e)
        raise SystemExit(1)

    try:
        asyncio.run(run(conf, collector))
    except ReportingError as e:
        log.error("Cannot open the reporting database: %s", e)
        raise SystemExit(1)
    finally:
        collector.close()

    log.info("Stopped")


if __name__ == "__main__":
    cli()
