"""
Build metadata for the running process.

Built once at startup and handed to whatever needs it (the CLI `version`
command, the startup log line). Packaging scripts can stamp the build date
and commit through the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from mariadb_tscl import __version__


@dataclass(frozen=True)
class VersionInfo:
    version: str
    build_date: str = "unknown"
    git_commit: str = "unknown"

    @classmethod
    def from_environment(cls) -> "VersionInfo":
        return cls(
            version=__version__,
            build_date=os.environ.get("MARIADB_TSCL_BUILD_DATE", "unknown"),
            git_commit=os.environ.get("MARIADB_TSCL_GIT_COMMIT", "unknown"),
        )

    def describe(self) -> str:
        return (
            f"mariadb-tscl {self.version}\n"
            f"build date: {self.build_date}\n"
            f"last commit: {self.git_commit}"
        )
