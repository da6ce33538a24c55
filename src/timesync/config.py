"""Configuration management for TimeSync."""

import calendar
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import click
from dotenv import find_dotenv, load_dotenv

from .repository import JsonFileRepository, Repository, SqliteRepository

DATA_DIR = Path.home() / ".timesync"

BACKENDS = ("sqlite", "json")

WEEKDAYS: Dict[str, int] = {
    "monday": calendar.MONDAY,
    "tuesday": calendar.TUESDAY,
    "wednesday": calendar.WEDNESDAY,
    "thursday": calendar.THURSDAY,
    "friday": calendar.FRIDAY,
    "saturday": calendar.SATURDAY,
    "sunday": calendar.SUNDAY,
}


def _parse_week_start(value: str) -> Optional[int]:
    """Accept a weekday name ('sunday', 'mon') or a weekday() number."""
    value = value.strip().lower()
    if value.isdigit() and int(value) in range(7):
        return int(value)
    for name, index in WEEKDAYS.items():
        if len(value) >= 3 and name.startswith(value):
            return index
    return None


@dataclass
class TimeSyncConfig:
    """Runtime configuration, read from TIMESYNC_* environment variables."""

    backend: str = "sqlite"
    db_path: Path = field(default_factory=lambda: DATA_DIR / "timesync.db")
    json_path: Path = field(default_factory=lambda: DATA_DIR / "projects.json")
    week_start_name: str = "sunday"
    tick_ms: str = "1000"
    host: str = "127.0.0.1"
    port: str = "7788"
    verbose: bool = False

    @classmethod
    def from_env(cls) -> "TimeSyncConfig":
        env = os.environ
        return cls(
            backend=env.get("TIMESYNC_BACKEND", "sqlite").strip().lower(),
            db_path=Path(env["TIMESYNC_DB"]).expanduser() if env.get("TIMESYNC_DB") else DATA_DIR / "timesync.db",
            json_path=Path(env["TIMESYNC_JSON"]).expanduser() if env.get("TIMESYNC_JSON") else DATA_DIR / "projects.json",
            week_start_name=env.get("TIMESYNC_WEEK_START", "sunday"),
            tick_ms=env.get("TIMESYNC_TICK_MS", "1000"),
            host=env.get("TIMESYNC_HOST", "127.0.0.1"),
            port=env.get("TIMESYNC_PORT", "7788"),
            verbose=env.get("TIMESYNC_VERBOSE", "false").lower() == "true",
        )

    @property
    def week_start(self) -> int:
        """First day of the week in datetime.weekday() numbering."""
        parsed = _parse_week_start(self.week_start_name)
        return calendar.SUNDAY if parsed is None else parsed

    @property
    def tick_interval_ms(self) -> int:
        return int(self.tick_ms)

    @property
    def server_port(self) -> int:
        return int(self.port)

    def validate(self) -> None:
        """Validate configuration."""
        if self.backend not in BACKENDS:
            raise click.ClickException(
                f"Invalid backend '{self.backend}'. Valid options: {', '.join(BACKENDS)}"
            )
        if _parse_week_start(self.week_start_name) is None:
            raise click.ClickException(
                f"Invalid week start '{self.week_start_name}'. "
                f"Use a weekday name or a number 0-6 (Monday=0)"
            )
        if not self.tick_ms.strip().isdigit() or int(self.tick_ms) <= 0:
            raise click.ClickException(f"Invalid tick interval '{self.tick_ms}' (milliseconds > 0)")
        if not self.port.strip().isdigit() or not 0 < int(self.port) < 65536:
            raise click.ClickException(f"Invalid port '{self.port}'")

    def repository(self) -> Repository:
        """Build the persistence adapter for the configured backend."""
        if self.backend == "json":
            return JsonFileRepository(self.json_path)
        return SqliteRepository(self.db_path)


def get_config(env_file: Optional[Path] = None) -> TimeSyncConfig:
    """Load .env (if any), then build and validate the configuration."""
    load_dotenv(env_file or find_dotenv(usecwd=True))
    config = TimeSyncConfig.from_env()
    config.validate()
    return config


def verbose_option(f):
    """Decorator to add verbose option to commands."""
    return click.option(
        "--verbose", "-v",
        is_flag=True,
        help="Enable verbose output",
    )(f)
