"""Config file handling.

The whole document (credentials plus round-robin state) is read at the start of
every command and written back in one piece when something changes.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import click
import yaml

from kinopio_cli.scheduler import Scheduler

logger = logging.getLogger(__name__)

APP_NAME = "kinopio"
CONFIG_FILENAME = "kinopio.yaml"


class ConfigError(RuntimeError):
    pass


class PersistenceError(RuntimeError):
    pass


def default_config_path() -> Path:
    raw = os.environ.get("KINOPIO_CONFIG")
    if raw:
        return Path(raw).expanduser()
    return Path(click.get_app_dir(APP_NAME)) / CONFIG_FILENAME


@dataclass(slots=True)
class Config:
    path: Path
    api_key: str = ""
    inbox_space_id: str = ""
    schedule: Scheduler = field(default_factory=Scheduler)

    @property
    def dir_path(self) -> Path:
        return self.path.parent

    def dirs(self) -> list[Path]:
        return [self.dir_path]

    def require_credentials(self) -> None:
        if not self.api_key:
            raise ConfigError(
                "api_key must be set in config file. "
                "Use `kp config` to open the config file with your $EDITOR"
            )
        if not self.inbox_space_id:
            raise ConfigError(
                "inbox_space_id must be set in config file. "
                "Use `kp config` to open the config file with your $EDITOR"
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "api_key": self.api_key,
            "inbox_space_id": self.inbox_space_id,
            "schedule": self.schedule.to_dict(),
        }


def _write_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def _dump(config: Config) -> str:
    return yaml.safe_dump(config.to_dict(), sort_keys=False, allow_unicode=True)


def save_config(config: Config) -> None:
    try:
        _write_atomic(config.path, _dump(config))
    except OSError as e:
        raise PersistenceError(f"error writing config file {config.path}: {e}") from e
    logger.debug("saved config to %s", config.path)


def load_config(path: Path | None = None) -> Config:
    path = path or default_config_path()

    if not path.exists():
        logger.debug("creating default config at %s", path)
        save_config(Config(path=path))

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"error reading config file: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"error parsing config file {path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Invalid YAML root object in config file: {path}")

    schedule_raw = raw.get("schedule")
    if schedule_raw is not None and not isinstance(schedule_raw, dict):
        raise ConfigError("schedule must be a mapping")
    try:
        schedule = Scheduler.from_dict(schedule_raw)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"invalid schedule in config file: {e}") from e

    logger.debug("loaded config from %s", path)
    return Config(
        path=path,
        api_key=str(raw.get("api_key") or ""),
        inbox_space_id=str(raw.get("inbox_space_id") or ""),
        schedule=schedule,
    )
