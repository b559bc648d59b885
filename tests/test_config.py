from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import yaml

import kinopio_cli.config as config_mod
from kinopio_cli.config import (
    Config,
    ConfigError,
    PersistenceError,
    default_config_path,
    load_config,
    save_config,
)
from kinopio_cli.scheduler import Scheduler

T0 = datetime(2024, 5, 1, 9, 0, tzinfo=UTC)


def test_load_creates_default_file(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "kinopio.yaml"

    conf = load_config(path)

    assert path.exists()
    assert conf.api_key == ""
    assert conf.inbox_space_id == ""
    assert conf.schedule.is_empty
    assert conf.dirs() == [path.parent]

    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert raw["api_key"] == ""
    assert raw["schedule"] == {"topics": [], "current": 0, "time_slice": "0s"}


def test_save_then_load_keeps_schedule(tmp_path: Path) -> None:
    path = tmp_path / "kinopio.yaml"
    conf = Config(path=path, api_key="k", inbox_space_id="inbox")
    conf.schedule = Scheduler.seed(["A", "B"], time_slice=timedelta(minutes=25), now=T0)
    conf.schedule.advance(T0 + timedelta(minutes=30))
    save_config(conf)

    loaded = load_config(path)

    assert loaded.api_key == "k"
    assert loaded.inbox_space_id == "inbox"
    assert loaded.schedule == conf.schedule
    assert loaded.schedule.current == 1
    assert loaded.schedule.topics[1].start == T0 + timedelta(minutes=30)


def test_load_reads_hand_written_file(tmp_path: Path) -> None:
    path = tmp_path / "kinopio.yaml"
    path.write_text(
        "api_key: abc\n"
        "inbox_space_id: xyz\n"
        "schedule:\n"
        "  topics:\n"
        "    - name: Reading\n"
        "      start: 2024-05-01T09:00:00Z\n"
        "    - name: Writing\n"
        "  current: 0\n"
        "  time_slice: 1h\n",
        encoding="utf-8",
    )

    conf = load_config(path)

    assert [t.name for t in conf.schedule.topics] == ["Reading", "Writing"]
    assert conf.schedule.topics[0].start == T0
    assert conf.schedule.time_slice == timedelta(hours=1)


def test_load_without_schedule_section(tmp_path: Path) -> None:
    path = tmp_path / "kinopio.yaml"
    path.write_text("api_key: abc\ninbox_space_id: xyz\n", encoding="utf-8")
    assert load_config(path).schedule == Scheduler()


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "api_key: [unclosed\n",
        "schedule: nope\n",
        "schedule:\n  time_slice: forever\n",
        "schedule:\n  topics:\n    - Reading\n    - name: Writing\n  current: 1\n",
    ],
)
def test_load_rejects_invalid_documents(tmp_path: Path, content: str) -> None:
    path = tmp_path / "kinopio.yaml"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(path)


def test_require_credentials(tmp_path: Path) -> None:
    conf = Config(path=tmp_path / "kinopio.yaml")
    with pytest.raises(ConfigError, match="api_key must be set"):
        conf.require_credentials()

    conf.api_key = "k"
    with pytest.raises(ConfigError, match="inbox_space_id must be set"):
        conf.require_credentials()

    conf.inbox_space_id = "inbox"
    conf.require_credentials()


def test_default_config_path_honours_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("KINOPIO_CONFIG", str(tmp_path / "custom.yaml"))
    assert default_config_path() == tmp_path / "custom.yaml"

    monkeypatch.delenv("KINOPIO_CONFIG")
    assert default_config_path().name == "kinopio.yaml"
    assert default_config_path().parent.name.lower() == "kinopio"


def test_save_failure_leaves_previous_file(monkeypatch, tmp_path: Path) -> None:
    path = tmp_path / "kinopio.yaml"
    conf = Config(path=path, api_key="old")
    save_config(conf)

    def _boom(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(config_mod.os, "replace", _boom)
    conf.api_key = "new"
    with pytest.raises(PersistenceError, match="disk full"):
        save_config(conf)

    assert yaml.safe_load(path.read_text(encoding="utf-8"))["api_key"] == "old"
    assert [p.name for p in tmp_path.iterdir()] == ["kinopio.yaml"]
    assert os.path.exists(path)
