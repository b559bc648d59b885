from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Any

from kinopio_cli.common import format_duration, format_timestamp, parse_duration, parse_timestamp


@dataclass(frozen=True, slots=True)
class Topic:
    name: str
    start: datetime | None = None
    duration: timedelta = timedelta(0)

    def started(self, at: datetime) -> Topic:
        return replace(self, start=at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "start": format_timestamp(self.start),
            "duration": format_duration(self.duration),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Topic:
        return cls(
            name=str(data.get("name") or ""),
            start=parse_timestamp(data.get("start")),
            duration=parse_duration(data.get("duration")),
        )
