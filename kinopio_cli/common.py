from __future__ import annotations

import os
import re
from datetime import UTC, datetime, timedelta

DEFAULT_API_URL = "https://api.kinopio.club"

_NANOS_PER_UNIT = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_FRACTION = re.compile(r"(\.\d+)")

# Year-1 UTC marks a topic that never started in files written by older clients.
_ZERO_TIME = datetime(1, 1, 1, tzinfo=UTC)


def now() -> datetime:
    return datetime.now(UTC)


def env_int(name: str, *, default: int, min_value: int | None = None) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        value = default
    else:
        try:
            value = int(raw)
        except ValueError as e:
            raise ValueError(f"{name} must be an int") from e
    if min_value is not None and value < min_value:
        raise ValueError(f"{name} must be >= {min_value}")
    return value


def env_str(name: str, *, default: str) -> str:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value


def parse_duration(raw: object) -> timedelta:
    """Parse a duration as stored in the config file.

    Integers are nanoseconds. Strings are unit-suffixed ("1h2m3.5s", "300ms").
    """
    if raw is None or raw == "":
        return timedelta(0)
    if isinstance(raw, bool):
        raise ValueError(f"invalid duration: {raw!r}")
    if isinstance(raw, int):
        return timedelta(microseconds=raw / 1_000)
    if not isinstance(raw, str):
        raise ValueError(f"invalid duration: {raw!r}")

    text = raw.strip()
    sign = 1
    if text[:1] in {"-", "+"}:
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return timedelta(0)
    if text.isdigit():
        return timedelta(microseconds=sign * int(text) / 1_000)

    pos = 0
    total_nanos = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total_nanos += float(match.group(1)) * _NANOS_PER_UNIT[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(text):
        raise ValueError(f"invalid duration: {raw!r}")
    return timedelta(microseconds=sign * total_nanos / 1_000)


def format_duration(value: timedelta) -> str:
    """Render a duration in the unit-suffixed form parse_duration reads ("1h2m3s", "250ms")."""
    micros = (value.days * 86_400 + value.seconds) * 1_000_000 + value.microseconds
    if micros == 0:
        return "0s"
    sign = "-" if micros < 0 else ""
    micros = abs(micros)
    if micros < 1_000_000:
        if micros < 1_000:
            return f"{sign}{micros}µs"
        return f"{sign}{_trim(micros / 1_000)}ms"

    hours, rem = divmod(micros, 3600 * 1_000_000)
    minutes, rem = divmod(rem, 60 * 1_000_000)
    seconds = _trim(rem / 1_000_000)
    out = sign
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    return f"{out}{seconds}s"


def _trim(value: float) -> str:
    return f"{value:.6f}".rstrip("0").rstrip(".")


def parse_timestamp(raw: object) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        value = raw
    elif isinstance(raw, str):
        # RFC3339 allows nanosecond precision; datetime keeps microseconds.
        text = _FRACTION.sub(lambda m: m.group(1)[:7], raw.strip().replace("Z", "+00:00"))
        try:
            value = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValueError(f"invalid timestamp: {raw!r}") from e
    else:
        raise ValueError(f"invalid timestamp: {raw!r}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    if value == _ZERO_TIME:
        return None
    return value


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")
