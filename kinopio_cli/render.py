from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta

from kinopio_cli.common import format_duration
from kinopio_cli.scheduler import Scheduler

_PADDING = 2


def render_table(headers: Sequence[str], rows: Iterable[Sequence[object]]) -> str:
    cells = [[str(h) for h in headers]] + [[str(v) for v in row] for row in rows]
    widths = [max(len(r[i]) for r in cells) for i in range(len(headers))]

    lines: list[str] = []
    for r in cells:
        padded = [val.ljust(widths[i] + _PADDING) for i, val in enumerate(r[:-1])]
        lines.append("".join(padded) + r[-1])
    return "\n".join(lines) + "\n"


def render_schedule(scheduler: Scheduler, *, now: datetime) -> str:
    lines: list[str] = [f"Time slice: {format_duration(scheduler.time_slice)}"]
    for i, topic in enumerate(scheduler.topics):
        marker = "*" if i == scheduler.current else " "
        line = f"{marker} {i}  {topic.name}"
        if i == scheduler.current and topic.start is not None:
            elapsed = timedelta(seconds=int((now - topic.start).total_seconds()))
            line += f"  (current for {format_duration(elapsed)})"
        lines.append(line)
    return "\n".join(lines) + "\n"
