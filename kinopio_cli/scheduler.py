"""Round-robin scheduling over the cards of a box.

The ring of topics is fixed when it is seeded; afterwards only the cursor and
the current topic's start time move. Nothing here touches the clock or the
config file: callers pass `now` in and persist the scheduler when it changes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from kinopio_cli.common import format_duration, parse_duration
from kinopio_cli.models import Topic

logger = logging.getLogger(__name__)


class NoTopicsError(RuntimeError):
    pass


@dataclass(slots=True)
class Scheduler:
    topics: list[Topic] = field(default_factory=list)
    current: int = 0
    time_slice: timedelta = timedelta(0)

    @classmethod
    def seed(cls, names: Iterable[str], *, time_slice: timedelta, now: datetime) -> Scheduler:
        topics = [Topic(name=name) for name in names]
        # A lone topic is left unstarted; its first advance stamps it.
        if len(topics) > 1:
            topics[0] = topics[0].started(now)
        logger.debug("seeded %d topic(s), time_slice=%s", len(topics), format_duration(time_slice))
        return cls(topics=topics, current=0, time_slice=time_slice)

    @property
    def is_empty(self) -> bool:
        return not self.topics

    def current_topic(self) -> Topic:
        if not self.topics:
            raise NoTopicsError("no topics found")
        return self.topics[self.current]

    def advance(self, now: datetime) -> tuple[Topic, bool]:
        """Move to the next topic once the current one has had its time slice.

        Returns the topic that is current after the call and whether the
        cursor moved. Only a moved cursor needs to be persisted.
        """
        topic = self.current_topic()
        if topic.start is not None and now - topic.start < self.time_slice:
            logger.debug("holding %r (%s into %s)", topic.name, now - topic.start, self.time_slice)
            return topic, False

        self.current = (self.current + 1) % len(self.topics)
        nxt = self.topics[self.current].started(now)
        self.topics[self.current] = nxt
        logger.debug("advanced to %r (index %d)", nxt.name, self.current)
        return nxt, True

    def clear(self) -> None:
        self.topics = []
        self.current = 0
        self.time_slice = timedelta(0)
        logger.debug("cleared schedule")

    def to_dict(self) -> dict[str, Any]:
        return {
            "topics": [t.to_dict() for t in self.topics],
            "current": self.current,
            "time_slice": format_duration(self.time_slice),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Scheduler:
        if not data:
            return cls()
        raw_topics = data.get("topics") or []
        if not isinstance(raw_topics, list):
            raise ValueError("schedule.topics must be a list")
        if not all(isinstance(t, dict) for t in raw_topics):
            raise ValueError("schedule.topics entries must be mappings")
        topics = [Topic.from_dict(t) for t in raw_topics]
        current = int(data.get("current") or 0)
        if not 0 <= current < max(len(topics), 1):
            logger.warning("schedule.current=%d out of range, resetting to 0", current)
            current = 0
        return cls(topics=topics, current=current, time_slice=parse_duration(data.get("time_slice")))
