"""
Learner events for the gamification collaborator.

XP, streaks and achievements are computed elsewhere; the core only emits
grade-submitted and unit-completed notifications.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from loguru import logger


class EventType(str, Enum):
    GRADE_SUBMITTED = "grade-submitted"
    UNIT_COMPLETED = "unit-completed"


@dataclass(frozen=True)
class LearnerEvent:
    learner_id: str
    event: EventType
    occurred_at: datetime
    payload: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class EventSink(Protocol):
    def publish(self, event: LearnerEvent) -> None: ...


class NullEventSink:
    """Discards events; used when no collaborator is wired in."""

    def publish(self, event: LearnerEvent) -> None:
        logger.trace(f"Dropped {event.event.value} event for {event.learner_id}")


class RecordingEventSink:
    """Keeps published events in memory."""

    def __init__(self) -> None:
        self.events: list[LearnerEvent] = []
        self._lock = threading.Lock()

    def publish(self, event: LearnerEvent) -> None:
        with self._lock:
            self.events.append(event)

    def of_type(self, event_type: EventType) -> list[LearnerEvent]:
        with self._lock:
            return [e for e in self.events if e.event is event_type]
