"""
Spaced repetition value types.

ReviewState is immutable: the scheduler returns a new state for every grade
and the store is the only place a state is replaced.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from neuroforge.errors import InvalidInputError, require_identifier

DEFAULT_EASINESS = 2.5
MIN_EASINESS = 1.3
DEFAULT_INTERVAL_DAYS = 1.0


class ReviewStatus(str, Enum):
    """Progress status of a single learning item."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    MASTERED = "mastered"


class DueBucket(str, Enum):
    """Read-only classification of a review state at a point in time."""

    NEW = "new"  # Never scheduled
    DUE_NOW = "due_now"
    LAPSED = "lapsed"  # Overdue by at least a full interval
    UPCOMING = "upcoming"


@dataclass(frozen=True)
class ReviewHistoryEntry:
    """A single graded review."""

    date: datetime
    grade: int  # 0-5 SM-2 scale
    interval_days: float
    easiness_factor: float

    def to_dict(self) -> dict[str, object]:
        return {
            "date": self.date.isoformat(),
            "grade": self.grade,
            "interval_days": self.interval_days,
            "easiness_factor": self.easiness_factor,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> ReviewHistoryEntry:
        return cls(
            date=datetime.fromisoformat(str(data["date"])),
            grade=int(data["grade"]),
            interval_days=float(data["interval_days"]),
            easiness_factor=float(data["easiness_factor"]),
        )


@dataclass(frozen=True)
class ReviewState:
    """SM-2 state for one learner x item pair."""

    learner_id: str
    item_id: str
    easiness_factor: float = DEFAULT_EASINESS
    repetitions: int = 0  # Consecutive correct recalls
    interval_days: float = DEFAULT_INTERVAL_DAYS
    next_review_date: datetime | None = None
    last_reviewed_date: datetime | None = None
    status: ReviewStatus = ReviewStatus.NOT_STARTED
    review_history: tuple[ReviewHistoryEntry, ...] = field(default_factory=tuple)
    version: int = 0  # Committed writes, bumped by the store

    def __post_init__(self) -> None:
        require_identifier(self.learner_id, "learner_id")
        require_identifier(self.item_id, "item_id")
        if self.easiness_factor < MIN_EASINESS:
            raise InvalidInputError(
                f"easiness_factor must be >= {MIN_EASINESS}, got {self.easiness_factor}",
                field="easiness_factor",
                value=self.easiness_factor,
            )
        if self.repetitions < 0:
            raise InvalidInputError(
                f"repetitions must be >= 0, got {self.repetitions}",
                field="repetitions",
                value=self.repetitions,
            )
        if self.interval_days <= 0:
            raise InvalidInputError(
                f"interval_days must be > 0, got {self.interval_days}",
                field="interval_days",
                value=self.interval_days,
            )
        if (
            self.next_review_date is not None
            and self.last_reviewed_date is not None
            and self.next_review_date < self.last_reviewed_date
        ):
            raise InvalidInputError(
                "next_review_date must not precede last_reviewed_date",
                field="next_review_date",
                value=self.next_review_date,
            )

    @property
    def key(self) -> tuple[str, str]:
        return (self.learner_id, self.item_id)

    @property
    def has_passed(self) -> bool:
        """True once at least one passing grade has been recorded."""
        return any(entry.grade >= 3 for entry in self.review_history)

    def is_due(self, as_of: datetime) -> bool:
        """Check if this item is scheduled and due at ``as_of``."""
        return self.next_review_date is not None and self.next_review_date <= as_of

    def days_overdue(self, as_of: datetime) -> float:
        """Days past the scheduled review date (0 when not yet due)."""
        if self.next_review_date is None:
            return 0.0
        delta = as_of - self.next_review_date
        return max(0.0, delta.total_seconds() / 86400)
