"""
SM-2 Spaced Repetition Scheduler.

Implements:
- SM-2 algorithm for review intervals and easiness updates
- Read-only classification of review states (new / due / lapsed / upcoming)
- Due-item selection for review sessions

SM-2 Grade Scale:
0 - Complete blackout, wrong response
1 - Incorrect, but upon seeing answer remembered
2 - Incorrect, but answer seemed easy to recall
3 - Correct, but with significant difficulty
4 - Correct, with some hesitation
5 - Correct, with perfect recall
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone

from loguru import logger

from neuroforge.errors import InvalidInputError, require_aware

from .models import MIN_EASINESS, DueBucket, ReviewHistoryEntry, ReviewState, ReviewStatus

PASS_THRESHOLD = 3
MAX_GRADE = 5

# =============================================================================
# SM-2 Algorithm
# =============================================================================


@dataclass(frozen=True)
class SM2Config:
    """Configuration for SM-2 algorithm."""

    initial_easiness: float = 2.5
    minimum_easiness: float = 1.3
    initial_interval: float = 1.0  # Days for first review and after a failure
    second_interval: float = 6.0  # Days for second review
    mastery_repetitions: int = 8  # Must be exceeded for mastery
    mastery_interval_days: float = 60.0  # Must be exceeded for mastery
    history_limit: int = 50
    lapse_after_days: float = 0.0

    def __post_init__(self) -> None:
        if self.minimum_easiness < MIN_EASINESS:
            raise InvalidInputError(
                f"minimum_easiness must be >= {MIN_EASINESS}, got {self.minimum_easiness}",
                field="minimum_easiness",
                value=self.minimum_easiness,
            )
        if self.initial_easiness < self.minimum_easiness:
            raise InvalidInputError("initial_easiness must be >= minimum_easiness")
        if self.initial_interval <= 0 or self.second_interval <= 0:
            raise InvalidInputError("intervals must be positive")
        if self.history_limit < 1:
            raise InvalidInputError("history_limit must be at least 1")


def validate_grade(grade: object) -> int:
    """Reject anything that is not an integer grade in 0-5."""
    if isinstance(grade, bool) or not isinstance(grade, int) or not 0 <= grade <= MAX_GRADE:
        raise InvalidInputError(
            f"Performance grade must be an integer between 0 and {MAX_GRADE}, got {grade!r}",
            field="grade",
            value=grade,
        )
    return grade



class SM2Scheduler:
    """
    Implements the SM-2 spaced repetition algorithm.

    The SuperMemo 2 algorithm calculates review intervals based on
    performance history. Each item has:
    - Easiness Factor (EF): How easy the item is (2.5 default, min 1.3)
    - Interval: Days until next review
    - Repetitions: Consecutive correct recalls

    ``compute_next`` is a pure function of (prior state, grade, now), so a
    caller that loses an optimistic-lock race can simply reload and re-apply.
    """

    def __init__(self, config: SM2Config | None = None):
        """
        Initialize SM-2 scheduler.

        Args:
            config: Custom configuration (uses defaults if None)
        """
        self.config = config or SM2Config()

    def initial_state(self, learner_id: str, item_id: str) -> ReviewState:
        """Default state for an item the learner has never been graded on."""
        return ReviewState(
            learner_id=learner_id,
            item_id=item_id,
            easiness_factor=self.config.initial_easiness,
            interval_days=self.config.initial_interval,
        )

    def seed_state(self, learner_id: str, item_id: str, now: datetime) -> ReviewState:
        """
        State for an item first exposed by completing its lesson.

        The item becomes due after the initial interval.
        """
        require_aware(now, "now")
        return replace(
            self.initial_state(learner_id, item_id),
            next_review_date=now + timedelta(days=self.config.initial_interval),
            last_reviewed_date=now,
            status=ReviewStatus.IN_PROGRESS,
        )

    def compute_next(self, prior: ReviewState, grade: int, now: datetime) -> ReviewState:
        """
        Calculate the next review state based on grade.

        Args:
            prior: Current state for the item
            grade: Learner grade (0-5)
            now: Review time (timezone-aware)

        Returns:
            New ReviewState with updated interval, EF and history

        Raises:
            InvalidInputError: grade outside 0-5 or naive ``now``
        """
        validate_grade(grade)
        require_aware(now, "now")
        cfg = self.config

        # Update easiness factor
        # EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
        miss = MAX_GRADE - grade
        ef_delta = 0.1 - miss * (0.08 + miss * 0.02)
        new_ef = max(cfg.minimum_easiness, prior.easiness_factor + ef_delta)

        # Determine repetitions and interval
        if grade < PASS_THRESHOLD:
            # Failed - reset to beginning
            new_repetitions = 0
            new_interval = cfg.initial_interval
            if prior.status is ReviewStatus.NOT_STARTED:
                new_status = ReviewStatus.NOT_STARTED
            else:
                new_status = ReviewStatus.IN_PROGRESS
        else:
            # Passed - advance
            new_repetitions = prior.repetitions + 1

            if new_repetitions == 1:
                new_interval = cfg.initial_interval
            elif new_repetitions == 2:
                new_interval = cfg.second_interval
            else:
                new_interval = float(max(1, round(prior.interval_days * new_ef)))

            if new_repetitions > cfg.mastery_repetitions and new_interval > cfg.mastery_interval_days:
                new_status = ReviewStatus.MASTERED
            else:
                new_status = ReviewStatus.COMPLETED

        entry = ReviewHistoryEntry(
            date=now,
            grade=grade,
            interval_days=new_interval,
            easiness_factor=new_ef,
        )
        history = (*prior.review_history, entry)[-cfg.history_limit :]

        new_state = replace(
            prior,
            easiness_factor=new_ef,
            repetitions=new_repetitions,
            interval_days=new_interval,
            next_review_date=now + timedelta(days=new_interval),
            last_reviewed_date=now,
            status=new_status,
            review_history=history,
        )

        logger.debug(
            f"SM-2 {prior.learner_id}/{prior.item_id}: grade={grade} "
            f"reps {prior.repetitions}->{new_repetitions} "
            f"interval {prior.interval_days}->{new_interval}d EF={new_ef:.2f} status={new_status.value}"
        )
        return new_state

    # =========================================================================
    # Classification (read-only)
    # =========================================================================

    def classify(self, state: ReviewState, as_of: datetime) -> DueBucket:
        """Bucket a state as new, due now, lapsed or upcoming."""
        if state.next_review_date is None:
            return DueBucket.NEW
        if state.next_review_date > as_of:
            return DueBucket.UPCOMING

        lapse_threshold = max(state.interval_days, self.config.lapse_after_days)
        if state.days_overdue(as_of) >= lapse_threshold:
            return DueBucket.LAPSED
        return DueBucket.DUE_NOW

    def due_items(self, states: Iterable[ReviewState], as_of: datetime, limit: int) -> list[ReviewState]:
        """
        Select states due for review.

        Most overdue first; ties go to the lowest easiness factor (harder
        items), then to item id so the order is deterministic.

        Args:
            states: Candidate states (typically one learner's records)
            as_of: Cut-off time
            limit: Maximum states to return

        Returns:
            Ordered list of due states
        """
        validate_limit(limit)
        due = [s for s in states if s.is_due(as_of)]
        due.sort(key=due_order_key)
        return due[:limit]

    def grade_from_response(
        self,
        is_correct: bool,
        response_ms: int,
        expected_ms: int = 10000,
    ) -> int:
        """
        Convert a response to an SM-2 grade.

        Args:
            is_correct: Whether the answer was correct
            response_ms: Time taken to respond
            expected_ms: Expected response time

        Returns:
            Grade 0-5
        """
        if response_ms < 0 or expected_ms <= 0:
            raise InvalidInputError("response times must be non-negative", field="response_ms", value=response_ms)

        if not is_correct:
            # Incorrect responses: 0-2
            if response_ms < expected_ms * 0.5:
                return 2  # Quick wrong = almost knew it
            elif response_ms < expected_ms:
                return 1  # Wrong but remembered when shown
            else:
                return 0  # Complete blackout

        # Correct responses: 3-5
        if response_ms < expected_ms * 0.5:
            return 5  # Quick and correct = perfect recall
        elif response_ms < expected_ms:
            return 4  # Correct with some hesitation
        else:
            return 3  # Correct but struggled


# Unscheduled states sort last
_NEVER = datetime.max.replace(tzinfo=timezone.utc)


def due_order_key(state: ReviewState) -> tuple[datetime, float, str]:
    return (state.next_review_date or _NEVER, state.easiness_factor, state.item_id)


def validate_limit(limit: object) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
        raise InvalidInputError(f"limit must be a non-negative integer, got {limit!r}", field="limit", value=limit)
    return limit
