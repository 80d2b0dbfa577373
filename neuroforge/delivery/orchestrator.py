"""
Review Session Orchestrator.

Composes the SM-2 scheduler, the review/completion stores, the path planner
and the recommendation cache:

1. start_session  - frozen batch of due items (read-only)
2. submit_grade   - load, compute_next, compare-and-set, retry on conflict
3. complete_unit  - record completion, seed review records, invalidate plans
4. recommend      - cached "what's next" plan
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from loguru import logger

from neuroforge.curriculum.planner import PathPlanner
from neuroforge.curriculum.progress import CompletionStore, SnapshotBuilder
from neuroforge.curriculum.store import DependencyGraphStore
from neuroforge.errors import (
    ConcurrencyConflictError,
    NotFoundError,
    TransientFailureError,
    require_identifier,
)
from neuroforge.srs.models import DueBucket, ReviewState
from neuroforge.srs.scheduler import SM2Scheduler, validate_grade, validate_limit
from neuroforge.srs.store import ReviewRecordStore

from .cache import RecommendationCache, constraint_key
from .events import EventSink, EventType, LearnerEvent, NullEventSink


@dataclass(frozen=True)
class ReviewSession:
    """
    A prepared review batch.

    The order is fixed for the life of the session; items that become due
    later are picked up by starting a new session.
    """

    learner_id: str
    started_at: datetime
    items: tuple[ReviewState, ...] = ()
    buckets: dict[str, DueBucket] = field(default_factory=dict)

    @property
    def item_ids(self) -> list[str]:
        return [state.item_id for state in self.items]

    @property
    def total_items(self) -> int:
        return len(self.items)

    @property
    def lapsed_count(self) -> int:
        return sum(1 for bucket in self.buckets.values() if bucket is DueBucket.LAPSED)


@dataclass(frozen=True)
class UnitCompletion:
    """Outcome of completing a unit."""

    unit_id: str
    newly_completed: bool
    seeded_items: tuple[str, ...] = ()


class ReviewSessionOrchestrator:
    """Entry point of the learning core for the surrounding service layer."""

    def __init__(
        self,
        review_store: ReviewRecordStore,
        graph_store: DependencyGraphStore,
        completion_store: CompletionStore,
        scheduler: SM2Scheduler | None = None,
        planner: PathPlanner | None = None,
        cache: RecommendationCache | None = None,
        events: EventSink | None = None,
        max_conflict_retries: int = 3,
        validate_items: bool = True,
    ):
        """
        Initialize the orchestrator.

        Args:
            review_store: Review Record Store
            graph_store: Dependency Graph Store
            completion_store: Learner completion records
            scheduler: SM2Scheduler (creates default if None)
            planner: PathPlanner (creates default if None)
            cache: RecommendationCache (creates default if None)
            events: Gamification event sink (events dropped if None)
            max_conflict_retries: Re-applications after an optimistic-lock conflict
            validate_items: Reject grades for items no unit teaches
        """
        self.review_store = review_store
        self.graph_store = graph_store
        self.completion_store = completion_store
        self.scheduler = scheduler or SM2Scheduler()
        self.planner = planner or PathPlanner()
        self.cache = cache if cache is not None else RecommendationCache()
        self.events = events if events is not None else NullEventSink()
        self.max_conflict_retries = max_conflict_retries
        self.validate_items = validate_items
        self.snapshots = SnapshotBuilder(graph_store, review_store, completion_store, self.scheduler.config)

    # =========================================================================
    # Reviews
    # =========================================================================

    def start_session(self, learner_id: str, max_items: int, now: datetime | None = None) -> ReviewSession:
        """
        Build a review batch of due items.

        Args:
            learner_id: Learner identifier
            max_items: Maximum items in the batch
            now: Cut-off time (defaults to current UTC time)

        Returns:
            ReviewSession, most overdue first
        """
        require_identifier(learner_id, "learner_id")
        validate_limit(max_items)
        now = now or datetime.now(timezone.utc)

        items = tuple(self.review_store.query_due(learner_id, now, max_items))
        buckets = {state.item_id: self.scheduler.classify(state, now) for state in items}
        session = ReviewSession(learner_id=learner_id, started_at=now, items=items, buckets=buckets)

        logger.info(
            f"Review session for {learner_id}: {session.total_items} due "
            f"({session.lapsed_count} lapsed)"
        )
        return session

    def submit_grade(
        self,
        learner_id: str,
        item_id: str,
        grade: int,
        now: datetime | None = None,
    ) -> ReviewState:
        """
        Apply a grade and persist the new state.

        A missing record is a first exposure, not an error. Optimistic-lock
        conflicts are retried by reloading and re-applying the grade.

        Raises:
            InvalidInputError: grade outside 0-5 or malformed identifiers
            NotFoundError: item not taught by any unit (when validating items)
            TransientFailureError: conflicts persisted past the retry budget
        """
        require_identifier(learner_id, "learner_id")
        require_identifier(item_id, "item_id")
        validate_grade(grade)
        if self.validate_items:
            self._require_known_item(item_id)
        now = now or datetime.now(timezone.utc)

        attempts = self.max_conflict_retries + 1
        last_conflict: ConcurrencyConflictError | None = None
        for attempt in range(1, attempts + 1):
            prior = self.review_store.get(learner_id, item_id)
            if prior is None:
                prior = self.scheduler.initial_state(learner_id, item_id)

            new_state = self.scheduler.compute_next(prior, grade, now)
            try:
                committed = self.review_store.put(new_state, expected_version=prior.version)
                break
            except ConcurrencyConflictError as e:
                last_conflict = e
                logger.warning(f"Conflict on {learner_id}/{item_id} (attempt {attempt}/{attempts}): {e}")
        else:
            raise TransientFailureError(
                f"Could not record grade for {learner_id}/{item_id} after {attempts} attempts",
                attempts=attempts,
            ) from last_conflict

        self.cache.invalidate(learner_id)
        self._publish(
            LearnerEvent(
                learner_id=learner_id,
                event=EventType.GRADE_SUBMITTED,
                occurred_at=now,
                payload={
                    "item_id": item_id,
                    "grade": grade,
                    "passed": grade >= 3,
                    "status": committed.status.value,
                    "interval_days": committed.interval_days,
                    "easiness_factor": committed.easiness_factor,
                    "next_review_date": committed.next_review_date.isoformat()
                    if committed.next_review_date
                    else None,
                },
            )
        )

        logger.info(
            f"SRS progress updated for {learner_id}, item {item_id}: grade={grade}, "
            f"next review {committed.next_review_date:%Y-%m-%d} ({committed.interval_days:g}d)"
        )
        return committed

    # =========================================================================
    # Curriculum
    # =========================================================================

    def complete_unit(self, learner_id: str, unit_id: str, now: datetime | None = None) -> UnitCompletion:
        """
        Mark a unit completed and invalidate the learner's cached plans.

        Items taught by the unit get a review record on first exposure so
        they come up for review after the initial interval.

        Raises:
            NotFoundError: unknown unit
        """
        require_identifier(learner_id, "learner_id")
        require_identifier(unit_id, "unit_id")
        unit = self.graph_store.get_unit(unit_id)
        if unit is None:
            raise NotFoundError("unit", unit_id)
        now = now or datetime.now(timezone.utc)

        newly_completed = self.completion_store.mark_completed(learner_id, unit_id, now)

        seeded = []
        for item_id in unit.item_ids:
            if self.review_store.get(learner_id, item_id) is not None:
                continue
            try:
                self.review_store.put(self.scheduler.seed_state(learner_id, item_id, now), expected_version=0)
                seeded.append(item_id)
            except ConcurrencyConflictError:
                # A concurrent grade created the record first; it takes precedence
                logger.debug(f"Review record for {learner_id}/{item_id} already created")

        # Unconditional: completion changes the frontier
        self.cache.invalidate(learner_id)
        self._publish(
            LearnerEvent(
                learner_id=learner_id,
                event=EventType.UNIT_COMPLETED,
                occurred_at=now,
                payload={
                    "unit_id": unit_id,
                    "newly_completed": newly_completed,
                    "seeded_items": list(seeded),
                    "tags": sorted(unit.tags),
                },
            )
        )

        logger.info(
            f"Unit {unit_id} completed by {learner_id}"
            + (f", {len(seeded)} item(s) scheduled" if seeded else "")
        )
        return UnitCompletion(unit_id=unit_id, newly_completed=newly_completed, seeded_items=tuple(seeded))

    def recommend(
        self,
        learner_id: str,
        constraint_unit_ids: Iterable[str] | None = None,
        now: datetime | None = None,
    ) -> list[str]:
        """
        Ranked "what's next" plan, served from cache when possible.

        Every miss is resolved by recomputing through the planner. A plan
        computed on an older curriculum version counts as a miss.
        """
        require_identifier(learner_id, "learner_id")
        constraint = list(constraint_unit_ids) if constraint_unit_ids is not None else None
        key = constraint_key(constraint)

        graph = self.graph_store.graph()
        cached = self.cache.get(learner_id, key, graph_version=graph.version)
        if cached is not None:
            return list(cached)

        generation = self.cache.generation(learner_id)
        now = now or datetime.now(timezone.utc)
        snapshot = self.snapshots.get_snapshot(learner_id)
        plan = self.planner.plan(graph, snapshot, constraint, now=now)

        self.cache.put(learner_id, key, plan, generation=generation, computed_at=now, graph_version=graph.version)
        logger.info(f"Plan for {learner_id}: {plan[:5]}{'...' if len(plan) > 5 else ''}")
        return plan

    def _require_known_item(self, item_id: str) -> None:
        for unit in self.graph_store.list_all_units():
            if item_id in unit.item_ids:
                return
        raise NotFoundError("item", item_id)

    def _publish(self, event: LearnerEvent) -> None:
        # The write is already committed; a failing sink must not undo or repeat it
        try:
            self.events.publish(event)
        except Exception:
            logger.exception(f"Event sink failed on {event.event.value} for {event.learner_id}")
