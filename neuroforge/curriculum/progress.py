"""
Learner completion state and snapshot construction.

A LearnerPathSnapshot is assembled from several reads (completion records,
review records, the curriculum graph). It is not transactional: the planner
only needs it to be consistent at the moment of the read.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from datetime import datetime
from typing import Protocol, runtime_checkable

from loguru import logger

from neuroforge.errors import NotFoundError, require_identifier
from neuroforge.srs.models import ReviewState, ReviewStatus
from neuroforge.srs.scheduler import SM2Config
from neuroforge.srs.store import ReviewRecordStore

from .models import LearnerPathSnapshot, UnitProgress
from .store import DependencyGraphStore


@runtime_checkable
class CompletionStore(Protocol):
    """Per-learner unit completion records."""

    def mark_completed(self, learner_id: str, unit_id: str, at: datetime) -> bool:
        """Record completion; returns False when it was already recorded."""
        ...

    def completed_units(self, learner_id: str) -> dict[str, datetime]: ...


class InMemoryCompletionStore:
    """Thread-safe completion records; the first completion time is kept."""

    def __init__(self) -> None:
        self._completed: dict[str, dict[str, datetime]] = {}
        self._lock = threading.Lock()

    def mark_completed(self, learner_id: str, unit_id: str, at: datetime) -> bool:
        with self._lock:
            units = self._completed.setdefault(learner_id, {})
            if unit_id in units:
                return False
            units[unit_id] = at
            return True

    def completed_units(self, learner_id: str) -> dict[str, datetime]:
        with self._lock:
            return dict(self._completed.get(learner_id, {}))


def item_mastery(state: ReviewState | None, config: SM2Config) -> float:
    """
    Score one item 0-100 from its review state.

    Half the score comes from consecutive recalls, half from spacing reached,
    each measured against the mastery thresholds.
    """
    if state is None or state.status is ReviewStatus.NOT_STARTED:
        return 0.0
    if state.status is ReviewStatus.MASTERED:
        return 100.0
    recall = min(1.0, state.repetitions / config.mastery_repetitions) if config.mastery_repetitions else 1.0
    spacing = min(1.0, state.interval_days / config.mastery_interval_days) if config.mastery_interval_days else 1.0
    return 50.0 * recall + 50.0 * spacing


class SnapshotBuilder:
    """
    Learner completion/mastery accessor.

    Combines completion records with review states of the items each unit
    teaches to produce the planner's read-only input.
    """

    def __init__(
        self,
        graph_store: DependencyGraphStore,
        review_store: ReviewRecordStore,
        completion_store: CompletionStore,
        config: SM2Config | None = None,
    ):
        self.graph_store = graph_store
        self.review_store = review_store
        self.completion_store = completion_store
        self.config = config or SM2Config()

    def get_snapshot(self, learner_id: str, unit_ids: Iterable[str] | None = None) -> LearnerPathSnapshot:
        """
        Build the snapshot for a learner.

        Args:
            learner_id: Learner identifier
            unit_ids: Restrict unit entries to these units (all units if None)

        Returns:
            LearnerPathSnapshot
        """
        require_identifier(learner_id, "learner_id")
        completed = self.completion_store.completed_units(learner_id)
        states = {s.item_id: s for s in self.review_store.list_for_learner(learner_id)}

        all_units = self.graph_store.list_all_units()
        if unit_ids is not None:
            wanted = set(unit_ids)
            known = {u.unit_id for u in all_units}
            missing = sorted(wanted - known)
            if missing:
                raise NotFoundError("unit", missing[0])
        else:
            wanted = None

        progress: dict[str, UnitProgress] = {}
        tag_activity: dict[str, datetime] = {}

        for unit in all_units:
            completed_at = completed.get(unit.unit_id)
            item_states = [states.get(item_id) for item_id in unit.item_ids]

            if item_states:
                score = sum(item_mastery(s, self.config) for s in item_states) / len(item_states)
            else:
                score = 100.0 if completed_at is not None else 0.0

            last_active = max(
                [s.last_reviewed_date for s in item_states if s is not None and s.last_reviewed_date]
                + ([completed_at] if completed_at is not None else []),
                default=None,
            )
            if last_active is not None:
                for tag in unit.tags:
                    if tag not in tag_activity or tag_activity[tag] < last_active:
                        tag_activity[tag] = last_active

            if wanted is None or unit.unit_id in wanted:
                progress[unit.unit_id] = UnitProgress(
                    completed=completed_at is not None,
                    mastery_score=round(score, 2),
                    completed_at=completed_at,
                )

        logger.debug(
            f"Snapshot for {learner_id}: {sum(p.completed for p in progress.values())}/"
            f"{len(progress)} units completed"
        )
        return LearnerPathSnapshot(learner_id=learner_id, units=progress, tag_activity=tag_activity)
