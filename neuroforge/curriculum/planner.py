"""
Prerequisite-Graph Learning-Path Planner.

Determines what a learner should study next based on:
- Prerequisite graph (only the unlockable frontier is considered)
- Authored order hints
- How much of the curriculum a unit opens up
- Continuity with recently studied tags
- Partial mastery on units already started

The frontier is recomputed in a single pass per call because completion
state changes incrementally. Graph integrity (dangling references, cycles)
is verified through a topological layering cached per graph version.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from loguru import logger

from neuroforge.errors import InvalidInputError, NotFoundError, require_aware

from .models import DependencyGraph, LearnerPathSnapshot, LearningUnit
from .topology import topological_layers

SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class PlannerConfig:
    """Ranking weights for frontier candidates."""

    unlock_weight: float = 1.0
    affinity_weight: float = 0.5
    progress_weight: float = 0.25

    def __post_init__(self) -> None:
        for name in ("unlock_weight", "affinity_weight", "progress_weight"):
            if getattr(self, name) < 0:
                raise InvalidInputError(f"{name} must be non-negative", field=name, value=getattr(self, name))


@dataclass(frozen=True)
class RankedUnit:
    """A frontier candidate with the signals used to rank it."""

    unit_id: str
    order_hint: int | None
    newly_unlocked: int
    affinity: float
    partial_mastery: float
    score: float

    def sort_key(self) -> tuple:
        has_hint = 0 if self.order_hint is not None else 1
        return (has_hint, self.order_hint or 0, -self.score, self.unit_id)


class PathPlanner:
    """
    Rank unlockable units into a recommended order.

    Stateless apart from the layering cache, which is keyed by graph version
    and therefore invalidated by any graph edit.
    """

    def __init__(self, config: PlannerConfig | None = None):
        self.config = config or PlannerConfig()
        self._layer_cache: dict[object, list[tuple[str, ...]]] = {}
        self._lock = threading.Lock()

    # =========================================================================
    # Graph structure
    # =========================================================================

    def layers(self, graph: DependencyGraph) -> list[tuple[str, ...]]:
        """
        Topological layering of the whole curriculum.

        Raises:
            GraphIntegrityError: cycle or dangling prerequisite
        """
        with self._lock:
            cached = self._layer_cache.get(graph.version)
        if cached is not None:
            return cached

        layers = topological_layers(graph)
        with self._lock:
            # Only the latest version is worth keeping
            self._layer_cache = {graph.version: layers}
        logger.debug(f"Computed {len(layers)} curriculum layers for graph v{graph.version}")
        return layers

    def validate(self, graph: DependencyGraph) -> None:
        """Verify graph integrity (cached per version)."""
        self.layers(graph)

    # =========================================================================
    # Frontier
    # =========================================================================

    def frontier(self, graph: DependencyGraph, snapshot: LearnerPathSnapshot) -> list[LearningUnit]:
        """Units not yet completed whose prerequisites are all satisfied."""
        self.validate(graph)
        return [
            unit
            for unit in graph
            if not snapshot.is_satisfied(unit.unit_id)
            and all(snapshot.is_satisfied(p) for p in unit.prerequisites)
        ]

    def is_unlockable(self, graph: DependencyGraph, snapshot: LearnerPathSnapshot, unit_id: str) -> bool:
        """Check whether every prerequisite of ``unit_id`` is satisfied."""
        return all(snapshot.is_satisfied(p) for p in graph.prerequisites(unit_id))

    def blocking_prerequisites(
        self, graph: DependencyGraph, snapshot: LearnerPathSnapshot, unit_id: str
    ) -> list[str]:
        """Prerequisites of ``unit_id`` the learner still has to complete."""
        return [p for p in graph.prerequisites(unit_id) if not snapshot.is_satisfied(p)]

    # =========================================================================
    # Planning
    # =========================================================================

    def plan(
        self,
        graph: DependencyGraph,
        snapshot: LearnerPathSnapshot,
        constraint_unit_ids: Iterable[str] | None = None,
        now: datetime | None = None,
    ) -> list[str]:
        """
        Compute the ranked list of units to study next.

        Args:
            graph: Curriculum graph
            snapshot: Learner progress (read-only)
            constraint_unit_ids: Confine the plan to these units
            now: Reference time for tag-affinity recency

        Returns:
            Unit ids, best first. Empty when the graph is empty or nothing
            is unlockable.

        Raises:
            GraphIntegrityError: cycle or dangling prerequisite
            NotFoundError: constraint references an unknown unit
            InvalidInputError: naive ``now``
        """
        return [r.unit_id for r in self.rank(graph, snapshot, constraint_unit_ids, now)]

    def rank(
        self,
        graph: DependencyGraph,
        snapshot: LearnerPathSnapshot,
        constraint_unit_ids: Iterable[str] | None = None,
        now: datetime | None = None,
    ) -> list[RankedUnit]:
        """Same as ``plan`` but keeps the ranking signals."""
        now = require_aware(now, "now") if now is not None else datetime.now(timezone.utc)
        if len(graph) == 0:
            return []

        candidates = self.frontier(graph, snapshot)

        if constraint_unit_ids is not None:
            allowed = set(constraint_unit_ids)
            for unit_id in sorted(allowed):
                if unit_id not in graph:
                    raise NotFoundError("unit", unit_id)
            candidates = [u for u in candidates if u.unit_id in allowed]

        ranked = [self._score(graph, snapshot, unit, now) for unit in candidates]
        ranked.sort(key=RankedUnit.sort_key)

        logger.debug(
            f"Plan for {snapshot.learner_id}: {len(ranked)} unlockable of {len(graph)} units"
        )
        return ranked

    def _score(
        self,
        graph: DependencyGraph,
        snapshot: LearnerPathSnapshot,
        unit: LearningUnit,
        now: datetime,
    ) -> RankedUnit:
        cfg = self.config

        # Dependents for which this unit is the last missing prerequisite
        newly_unlocked = sum(
            1
            for dependent in graph.dependents(unit.unit_id)
            if not snapshot.is_satisfied(dependent)
            and all(
                p == unit.unit_id or snapshot.is_satisfied(p)
                for p in graph.prerequisites(dependent)
            )
        )

        affinity = 0.0
        for tag in unit.tags:
            last = snapshot.tag_activity.get(tag)
            if last is None:
                continue
            days = max(0.0, (now - last).total_seconds() / SECONDS_PER_DAY)
            affinity = max(affinity, 1.0 / (1.0 + days))

        partial = snapshot.progress(unit.unit_id).mastery_score / 100.0

        score = (
            cfg.unlock_weight * newly_unlocked
            + cfg.affinity_weight * affinity
            + cfg.progress_weight * partial
        )
        return RankedUnit(
            unit_id=unit.unit_id,
            order_hint=unit.order_hint,
            newly_unlocked=newly_unlocked,
            affinity=affinity,
            partial_mastery=partial,
            score=score,
        )
