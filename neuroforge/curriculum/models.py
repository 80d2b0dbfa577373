"""
Curriculum graph and learner progress models.

Units form a directed acyclic prerequisite graph. DependencyGraph is an
immutable snapshot of that graph; its ``version`` changes whenever the
underlying store is edited, which lets the planner cache derived structures.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType

from neuroforge.errors import InvalidInputError, NotFoundError, require_identifier


@dataclass(frozen=True)
class LearningUnit:
    """A unit of the curriculum (subject or lesson group)."""

    unit_id: str
    prerequisites: tuple[str, ...] = ()
    order_hint: int | None = None  # Authored priority, lower = sooner
    tags: frozenset[str] = frozenset()
    title: str = ""
    item_ids: tuple[str, ...] = ()  # Reviewable items taught by this unit

    def __post_init__(self) -> None:
        require_identifier(self.unit_id, "unit_id")
        for prereq in self.prerequisites:
            require_identifier(prereq, "prerequisite")
        if self.unit_id in self.prerequisites:
            raise InvalidInputError(
                f"Unit {self.unit_id} lists itself as a prerequisite",
                field="prerequisites",
                value=self.unit_id,
            )
        if len(set(self.prerequisites)) != len(self.prerequisites):
            raise InvalidInputError(
                f"Unit {self.unit_id} repeats a prerequisite",
                field="prerequisites",
                value=self.prerequisites,
            )


class DependencyGraph:
    """Immutable prerequisite graph over a set of units."""

    def __init__(self, units: Iterable[LearningUnit] = (), version: object = None):
        index: dict[str, LearningUnit] = {}
        for unit in units:
            if unit.unit_id in index:
                raise InvalidInputError(f"Duplicate unit id {unit.unit_id}", field="unit_id", value=unit.unit_id)
            index[unit.unit_id] = unit

        dependents: dict[str, list[str]] = {unit_id: [] for unit_id in index}
        for unit in index.values():
            for prereq in unit.prerequisites:
                if prereq in dependents:
                    dependents[prereq].append(unit.unit_id)

        self._units: Mapping[str, LearningUnit] = MappingProxyType(index)
        self._dependents = {k: tuple(sorted(v)) for k, v in dependents.items()}
        # Content-derived default so equal graphs share cached layerings
        self.version = version if version is not None else hash(tuple(sorted(
            (u.unit_id, u.prerequisites) for u in index.values()
        )))

    @property
    def units(self) -> Mapping[str, LearningUnit]:
        return self._units

    def __len__(self) -> int:
        return len(self._units)

    def __contains__(self, unit_id: object) -> bool:
        return unit_id in self._units

    def __iter__(self):
        return iter(self._units.values())

    def unit(self, unit_id: str) -> LearningUnit:
        try:
            return self._units[unit_id]
        except KeyError:
            raise NotFoundError("unit", unit_id) from None

    def prerequisites(self, unit_id: str) -> tuple[str, ...]:
        return self.unit(unit_id).prerequisites

    def dependents(self, unit_id: str) -> tuple[str, ...]:
        """Units that list ``unit_id`` as a prerequisite."""
        self.unit(unit_id)
        return self._dependents[unit_id]


@dataclass(frozen=True)
class UnitProgress:
    """A learner's standing on one unit."""

    completed: bool = False
    mastery_score: float = 0.0  # 0-100
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.mastery_score <= 100.0:
            raise InvalidInputError(
                f"mastery_score must be in [0, 100], got {self.mastery_score}",
                field="mastery_score",
                value=self.mastery_score,
            )


@dataclass(frozen=True)
class LearnerPathSnapshot:
    """
    Derived, read-only view of a learner's progress.

    Consistent at the moment it was read; it may be stale right after, which
    is acceptable because recommendations are advisory.
    """

    learner_id: str
    units: Mapping[str, UnitProgress] = field(default_factory=dict)
    tag_activity: Mapping[str, datetime] = field(default_factory=dict)  # Last activity per tag

    def progress(self, unit_id: str) -> UnitProgress:
        return self.units.get(unit_id, _NO_PROGRESS)

    def is_completed(self, unit_id: str) -> bool:
        return self.progress(unit_id).completed

    def is_satisfied(self, unit_id: str) -> bool:
        """Completed, or fully mastered through review."""
        progress = self.progress(unit_id)
        return progress.completed or progress.mastery_score >= 100.0

    @property
    def completed_units(self) -> frozenset[str]:
        return frozenset(unit_id for unit_id, p in self.units.items() if p.completed)


_NO_PROGRESS = UnitProgress()
