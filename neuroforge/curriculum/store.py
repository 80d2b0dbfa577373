"""
Dependency Graph Store.

Holds the authored curriculum. Acyclicity is enforced incrementally at write
time: adding a unit only searches the prerequisite closure of the new edges,
instead of re-verifying the whole graph on every edit.

Curriculum files are JSON documents validated with Pydantic:

    {"units": [{"id": "algebra", "prerequisites": ["arithmetic"],
                "order_hint": 1, "tags": ["math"], "items": ["algebra-1"]}]}
"""

from __future__ import annotations

import json
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol, runtime_checkable
from uuid import uuid4

from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from neuroforge.errors import GraphIntegrityError, InvalidInputError, NotFoundError

from .models import DependencyGraph, LearningUnit
from .topology import check_references, reaches, topological_layers


@runtime_checkable
class DependencyGraphStore(Protocol):
    """Read access to the curriculum graph."""

    def get_unit(self, unit_id: str) -> LearningUnit | None: ...

    def list_prerequisites(self, unit_id: str) -> list[str]: ...

    def list_all_units(self) -> list[LearningUnit]: ...

    def graph(self) -> DependencyGraph: ...


class InMemoryGraphStore:
    """
    Versioned in-memory curriculum store.

    Every successful edit bumps ``version``; ``graph()`` returns an immutable
    snapshot tagged with it so planners can cache per version.
    """

    def __init__(self, units: Iterable[LearningUnit] = ()):
        self._units: dict[str, LearningUnit] = {}
        self._version = 0
        self._token = uuid4().hex  # Keeps versions of different stores apart
        self._snapshot: DependencyGraph | None = None
        self._lock = threading.RLock()
        units = list(units)
        if units:
            self.add_units(units)

    @property
    def version(self) -> int:
        return self._version

    def get_unit(self, unit_id: str) -> LearningUnit | None:
        return self._units.get(unit_id)

    def list_prerequisites(self, unit_id: str) -> list[str]:
        unit = self._units.get(unit_id)
        if unit is None:
            raise NotFoundError("unit", unit_id)
        return list(unit.prerequisites)

    def list_all_units(self) -> list[LearningUnit]:
        with self._lock:
            return [self._units[unit_id] for unit_id in sorted(self._units)]

    def graph(self) -> DependencyGraph:
        with self._lock:
            version = (self._token, self._version)
            if self._snapshot is None or self._snapshot.version != version:
                self._snapshot = DependencyGraph(self._units.values(), version=version)
            return self._snapshot

    # =========================================================================
    # Edits
    # =========================================================================

    def add_unit(self, unit: LearningUnit) -> None:
        """
        Add or replace a unit.

        Raises:
            GraphIntegrityError: unknown prerequisite, or the new edges close a cycle
        """
        with self._lock:
            for prereq in unit.prerequisites:
                if prereq not in self._units:
                    raise GraphIntegrityError(
                        f"Unit {unit.unit_id} requires unknown unit {prereq}",
                        unit_ids=(unit.unit_id,),
                        edge=(prereq, unit.unit_id),
                    )
                # A cycle exists iff the new unit is already a (transitive) prerequisite of prereq
                if unit.unit_id in self._units and reaches(self._units, prereq, unit.unit_id):
                    raise GraphIntegrityError(
                        f"Edge {prereq} -> {unit.unit_id} would create a cycle",
                        unit_ids=(unit.unit_id, prereq),
                        edge=(prereq, unit.unit_id),
                    )
            self._units[unit.unit_id] = unit
            self._version += 1
        logger.debug(f"Curriculum unit {unit.unit_id} stored (graph v{self._version})")

    def add_units(self, units: Iterable[LearningUnit]) -> None:
        """Add a batch atomically; the batch may reference itself in any order."""
        with self._lock:
            candidate = dict(self._units)
            for unit in units:
                candidate[unit.unit_id] = unit
            topological_layers(DependencyGraph(candidate.values()))
            self._units = candidate
            self._version += 1
        logger.info(f"Curriculum loaded: {len(self._units)} units (graph v{self._version})")

    def remove_unit(self, unit_id: str) -> None:
        """Remove a unit that no other unit depends on."""
        with self._lock:
            if unit_id not in self._units:
                raise NotFoundError("unit", unit_id)
            remaining = {k: v for k, v in self._units.items() if k != unit_id}
            check_references(remaining)
            self._units = remaining
            self._version += 1


# =============================================================================
# Curriculum files
# =============================================================================


class UnitDocument(BaseModel):
    """Schema of one unit in a curriculum file."""

    id: str = Field(min_length=1)
    title: str = ""
    prerequisites: list[str] = Field(default_factory=list)
    order_hint: int | None = None
    tags: list[str] = Field(default_factory=list)
    items: list[str] = Field(default_factory=list)

    def to_unit(self) -> LearningUnit:
        return LearningUnit(
            unit_id=self.id,
            prerequisites=tuple(self.prerequisites),
            order_hint=self.order_hint,
            tags=frozenset(self.tags),
            title=self.title or self.id,
            item_ids=tuple(self.items),
        )


class CurriculumDocument(BaseModel):
    """Schema of a curriculum file."""

    units: list[UnitDocument] = Field(default_factory=list)


def parse_curriculum(data: dict) -> list[LearningUnit]:
    """Validate a decoded curriculum document."""
    try:
        document = CurriculumDocument.model_validate(data)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid curriculum document: {e}") from e
    return [unit.to_unit() for unit in document.units]


def load_curriculum(path: Path) -> InMemoryGraphStore:
    """Load a JSON curriculum file into a validated graph store."""
    if not path.exists():
        raise FileNotFoundError(f"Curriculum file not found: {path}")

    data = json.loads(path.read_text(encoding="utf-8"))
    store = InMemoryGraphStore(parse_curriculum(data))
    logger.info(f"Loaded curriculum from {path}")
    return store
