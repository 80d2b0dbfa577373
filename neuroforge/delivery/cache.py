"""
Recommendation Cache.

Short-lived cache of a learner's last computed plan per constraint set.
Entries are dropped by explicit events (grade submitted, unit completed)
or when the curriculum version they were computed on is superseded, never
by time; a process-wide LRU bound keeps memory in check.

Invalidation always wins: every learner has a generation counter, callers
read it before computing a plan, and a ``put`` carrying an older generation
is discarded.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from collections.abc import Hashable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from loguru import logger

ConstraintKey = frozenset[str] | None

# Key of the unconstrained plan
ALL_UNITS_KEY: ConstraintKey = None


@dataclass(frozen=True)
class CacheEntry:
    """A cached ranked plan."""

    unit_ids: tuple[str, ...]
    computed_at: datetime
    generation: tuple[int, int]
    graph_version: Hashable = None  # Curriculum version the plan was computed on


def constraint_key(unit_ids: Iterable[str] | None) -> ConstraintKey:
    """Normalise a constraint set so equal sets share one entry."""
    if unit_ids is None:
        return ALL_UNITS_KEY
    return frozenset(unit_ids)


class RecommendationCache:
    """Thread-safe per-learner plan cache with LRU eviction."""

    def __init__(self, max_entries: int = 1024):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: OrderedDict[tuple[str, ConstraintKey], CacheEntry] = OrderedDict()
        self._by_learner: dict[str, set[ConstraintKey]] = {}
        self._generations: dict[str, int] = {}
        self._epoch = 0  # Bumped by invalidate_all
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def generation(self, learner_id: str) -> tuple[int, int]:
        """Token to pass to ``put`` for a plan computed from now on."""
        with self._lock:
            return self._token(learner_id)

    def _token(self, learner_id: str) -> tuple[int, int]:
        return (self._epoch, self._generations.get(learner_id, 0))

    def get(
        self,
        learner_id: str,
        key: ConstraintKey = ALL_UNITS_KEY,
        graph_version: Hashable = None,
    ) -> tuple[str, ...] | None:
        """Return the cached plan, or None on a miss."""
        entry = self.get_entry(learner_id, key, graph_version)
        return entry.unit_ids if entry is not None else None

    def get_entry(
        self,
        learner_id: str,
        key: ConstraintKey = ALL_UNITS_KEY,
        graph_version: Hashable = None,
    ) -> CacheEntry | None:
        """
        Look up a cached plan.

        When ``graph_version`` is given, a plan computed on another curriculum
        version is dropped and reported as a miss.
        """
        with self._lock:
            cache_key = (learner_id, key)
            entry = self._entries.get(cache_key)
            if entry is not None and graph_version is not None and entry.graph_version != graph_version:
                logger.debug(f"Dropping plan for {learner_id} computed on graph v{entry.graph_version}")
                self._drop(learner_id, key)
                entry = None
            if entry is None:
                self.misses += 1
                return None
            self._entries.move_to_end(cache_key)
            self.hits += 1
            return entry

    def _drop(self, learner_id: str, key: ConstraintKey) -> None:
        self._entries.pop((learner_id, key), None)
        keys = self._by_learner.get(learner_id)
        if keys is not None:
            keys.discard(key)
            if not keys:
                del self._by_learner[learner_id]

    def put(
        self,
        learner_id: str,
        key: ConstraintKey,
        unit_ids: Iterable[str],
        generation: tuple[int, int] | None = None,
        computed_at: datetime | None = None,
        graph_version: Hashable = None,
    ) -> bool:
        """
        Store a plan.

        Args:
            learner_id: Learner identifier
            key: Constraint key (see ``constraint_key``)
            unit_ids: Ranked plan
            generation: Token read before the plan was computed; a stale
                token means an invalidation happened meanwhile
            computed_at: Computation timestamp
            graph_version: Curriculum version the plan was computed on

        Returns:
            False when the plan was discarded as stale
        """
        with self._lock:
            current = self._token(learner_id)
            if generation is not None and generation != current:
                logger.debug(f"Discarding stale plan for {learner_id} (gen {generation} != {current})")
                return False

            cache_key = (learner_id, key)
            self._entries[cache_key] = CacheEntry(
                unit_ids=tuple(unit_ids),
                computed_at=computed_at or datetime.now(timezone.utc),
                generation=current,
                graph_version=graph_version,
            )
            self._entries.move_to_end(cache_key)
            self._by_learner.setdefault(learner_id, set()).add(key)

            while len(self._entries) > self.max_entries:
                old_learner, old_key = next(iter(self._entries))
                self._drop(old_learner, old_key)
            return True

    def invalidate(self, learner_id: str) -> int:
        """Drop every entry of a learner, whatever the constraint key. Idempotent."""
        with self._lock:
            self._generations[learner_id] = self._generations.get(learner_id, 0) + 1
            keys = self._by_learner.pop(learner_id, set())
            for key in keys:
                self._entries.pop((learner_id, key), None)
        if keys:
            logger.debug(f"Invalidated {len(keys)} cached plan(s) for {learner_id}")
        return len(keys)

    def invalidate_all(self) -> None:
        """Drop everything, e.g. after a curriculum edit."""
        with self._lock:
            self._epoch += 1
            self._entries.clear()
            self._by_learner.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
