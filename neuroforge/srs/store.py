"""
Review Record Store.

The scheduler never touches persistence; everything goes through this
repository interface. ``put`` is an optimistic compare-and-set on the record
version so concurrent grade submissions for the same item cannot interleave.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime
from typing import Protocol, runtime_checkable

from loguru import logger

from neuroforge.errors import ConcurrencyConflictError, require_identifier

from .models import ReviewState
from .scheduler import due_order_key, validate_limit


@runtime_checkable
class ReviewRecordStore(Protocol):
    """Durable per-(learner, item) SRS records."""

    def get(self, learner_id: str, item_id: str) -> ReviewState | None: ...

    def put(self, state: ReviewState, expected_version: int) -> ReviewState:
        """
        Commit ``state`` if the stored version still equals ``expected_version``.

        ``expected_version`` 0 means the record must not exist yet. Returns the
        committed state with its version bumped; raises ConcurrencyConflictError
        otherwise.
        """
        ...

    def query_due(self, learner_id: str, as_of: datetime, limit: int) -> list[ReviewState]: ...

    def list_for_learner(self, learner_id: str) -> list[ReviewState]: ...


class InMemoryReviewStore:
    """Thread-safe dict-backed store, used in tests and single-process setups."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, str], ReviewState] = {}
        self._lock = threading.Lock()

    def get(self, learner_id: str, item_id: str) -> ReviewState | None:
        with self._lock:
            return self._records.get((learner_id, item_id))

    def put(self, state: ReviewState, expected_version: int) -> ReviewState:
        with self._lock:
            current = self._records.get(state.key)
            actual = current.version if current is not None else 0
            if actual != expected_version:
                raise ConcurrencyConflictError(state.learner_id, state.item_id, expected_version, actual)

            committed = replace(state, version=expected_version + 1)
            self._records[state.key] = committed

        logger.debug(f"Stored review state {state.learner_id}/{state.item_id} v{committed.version}")
        return committed

    def query_due(self, learner_id: str, as_of: datetime, limit: int) -> list[ReviewState]:
        require_identifier(learner_id, "learner_id")
        validate_limit(limit)
        due = [s for s in self.list_for_learner(learner_id) if s.is_due(as_of)]
        due.sort(key=due_order_key)
        return due[:limit]

    def list_for_learner(self, learner_id: str) -> list[ReviewState]:
        with self._lock:
            return [s for (learner, _), s in self._records.items() if learner == learner_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
