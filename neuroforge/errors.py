"""
Error taxonomy for the learning core.

- InvalidInputError: bad grade, identifier or argument; nothing was changed
- NotFoundError: unknown unit or item referenced in the graph/content store
- GraphIntegrityError: cycle or dangling prerequisite in authored content
- ConcurrencyConflictError: optimistic-lock failure on a review write
- TransientFailureError: conflicts persisted after the bounded retries
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime


class NeuroForgeError(Exception):
    """Base class for all learning core errors."""


class InvalidInputError(NeuroForgeError, ValueError):
    """Raised when a caller passes a value outside its contract."""

    def __init__(self, message: str, *, field: str | None = None, value: object = None):
        super().__init__(message)
        self.field = field
        self.value = value


class NotFoundError(NeuroForgeError, LookupError):
    """Raised when a referenced unit or item does not exist."""

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"Unknown {kind}: {identifier!r}")
        self.kind = kind
        self.identifier = identifier


class GraphIntegrityError(NeuroForgeError):
    """Raised when the prerequisite graph is not a well-formed DAG."""

    def __init__(
        self,
        message: str,
        *,
        unit_ids: Iterable[str] = (),
        edge: tuple[str, str] | None = None,
    ):
        super().__init__(message)
        self.unit_ids = tuple(unit_ids)
        self.edge = edge


class ConcurrencyConflictError(NeuroForgeError):
    """Raised by a store when the record changed since it was read."""

    def __init__(self, learner_id: str, item_id: str, expected_version: int, actual_version: int | None):
        super().__init__(
            f"Review state for learner={learner_id} item={item_id} changed "
            f"(expected version {expected_version}, found {actual_version})"
        )
        self.learner_id = learner_id
        self.item_id = item_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class TransientFailureError(NeuroForgeError):
    """Raised when a retryable failure persisted past the retry budget."""

    def __init__(self, message: str, *, attempts: int):
        super().__init__(message)
        self.attempts = attempts


def require_identifier(value: object, field: str) -> str:
    """Validate a learner/item/unit identifier."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{field} must be a non-empty string, got {value!r}", field=field, value=value)
    return value


def require_aware(moment: object, field: str) -> datetime:
    """Validate a timezone-aware timestamp."""
    if not isinstance(moment, datetime) or moment.tzinfo is None:
        raise InvalidInputError(f"{field} must be a timezone-aware datetime, got {moment!r}", field=field, value=moment)
    return moment
