"""
SQL-backed stores.

SqlReviewStore implements the Review Record Store protocol with an
optimistic compare-and-set: inserts rely on the primary key, updates are
conditional on the version read by the caller.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from neuroforge.errors import ConcurrencyConflictError, require_identifier
from neuroforge.srs.models import ReviewHistoryEntry, ReviewState, ReviewStatus
from neuroforge.srs.scheduler import validate_limit

from .database import session_scope
from .models import ReviewStateRow, UnitCompletionRow


def _to_db(moment: datetime | None) -> datetime | None:
    """Aware datetime -> naive UTC."""
    if moment is None:
        return None
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


def _from_db(moment: datetime | None) -> datetime | None:
    """Naive UTC -> aware UTC."""
    if moment is None:
        return None
    return moment.replace(tzinfo=timezone.utc) if moment.tzinfo is None else moment


def _row_to_state(row: ReviewStateRow) -> ReviewState:
    return ReviewState(
        learner_id=row.learner_id,
        item_id=row.item_id,
        easiness_factor=row.easiness_factor,
        repetitions=row.repetitions,
        interval_days=row.interval_days,
        next_review_date=_from_db(row.next_review_date),
        last_reviewed_date=_from_db(row.last_reviewed_date),
        status=ReviewStatus(row.status),
        review_history=tuple(ReviewHistoryEntry.from_dict(e) for e in row.review_history or []),
        version=row.version,
    )


def _state_values(state: ReviewState) -> dict:
    return {
        "easiness_factor": state.easiness_factor,
        "repetitions": state.repetitions,
        "interval_days": state.interval_days,
        "next_review_date": _to_db(state.next_review_date),
        "last_reviewed_date": _to_db(state.last_reviewed_date),
        "status": state.status.value,
        "review_history": [e.to_dict() for e in state.review_history],
    }


class SqlReviewStore:
    """Review Record Store over SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._sessions = session_factory

    def get(self, learner_id: str, item_id: str) -> ReviewState | None:
        with session_scope(self._sessions) as session:
            row = session.get(ReviewStateRow, (learner_id, item_id))
            return _row_to_state(row) if row is not None else None

    def put(self, state: ReviewState, expected_version: int) -> ReviewState:
        values = _state_values(state)
        new_version = expected_version + 1

        try:
            with session_scope(self._sessions) as session:
                if expected_version == 0:
                    session.add(
                        ReviewStateRow(
                            learner_id=state.learner_id,
                            item_id=state.item_id,
                            version=new_version,
                            **values,
                        )
                    )
                    session.flush()
                else:
                    result = session.execute(
                        update(ReviewStateRow)
                        .where(
                            ReviewStateRow.learner_id == state.learner_id,
                            ReviewStateRow.item_id == state.item_id,
                            ReviewStateRow.version == expected_version,
                        )
                        .values(version=new_version, **values)
                    )
                    if result.rowcount != 1:
                        actual = session.scalar(
                            select(ReviewStateRow.version).where(
                                ReviewStateRow.learner_id == state.learner_id,
                                ReviewStateRow.item_id == state.item_id,
                            )
                        )
                        raise ConcurrencyConflictError(state.learner_id, state.item_id, expected_version, actual)
        except IntegrityError as e:
            # Primary key taken: someone inserted first
            raise ConcurrencyConflictError(state.learner_id, state.item_id, expected_version, None) from e

        logger.debug(f"Stored review state {state.learner_id}/{state.item_id} v{new_version}")
        return replace(state, version=new_version)

    def query_due(self, learner_id: str, as_of: datetime, limit: int) -> list[ReviewState]:
        require_identifier(learner_id, "learner_id")
        validate_limit(limit)
        with session_scope(self._sessions) as session:
            rows = session.scalars(
                select(ReviewStateRow)
                .where(
                    ReviewStateRow.learner_id == learner_id,
                    ReviewStateRow.next_review_date.is_not(None),
                    ReviewStateRow.next_review_date <= _to_db(as_of),
                )
                .order_by(
                    ReviewStateRow.next_review_date.asc(),
                    ReviewStateRow.easiness_factor.asc(),
                    ReviewStateRow.item_id.asc(),
                )
                .limit(limit)
            ).all()
            return [_row_to_state(row) for row in rows]

    def list_for_learner(self, learner_id: str) -> list[ReviewState]:
        with session_scope(self._sessions) as session:
            rows = session.scalars(
                select(ReviewStateRow).where(ReviewStateRow.learner_id == learner_id).order_by(ReviewStateRow.item_id)
            ).all()
            return [_row_to_state(row) for row in rows]


class SqlCompletionStore:
    """Completion records over SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._sessions = session_factory

    def mark_completed(self, learner_id: str, unit_id: str, at: datetime) -> bool:
        try:
            with session_scope(self._sessions) as session:
                if session.get(UnitCompletionRow, (learner_id, unit_id)) is not None:
                    return False
                session.add(UnitCompletionRow(learner_id=learner_id, unit_id=unit_id, completed_at=_to_db(at)))
        except IntegrityError:
            # Completed concurrently; the earlier record stands
            return False
        return True

    def completed_units(self, learner_id: str) -> dict[str, datetime]:
        with session_scope(self._sessions) as session:
            rows = session.scalars(select(UnitCompletionRow).where(UnitCompletionRow.learner_id == learner_id)).all()
            return {row.unit_id: _from_db(row.completed_at) for row in rows}
