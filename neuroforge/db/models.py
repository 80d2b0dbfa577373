"""
SQLAlchemy models for the learning core.

- review_state: SM-2 state per learner x item, with an optimistic-lock version
- unit_completion: first completion time per learner x unit

Timestamps are stored as naive UTC; the repositories convert at the boundary.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class ReviewStateRow(Base):
    """SM-2 state for one learner x item (unique key)."""

    __tablename__ = "review_state"

    learner_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    item_id: Mapped[str] = mapped_column(String(128), primary_key=True)

    easiness_factor: Mapped[float] = mapped_column(Float, default=2.5)
    repetitions: Mapped[int] = mapped_column(Integer, default=0)
    interval_days: Mapped[float] = mapped_column(Float, default=1.0)
    next_review_date: Mapped[datetime | None] = mapped_column(DateTime)
    last_reviewed_date: Mapped[datetime | None] = mapped_column(DateTime)
    status: Mapped[str] = mapped_column(String(32), default="not_started")
    review_history: Mapped[list] = mapped_column(JSON, default=list)

    # Committed writes; compare-and-set target
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        # Due-item queries: learner + date, then easiness for tie-breaks
        Index("idx_review_state_due", "learner_id", "next_review_date", "easiness_factor"),
    )

    def __repr__(self) -> str:
        return f"<ReviewStateRow learner={self.learner_id} item={self.item_id} v{self.version}>"


class UnitCompletionRow(Base):
    """A learner's completion of a curriculum unit."""

    __tablename__ = "unit_completion"

    learner_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    unit_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    completed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<UnitCompletionRow learner={self.learner_id} unit={self.unit_id}>"
