"""
Spaced repetition scheduling.

Components:
- ReviewState: Immutable SM-2 state per learner x item
- SM2Scheduler: Interval/easiness computation and due classification
- ReviewRecordStore: Repository protocol (in-memory and SQL implementations)
"""

from .models import DueBucket, ReviewHistoryEntry, ReviewState, ReviewStatus
from .scheduler import SM2Config, SM2Scheduler, validate_grade
from .store import InMemoryReviewStore, ReviewRecordStore

__all__ = [
    # Models
    "ReviewState",
    "ReviewHistoryEntry",
    "ReviewStatus",
    "DueBucket",
    # Scheduling
    "SM2Config",
    "SM2Scheduler",
    "validate_grade",
    # Persistence
    "ReviewRecordStore",
    "InMemoryReviewStore",
]
