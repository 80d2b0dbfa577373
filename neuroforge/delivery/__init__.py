"""
Session delivery layer.

Components:
- ReviewSessionOrchestrator: Review batches, grade submission, unit completion
- RecommendationCache: Per-learner plan cache with event-driven invalidation
- EventSink: Notifications for the gamification collaborator
"""

from .cache import RecommendationCache, constraint_key
from .events import EventSink, EventType, LearnerEvent, NullEventSink, RecordingEventSink
from .orchestrator import ReviewSession, ReviewSessionOrchestrator, UnitCompletion

__all__ = [
    # Orchestration
    "ReviewSessionOrchestrator",
    "ReviewSession",
    "UnitCompletion",
    # Cache
    "RecommendationCache",
    "constraint_key",
    # Events
    "EventSink",
    "EventType",
    "LearnerEvent",
    "NullEventSink",
    "RecordingEventSink",
]
