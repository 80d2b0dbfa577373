"""
Curriculum graph and learning-path planning.

Components:
- LearningUnit / DependencyGraph: Prerequisite DAG of units
- InMemoryGraphStore: Versioned curriculum store with incremental cycle checks
- SnapshotBuilder: Learner completion/mastery accessor
- PathPlanner: Frontier computation and ranking
"""

from .models import DependencyGraph, LearnerPathSnapshot, LearningUnit, UnitProgress
from .planner import PathPlanner, PlannerConfig, RankedUnit
from .progress import CompletionStore, InMemoryCompletionStore, SnapshotBuilder, item_mastery
from .store import DependencyGraphStore, InMemoryGraphStore, load_curriculum, parse_curriculum
from .topology import find_cycle, topological_layers

__all__ = [
    # Models
    "LearningUnit",
    "DependencyGraph",
    "UnitProgress",
    "LearnerPathSnapshot",
    # Stores
    "DependencyGraphStore",
    "InMemoryGraphStore",
    "load_curriculum",
    "parse_curriculum",
    "CompletionStore",
    "InMemoryCompletionStore",
    "SnapshotBuilder",
    "item_mastery",
    # Planning
    "PathPlanner",
    "PlannerConfig",
    "RankedUnit",
    "topological_layers",
    "find_cycle",
]
