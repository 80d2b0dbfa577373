"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from neuroforge.curriculum.models import LearningUnit  # noqa: E402
from neuroforge.curriculum.progress import InMemoryCompletionStore  # noqa: E402
from neuroforge.curriculum.store import InMemoryGraphStore  # noqa: E402
from neuroforge.delivery.cache import RecommendationCache  # noqa: E402
from neuroforge.delivery.events import RecordingEventSink  # noqa: E402
from neuroforge.delivery.orchestrator import ReviewSessionOrchestrator  # noqa: E402
from neuroforge.srs.store import InMemoryReviewStore  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (SQLite database)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        path = str(item.fspath)
        if "unit" in path:
            item.add_marker(pytest.mark.unit)
        elif "integration" in path:
            item.add_marker(pytest.mark.integration)
        elif "smoke" in path:
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def day0():
    """A fixed, timezone-aware reference time."""
    return datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def days(day0):
    """Return a helper mapping a day offset to a timestamp."""
    return lambda n: day0 + timedelta(days=n)


@pytest.fixture
def abc_units():
    """A requires nothing, B requires A, C requires A and B."""
    return [
        LearningUnit("A", tags=frozenset({"math"}), item_ids=("a1", "a2")),
        LearningUnit("B", prerequisites=("A",), tags=frozenset({"math"}), item_ids=("b1",)),
        LearningUnit("C", prerequisites=("A", "B"), tags=frozenset({"physics"}), item_ids=("c1",)),
    ]


@pytest.fixture
def graph_store(abc_units):
    return InMemoryGraphStore(abc_units)


@pytest.fixture
def review_store():
    return InMemoryReviewStore()


@pytest.fixture
def completion_store():
    return InMemoryCompletionStore()


@pytest.fixture
def event_sink():
    return RecordingEventSink()


@pytest.fixture
def orchestrator(review_store, graph_store, completion_store, event_sink):
    return ReviewSessionOrchestrator(
        review_store=review_store,
        graph_store=graph_store,
        completion_store=completion_store,
        cache=RecommendationCache(max_entries=16),
        events=event_sink,
    )


@pytest.fixture
def sample_curriculum():
    """Provide a sample curriculum document."""
    return {
        "units": [
            {"id": "arithmetic", "title": "Arithmetic", "tags": ["math"], "items": ["add", "mul"]},
            {
                "id": "algebra",
                "title": "Algebra",
                "prerequisites": ["arithmetic"],
                "tags": ["math"],
                "items": ["linear"],
            },
            {
                "id": "mechanics",
                "title": "Mechanics",
                "prerequisites": ["algebra"],
                "tags": ["physics"],
                "order_hint": 1,
                "items": ["newton"],
            },
        ]
    }
