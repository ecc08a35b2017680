"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from lingo_core.adaptive.adaptations import MessagePicker  # noqa: E402
from lingo_core.core.models import (  # noqa: E402
    ActivityResult,
    LearnerProfile,
    SessionSignal,
    SignalType,
)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """A fixed reference time."""
    return datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def neutral_profile(now):
    """A profile that adds nothing to the filter score."""
    return LearnerProfile(
        user_id="learner-1",
        average_confidence=0.5,
        wrong_answer_rate=0.0,
        help_request_rate=0.0,
        filter_risk_score=0.0,
        last_activity_at=now - timedelta(hours=6),
        chunks_acquired=120,
    )


@pytest.fixture
def picker():
    """Deterministic message picker."""
    return MessagePicker(random.Random(42))


def make_signals(*types):
    """Build a signal list from type names, oldest first."""
    return [
        SessionSignal(type=SignalType(t), activity_id=f"act-{i}") for i, t in enumerate(types)
    ]


def make_activity(index, correct=True, response_time_ms=4000, used_help=False, chunk_ids=("c1",), attempts=1):
    """Build an activity result with a predictable id."""
    return ActivityResult(
        id=f"act-{index}",
        activity_type="multiple_choice",
        chunk_ids=tuple(chunk_ids),
        correct=correct,
        response_time_ms=response_time_ms,
        used_help=used_help,
        attempts=attempts,
    )


@pytest.fixture(name="make_signals")
def make_signals_fixture():
    return make_signals


@pytest.fixture(name="make_activity")
def make_activity_fixture():
    return make_activity
