"""
Shared pytest fixtures and configuration for scopewatch tests.
"""

import pytest

from scopewatch import Tracker


@pytest.fixture
def tracker():
    """Provide a fresh integer Tracker that is closed after the test."""
    t = Tracker(0, name="test")
    yield t
    t.close()


@pytest.fixture
def changes(tracker):
    """A subscription on the ``tracker`` fixture, registered before any change."""
    subscription = tracker.listen()
    yield subscription
    subscription.close()
