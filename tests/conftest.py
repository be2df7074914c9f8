"""
Shared fixtures for the timeline engine tests.

Qt runs on the offscreen platform so the suite works without a display.
"""

import os
from datetime import datetime

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PyQt5.QtWidgets import QApplication

from simple_timeline.data.event_store import EventStore
from simple_timeline.models import TimelineRange


@pytest.fixture(scope="session")
def qapp():
    """Single QApplication for the whole test session."""
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def january_range():
    return TimelineRange(datetime(2024, 1, 1), datetime(2024, 2, 1))


@pytest.fixture
def store():
    event_store = EventStore()
    yield event_store
    event_store.close()
