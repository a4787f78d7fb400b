"""Pytest plugin providing shared test fixtures for watchrate.

Auto-registers ``fake_clock``, ``fake_time_source``, ``memory_store``
and ``watch_log`` for any test suite that depends on watchrate.

Imports are deferred into the fixture bodies so that watchrate modules
are first imported after ``pytest-cov`` has started tracing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from watchrate._service import WatchLog
    from watchrate.testing._clock import FakeClock, FakeTimeSource
    from watchrate.testing._store import InMemoryMeasurementStore


@pytest.fixture
def fake_clock() -> FakeClock:
    """FakeClock starting at time 0."""
    from watchrate.testing._clock import FakeClock

    return FakeClock()


@pytest.fixture
def fake_time_source() -> FakeTimeSource:
    """FakeTimeSource starting at 2024-01-01T00:00:00Z."""
    from watchrate.testing._clock import FakeTimeSource

    return FakeTimeSource()


@pytest.fixture
def memory_store() -> InMemoryMeasurementStore:
    """Fresh, empty InMemoryMeasurementStore for each test."""
    from watchrate.testing._store import InMemoryMeasurementStore

    return InMemoryMeasurementStore()


@pytest.fixture
def watch_log(memory_store: InMemoryMeasurementStore) -> WatchLog:
    """WatchLog wired to the ``memory_store`` fixture."""
    from watchrate._service import WatchLog

    return WatchLog(store=memory_store)
