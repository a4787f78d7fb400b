"""Public test-support utilities for watchrate.

Provided symbols:

- :class:`FakeClock` — deterministic monotonic clock.
- :class:`FakeTimeSource` — deterministic true-time source.
- :class:`InMemoryMeasurementStore` — list-backed measurement store.
- :func:`make_settings` — factory for ``Settings`` without ``.env`` files.
"""

from watchrate.testing._clock import FakeClock, FakeTimeSource
from watchrate.testing._settings import make_settings
from watchrate.testing._store import InMemoryMeasurementStore

__all__ = [
    "FakeClock",
    "FakeTimeSource",
    "InMemoryMeasurementStore",
    "make_settings",
]
