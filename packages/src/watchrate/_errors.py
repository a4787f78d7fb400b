"""Exception taxonomy for watchrate.

Every error raised by the library derives from :class:`WatchrateError`
so callers (the CLI in particular) can catch the whole family with a
single ``except`` clause and map individual classes to exit codes.

Hierarchy::

    WatchrateError
    ├── ValidationError        ← malformed record fields (also ValueError)
    ├── NoSyncRecordError      ← measure requested before any sync
    ├── InvalidIntervalError   ← measurement not strictly after its sync
    ├── StorageError           ← persistence backend failure
    └── TimeSourceError        ← true-time source unreachable

Propagation policy:

- **No retries** — all errors are terminal for the current operation.
- **Chained** — adapter errors are re-raised ``from`` the backend
  exception so the original traceback survives.
- **Nothing partial** — a failed measure commits no record.
"""

from __future__ import annotations


class WatchrateError(Exception):
    """Base class for all watchrate errors."""


class ValidationError(WatchrateError, ValueError):
    """Raised when a measurement record is constructed with bad fields."""


class NoSyncRecordError(WatchrateError):
    """Raised when a watch has no sync record to measure against."""

    def __init__(self, watch_name: str) -> None:
        self.watch_name = watch_name
        super().__init__(
            f"No sync record for watch {watch_name!r}. "
            f"Run 'watchrate sync {watch_name}' first."
        )


class InvalidIntervalError(WatchrateError):
    """Raised when a measurement does not come strictly after its sync."""

    def __init__(self, elapsed_seconds: float) -> None:
        self.elapsed_seconds = elapsed_seconds
        super().__init__(
            "Measurement must be taken strictly after its reference sync "
            f"(elapsed {elapsed_seconds:.3f}s)."
        )


class StorageError(WatchrateError):
    """Raised when the measurement store cannot read or write records."""


class TimeSourceError(WatchrateError):
    """Raised when the true-time source cannot be queried."""
