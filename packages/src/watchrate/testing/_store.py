"""In-memory measurement store for tests.

Keeps the append-only log in a list plus a per-watch
index of sync records sorted by ``(timestamp, record_id)``, so
``latest_sync_before`` is a binary search just like the indexed SQL
query.
"""

from __future__ import annotations

import bisect
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime

from watchrate._errors import StorageError
from watchrate._record import MeasurementRecord


def _sync_order(record: MeasurementRecord) -> tuple[datetime, int]:
    assert record.record_id is not None
    return (record.timestamp, record.record_id)


@dataclass
class InMemoryMeasurementStore:
    """Test double satisfying :class:`~watchrate._store.MeasurementStorePort`.

    Attributes:
        records: Every inserted record in insertion order.
        fail_with: When set, every call raises :class:`StorageError`
            with this message, simulating a broken backend.
    """

    records: list[MeasurementRecord] = field(default_factory=list)
    fail_with: str | None = None
    _syncs: dict[str, list[MeasurementRecord]] = field(
        default_factory=dict,
        init=False,
        repr=False,
    )
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False)

    # -- MeasurementStorePort methods --------------------------------------

    def insert(self, record: MeasurementRecord) -> MeasurementRecord:
        self._check()
        with self._lock:
            stored = record.with_id(len(self.records) + 1)
            self.records.append(stored)
            if stored.is_sync:
                self._index(stored)
            return stored

    def latest_sync_before(
        self, watch_name: str, timestamp: datetime
    ) -> MeasurementRecord | None:
        self._check()
        syncs = self._syncs.get(watch_name, [])
        i = bisect.bisect_right(syncs, timestamp, key=lambda r: r.timestamp)
        return syncs[i - 1] if i else None

    def latest_sync(self, watch_name: str) -> MeasurementRecord | None:
        self._check()
        syncs = self._syncs.get(watch_name, [])
        return syncs[-1] if syncs else None

    def history(self, watch_name: str) -> list[MeasurementRecord]:
        self._check()
        return sorted(
            (r for r in self.records if r.watch_name == watch_name),
            key=_sync_order,
        )

    def watch_names(self) -> list[str]:
        self._check()
        return sorted({r.watch_name for r in self.records})

    @contextmanager
    def atomic(self) -> Iterator[InMemoryMeasurementStore]:
        """Hold the lock; drop records inserted in the block on error."""
        with self._lock:
            mark = len(self.records)
            try:
                yield self
            except BaseException:
                del self.records[mark:]
                self._reindex()
                raise

    # -- Test helpers -------------------------------------------------------

    @property
    def count(self) -> int:
        """Number of stored records."""
        return len(self.records)

    def reset(self) -> None:
        """Clear all records and the failure switch."""
        self.records.clear()
        self._syncs.clear()
        self.fail_with = None

    def _check(self) -> None:
        if self.fail_with is not None:
            raise StorageError(self.fail_with)

    def _index(self, record: MeasurementRecord) -> None:
        bisect.insort(self._syncs.setdefault(record.watch_name, []), record, key=_sync_order)

    def _reindex(self) -> None:
        self._syncs.clear()
        for record in self.records:
            if record.is_sync:
                self._index(record)
