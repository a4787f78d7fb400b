"""Sync and measure operations over the measurement log.

:class:`WatchLog` is the entry point callers use once they hold a
true-time click timestamp.  It validates input, consults the store,
runs the drift calculator and appends the resulting record.

A measure reads the reference sync and inserts the new measurement
inside a single :meth:`~MeasurementStorePort.atomic` block, so either
the record is written with a rate computed against the sync that was
current at that moment, or nothing is written at all.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from watchrate._drift import DriftResult, compute_drift
from watchrate._errors import NoSyncRecordError
from watchrate._record import MeasurementRecord, validate_timestamp, validate_watch_name
from watchrate._settings import MeasurementSettings
from watchrate._store import MeasurementStorePort

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Measurement:
    """Result of a successful measure operation.

    Attributes:
        record: The persisted measurement record.
        reference: The sync record the rate was computed against.
        drift: Full breakdown of the calculation.
    """

    record: MeasurementRecord
    reference: MeasurementRecord
    drift: DriftResult

    @property
    def daily_rate(self) -> float:
        return self.drift.daily_rate


@dataclass
class WatchLog:
    """Records syncs and measurements for any number of watches.

    Args:
        store: Measurement store the log reads from and appends to.
        settings: Thresholds for the quality warnings logged after a
            measurement.  Defaults to :class:`MeasurementSettings`.
    """

    store: MeasurementStorePort
    settings: MeasurementSettings | None = None

    def __post_init__(self) -> None:
        if self.settings is None:
            self.settings = MeasurementSettings()

    def sync(self, watch_name: str, timestamp: datetime, comment: str = "") -> MeasurementRecord:
        """Append a sync record marking a zero-second instant.

        Earlier syncs stay in the log; later measurements simply pick
        the most recent one that precedes them.

        Raises:
            ValidationError: On a blank watch name or naive timestamp.
            StorageError: If the record cannot be written.
        """
        record = self.store.insert(MeasurementRecord.sync(watch_name, timestamp, comment))
        logger.info(
            "Synced %s at %s",
            watch_name,
            record.timestamp.isoformat(),
            extra={"watch": watch_name, "kind": record.kind.value},
        )
        return record

    def measure(self, watch_name: str, timestamp: datetime, comment: str = "") -> Measurement:
        """Compare a zero-second instant against the latest preceding sync.

        Raises:
            ValidationError: On a blank watch name or naive timestamp.
            NoSyncRecordError: If the watch has never been synced.
            InvalidIntervalError: If *timestamp* is not strictly after
                the reference sync.
            StorageError: If the log cannot be read or written.
        """
        validate_watch_name(watch_name)
        timestamp = validate_timestamp(timestamp)

        with self.store.atomic() as tx:
            reference = tx.latest_sync_before(watch_name, timestamp)
            if reference is None:
                # Only later syncs exist: fall through to the interval check,
                # which rejects a measurement that precedes its reference.
                reference = tx.latest_sync(watch_name)
                if reference is None:
                    raise NoSyncRecordError(watch_name)

            drift = compute_drift(reference.timestamp, timestamp)
            record = tx.insert(
                MeasurementRecord.measurement(watch_name, timestamp, drift.daily_rate, comment)
            )

        logger.info(
            "Measured %s: %+.3f s/day over %.3f days (drift %+.3fs, %d minutes)",
            watch_name,
            drift.daily_rate,
            drift.elapsed_days,
            drift.drift_seconds,
            drift.inferred_minutes,
            extra={
                "watch": watch_name,
                "kind": record.kind.value,
                "daily_rate": drift.daily_rate,
            },
        )
        self._warn_on_quality(watch_name, drift)
        return Measurement(record=record, reference=reference, drift=drift)

    def history(self, watch_name: str) -> list[MeasurementRecord]:
        """All records of *watch_name* in timestamp order."""
        return self.store.history(validate_watch_name(watch_name))

    def watches(self) -> list[str]:
        return self.store.watch_names()

    def _warn_on_quality(self, watch_name: str, drift: DriftResult) -> None:
        assert self.settings is not None
        min_interval = timedelta(hours=self.settings.min_interval_hours)
        if drift.elapsed_seconds < min_interval.total_seconds():
            logger.warning(
                "Only %.1f hours since sync for %s; wait at least %.0f hours for a "
                "precise rate (±%.2f s/day at %.1fs click jitter)",
                drift.elapsed_seconds / 3600,
                watch_name,
                self.settings.min_interval_hours,
                drift.uncertainty(self.settings.click_jitter_seconds),
                self.settings.click_jitter_seconds,
                extra={"watch": watch_name},
            )
        if abs(drift.drift_seconds) > self.settings.ambiguity_threshold_seconds:
            logger.warning(
                "Drift of %+.1fs for %s is close to half a minute; the minute count "
                "may be off by one revolution. Consider syncing again.",
                drift.drift_seconds,
                watch_name,
                extra={"watch": watch_name},
            )
