"""Drift calculator — the arithmetic of a watch's daily rate.

The user can only mark *an* instant at which the seconds hand sat at
zero, not *which* revolution it was.  Given a sync instant and a later
measurement instant, the number of whole minutes the watch completed
is inferred as the nearest integer to ``elapsed / 60``.  The residual
is the accumulated drift, normalised to seconds per day.

**Precondition (not enforced):** the watch's cumulative deviation
between the two clicks stays within ±30 seconds.  Beyond that the
inferred minute count slips by one and the rate is off by a multiple
of ``60 / elapsed_days`` seconds per day, silently.

**Sign convention:** positive drift means the watch's minute lasted
longer than 60 true seconds, i.e. the watch runs **slow**.  Negative
drift means it runs **fast**.

Everything here is a pure function of two instants; no clock and no
store are involved.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from watchrate._errors import InvalidIntervalError

SECONDS_PER_MINUTE = 60
SECONDS_PER_DAY = 86_400


@dataclass(frozen=True, slots=True)
class DriftResult:
    """Outcome of comparing a measurement against its sync.

    Attributes:
        elapsed_seconds: True-time interval between the two clicks.
        inferred_minutes: Whole minutes the seconds hand completed.
        drift_seconds: Accumulated offset over the interval
            (positive ⇒ slow).
        elapsed_days: ``elapsed_seconds / 86400``, not rounded.
        daily_rate: ``drift_seconds / elapsed_days`` in s/day.
    """

    elapsed_seconds: float
    inferred_minutes: int
    drift_seconds: float
    elapsed_days: float
    daily_rate: float

    @property
    def is_slow(self) -> bool:
        return self.daily_rate > 0

    def uncertainty(self, click_jitter_seconds: float) -> float:
        """Worst-case rate error in s/day for a given click jitter.

        Both clicks carry the jitter, so the drift error is bounded by
        twice that value before normalisation.
        """
        return 2 * click_jitter_seconds / self.elapsed_days


def infer_minutes(elapsed_seconds: float) -> int:
    """Nearest whole number of minutes in *elapsed_seconds*."""
    return round(elapsed_seconds / SECONDS_PER_MINUTE)


def compute_drift(sync_timestamp: datetime, measurement_timestamp: datetime) -> DriftResult:
    """Compute the daily rate between a sync and a later measurement.

    Args:
        sync_timestamp: Aware instant of the reference sync click.
        measurement_timestamp: Aware instant of the measurement click.

    Returns:
        A :class:`DriftResult` with every intermediate value.

    Raises:
        InvalidIntervalError: If the measurement is not strictly after
            the sync.
    """
    elapsed = (measurement_timestamp - sync_timestamp).total_seconds()
    if elapsed <= 0:
        raise InvalidIntervalError(elapsed)

    minutes = infer_minutes(elapsed)
    drift = elapsed - minutes * SECONDS_PER_MINUTE
    days = elapsed / SECONDS_PER_DAY
    return DriftResult(
        elapsed_seconds=elapsed,
        inferred_minutes=minutes,
        drift_seconds=drift,
        elapsed_days=days,
        daily_rate=drift / days,
    )
