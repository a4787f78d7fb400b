"""Unit tests for watchrate._drift — the daily rate calculation.

Test Techniques Used:
    - Example-based Testing: worked scenarios with known answers
    - Property-style Testing: residual equals injected jitter
    - Boundary Value Analysis: zero and negative intervals
    - Determinism: same inputs, same output
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from watchrate._drift import DriftResult, compute_drift, infer_minutes
from watchrate._errors import InvalidIntervalError

T0 = datetime(2024, 1, 1, 0, 0, 0, tzinfo=UTC)


class TestWorkedScenario:
    """24 hours plus five seconds.

    Technique: Example-based Testing.
    """

    @pytest.fixture
    def result(self) -> DriftResult:
        return compute_drift(T0, datetime(2024, 1, 2, 0, 0, 5, tzinfo=UTC))

    def test_elapsed_seconds(self, result: DriftResult) -> None:
        assert result.elapsed_seconds == 86405

    def test_inferred_minutes(self, result: DriftResult) -> None:
        assert result.inferred_minutes == 1440

    def test_drift_seconds(self, result: DriftResult) -> None:
        assert result.drift_seconds == pytest.approx(5.0)

    def test_elapsed_days(self, result: DriftResult) -> None:
        assert result.elapsed_days == pytest.approx(1.0000579, rel=1e-7)

    def test_daily_rate(self, result: DriftResult) -> None:
        assert result.daily_rate == pytest.approx(4.99971, abs=1e-4)

    def test_positive_rate_means_slow(self, result: DriftResult) -> None:
        assert result.is_slow


class TestMinuteInference:
    """Nearest-minute rounding over jittered intervals.

    Technique: Property-style Testing — for intervals within ±2 s of
    a whole number of minutes the residual is exactly the jitter.
    """

    @pytest.mark.parametrize("minutes", [1, 59, 1440, 2 * 1440 + 7, 10 * 1440])
    @pytest.mark.parametrize("jitter", [-2.0, -0.75, -0.001, 0.0, 0.001, 0.5, 2.0])
    def test_residual_matches_jitter(self, minutes: int, jitter: float) -> None:
        measured = T0 + timedelta(seconds=minutes * 60 + jitter)
        result = compute_drift(T0, measured)
        assert result.inferred_minutes == minutes
        assert result.drift_seconds == pytest.approx(jitter, abs=1e-6)

    def test_fast_watch_gives_negative_rate(self) -> None:
        """Hand reaches zero 3 s early after two days ⇒ -1.5 s/day."""
        result = compute_drift(T0, T0 + timedelta(days=2, seconds=-3))
        assert result.inferred_minutes == 2880
        assert result.drift_seconds == pytest.approx(-3.0)
        assert result.daily_rate == pytest.approx(-3.0 / ((2 * 86400 - 3) / 86400))
        assert not result.is_slow

    def test_infer_minutes_rounds_to_nearest(self) -> None:
        assert infer_minutes(89.9) == 1
        assert infer_minutes(90.1) == 2
        assert infer_minutes(29.0) == 0

    def test_drift_beyond_half_minute_wraps(self) -> None:
        """40 s of real drift is indistinguishable from -20 s.

        Documents the precondition rather than a feature.
        """
        result = compute_drift(T0, T0 + timedelta(days=1, seconds=40))
        assert result.inferred_minutes == 1441
        assert result.drift_seconds == pytest.approx(-20.0)


class TestIntervalBoundaries:
    """Non-positive intervals are rejected.

    Technique: Boundary Value Analysis.
    """

    def test_equal_timestamps_rejected(self) -> None:
        with pytest.raises(InvalidIntervalError) as exc_info:
            compute_drift(T0, T0)
        assert exc_info.value.elapsed_seconds == 0

    def test_measurement_before_sync_rejected(self) -> None:
        with pytest.raises(InvalidIntervalError):
            compute_drift(T0, T0 - timedelta(seconds=1))

    def test_one_millisecond_is_accepted(self) -> None:
        result = compute_drift(T0, T0 + timedelta(milliseconds=1))
        assert result.inferred_minutes == 0
        assert result.drift_seconds == pytest.approx(0.001)


class TestPurity:
    """Same inputs always give the same result.

    Technique: Determinism.
    """

    def test_repeatable(self) -> None:
        measured = T0 + timedelta(days=3, seconds=-7.25)
        assert compute_drift(T0, measured) == compute_drift(T0, measured)

    def test_uncertainty_shrinks_with_interval(self) -> None:
        one_day = compute_drift(T0, T0 + timedelta(days=1))
        ten_days = compute_drift(T0, T0 + timedelta(days=10))
        assert one_day.uncertainty(0.2) == pytest.approx(0.4)
        assert ten_days.uncertainty(0.2) == pytest.approx(0.04)
