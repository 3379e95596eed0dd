"""Tests for the rate estimator."""

from __future__ import annotations

import pytest

from seedwatch.session.rates import RateTracker, estimate_rate


def test_estimate_rate_basic():
    assert estimate_rate(0, 10.0, 100_000, 11.0) == pytest.approx(100_000)


def test_estimate_rate_negative_delta_is_zero():
    assert estimate_rate(5000, 10.0, 1000, 11.0, previous_rate=300.0) == 0.0


@pytest.mark.parametrize("current_time", [10.0, 9.5])
def test_estimate_rate_keeps_previous_on_clock_anomaly(current_time):
    assert estimate_rate(0, 10.0, 5000, current_time, previous_rate=42.0) == 42.0


def test_tracker_first_sample_is_zero():
    tracker = RateTracker()
    assert tracker.sample(123_456, 5.0) == 0.0
    assert tracker.baseline_bytes == 123_456
    assert tracker.baseline_time == 5.0


def test_tracker_diffs_against_last_sample():
    tracker = RateTracker()
    tracker.sample(0, 0.0)
    assert tracker.sample(2048, 2.0) == pytest.approx(1024)
    assert tracker.sample(2048, 3.0) == 0.0
    assert tracker.sample(5048, 4.0) == pytest.approx(3000)


def test_tracker_same_tick_keeps_rate_and_baseline():
    tracker = RateTracker()
    tracker.sample(0, 1.0)
    tracker.sample(1000, 2.0)
    assert tracker.sample(9999, 2.0) == pytest.approx(1000)
    assert tracker.baseline_bytes == 1000
    assert tracker.sample(3000, 3.0) == pytest.approx(2000)


def test_tracker_reset_starts_fresh_baseline():
    tracker = RateTracker()
    tracker.sample(0, 0.0)
    tracker.sample(1000, 1.0)
    tracker.reset()

    assert tracker.rate == 0.0
    assert tracker.sample(50_000, 500.0) == 0.0
    assert tracker.sample(51_000, 501.0) == pytest.approx(1000)
