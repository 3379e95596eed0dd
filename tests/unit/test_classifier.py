"""Tests for status classification and ETA formatting."""

from __future__ import annotations

import pytest

from seedwatch.session.classifier import ETA_UNKNOWN, classify, estimate_eta, format_eta
from seedwatch.session.models import TransferStatus


def _classify(**overrides):
    kwargs = dict(
        has_metadata=True,
        is_paused=False,
        progress=0.5,
        total_size=1000,
        previous_status=TransferStatus.DOWNLOADING,
        previous_bytes=400,
        current_bytes=500,
        is_seeding=False,
        download_rate=0.0,
    )
    kwargs.update(overrides)
    return classify(**kwargs)


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (9, "9 sec"),
        (59.4, "59 sec"),
        (90, "1.5 min"),
        (5400, "1.5 hours"),
        (86400 * 2.25, "2.2 days"),
    ],
)
def test_format_eta(seconds, expected):
    assert format_eta(seconds) == expected


def test_estimate_eta_requires_meaningful_rate():
    assert estimate_eta(900_000, 1024) == ETA_UNKNOWN
    assert estimate_eta(900_000, 0) == ETA_UNKNOWN
    assert estimate_eta(900_000, 100_000) == "9 sec"


def test_estimate_eta_custom_threshold():
    assert estimate_eta(10_000, 2000, min_rate=5000) == ETA_UNKNOWN
    assert estimate_eta(10_000, 2000, min_rate=100) == "5 sec"


def test_no_metadata_is_discovering():
    result = _classify(has_metadata=False, is_paused=True, progress=1.0)
    assert result.status == TransferStatus.DISCOVERING
    assert result.eta == ""
    assert not result.newly_completed


def test_paused_takes_precedence_over_completion():
    result = _classify(is_paused=True, progress=1.0, current_bytes=1000)
    assert result.status == TransferStatus.PAUSED
    assert result.status_text == "Paused"
    assert result.eta == ""


def test_completed_crossing_is_newly_completed():
    result = _classify(progress=1.0, previous_bytes=900, current_bytes=1000)
    assert result.status == TransferStatus.COMPLETED
    assert result.eta == ""
    assert result.newly_completed


def test_completed_again_is_not_newly_completed():
    result = _classify(
        progress=1.0,
        previous_status=TransferStatus.COMPLETED,
        previous_bytes=900,
        current_bytes=1000,
    )
    assert not result.newly_completed


def test_completed_without_crossing_is_not_newly_completed():
    result = _classify(progress=1.0, previous_bytes=1000, current_bytes=1000)
    assert result.status == TransferStatus.COMPLETED
    assert not result.newly_completed


def test_seeding_before_complete():
    result = _classify(is_seeding=True)
    assert result.status == TransferStatus.SEEDING
    assert result.eta == ""


def test_completion_wins_over_seeding():
    result = _classify(is_seeding=True, progress=1.0, current_bytes=1000)
    assert result.status == TransferStatus.COMPLETED


def test_downloading_embeds_percentage_and_eta():
    result = _classify(progress=0.1234, current_bytes=100, download_rate=90.0)
    assert result.status == TransferStatus.DOWNLOADING
    assert result.status_text == "Downloading (12.3%)"
    assert result.eta == ETA_UNKNOWN

    fast = _classify(current_bytes=100_000, total_size=1_000_000, download_rate=100_000)
    assert fast.eta == "9 sec"
