"""Throughput estimation from successive byte-count samples."""

from __future__ import annotations

from dataclasses import dataclass


def estimate_rate(
    previous_bytes: int,
    previous_time: float,
    current_bytes: int,
    current_time: float,
    previous_rate: float = 0.0,
) -> float:
    """Bytes per second between two samples, never negative.

    A non-positive elapsed time keeps ``previous_rate``. A shrinking counter
    (e.g. the engine reset the transfer) yields 0.
    """
    elapsed = current_time - previous_time
    if elapsed <= 0:
        return previous_rate
    delta = current_bytes - previous_bytes
    if delta <= 0:
        return 0.0
    return delta / elapsed


@dataclass
class RateTracker:
    """Last-sample baseline for one counter of one transfer."""

    baseline_bytes: int | None = None
    baseline_time: float | None = None
    rate: float = 0.0

    def sample(self, current_bytes: int, now: float) -> float:
        """Record a sample and return the updated rate."""
        if self.baseline_bytes is None or self.baseline_time is None:
            self.rate = 0.0
        else:
            self.rate = estimate_rate(
                self.baseline_bytes,
                self.baseline_time,
                current_bytes,
                now,
                previous_rate=self.rate,
            )
            if now <= self.baseline_time:
                # Same tick: keep the older baseline so the next diff spans real time
                return self.rate
        self.baseline_bytes = current_bytes
        self.baseline_time = now
        return self.rate

    def reset(self) -> None:
        """Forget history; the next sample starts a fresh baseline."""
        self.baseline_bytes = None
        self.baseline_time = None
        self.rate = 0.0
