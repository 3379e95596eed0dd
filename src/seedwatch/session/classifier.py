"""Status classification and ETA formatting for one transfer per cycle."""

from __future__ import annotations

from dataclasses import dataclass

from seedwatch.session.models import TransferStatus

ETA_UNKNOWN = "Unknown"
DEFAULT_MIN_ETA_RATE = 1024.0


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying one entry for one cycle."""

    status: TransferStatus
    status_text: str
    eta: str = ""
    newly_completed: bool = False


def format_eta(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.0f} sec"
    if seconds < 3600:
        return f"{seconds / 60:.1f} min"
    if seconds < 86400:
        return f"{seconds / 3600:.1f} hours"
    return f"{seconds / 86400:.1f} days"


def estimate_eta(
    remaining_bytes: int,
    download_rate: float,
    min_rate: float = DEFAULT_MIN_ETA_RATE,
) -> str:
    """Time to completion at the current rate, or ETA_UNKNOWN when too slow."""
    if download_rate <= min_rate:
        return ETA_UNKNOWN
    return format_eta(max(0, remaining_bytes) / download_rate)


def classify(
    *,
    has_metadata: bool,
    is_paused: bool,
    progress: float,
    total_size: int,
    previous_status: TransferStatus,
    previous_bytes: int,
    current_bytes: int,
    is_seeding: bool = False,
    download_rate: float = 0.0,
    min_eta_rate: float = DEFAULT_MIN_ETA_RATE,
) -> Classification:
    """Derive status and ETA, checking rules in priority order.

    Metadata first, then the user's pause flag, then completion, then a
    partial transfer the engine reports as seeding (every wanted piece is
    present), and finally plain downloading.
    """
    if not has_metadata:
        return Classification(TransferStatus.DISCOVERING, TransferStatus.DISCOVERING.value)

    if is_paused:
        return Classification(TransferStatus.PAUSED, TransferStatus.PAUSED.value)

    if progress >= 1.0:
        crossed = previous_bytes < total_size <= current_bytes
        return Classification(
            TransferStatus.COMPLETED,
            TransferStatus.COMPLETED.value,
            newly_completed=previous_status is not TransferStatus.COMPLETED and crossed,
        )

    if is_seeding:
        return Classification(TransferStatus.SEEDING, TransferStatus.SEEDING.value)

    return Classification(
        TransferStatus.DOWNLOADING,
        f"Downloading ({progress * 100:.1f}%)",
        eta=estimate_eta(total_size - current_bytes, download_rate, min_eta_rate),
    )
