"""Session data models — entries, snapshots, completion events, totals."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field

from seedwatch.engine.base import TransferHandle
from seedwatch.session.rates import RateTracker

ETA_CALCULATING = "Calculating..."


class TransferStatus(enum.Enum):
    """Lifecycle state of a tracked transfer."""

    DISCOVERING = "Discovering"
    DOWNLOADING = "Downloading"
    PAUSED = "Paused"
    SEEDING = "Seeding"
    COMPLETED = "Completed"


@dataclass
class FileEntry:
    """One file of a transfer with its completion fraction."""

    path: str
    size: int
    progress: float = 0.0


@dataclass(frozen=True)
class FileSnapshot:
    path: str
    size: int
    progress: float


@dataclass(frozen=True)
class EntrySnapshot:
    """Immutable, handle-free view of a SessionEntry for rendering."""

    id: str
    name: str
    total_size: int
    downloaded_bytes: int
    uploaded_bytes: int
    progress: float
    download_rate: float
    upload_rate: float
    status: TransferStatus
    status_text: str
    eta: str
    peers: int
    seeds: int
    files: tuple[FileSnapshot, ...]
    is_paused: bool
    added_at: float
    last_sampled_at: float


@dataclass
class SessionEntry:
    """The core's derived record of one transfer.

    Fields are only mutated under the SessionTable lock.
    """

    id: str
    name: str
    total_size: int
    handle: TransferHandle | None
    files: list[FileEntry] = field(default_factory=list)
    downloaded_bytes: int = 0
    uploaded_bytes: int = 0
    progress: float = 0.0
    download_rate: float = 0.0
    upload_rate: float = 0.0
    status: TransferStatus = TransferStatus.DISCOVERING
    status_text: str = TransferStatus.DISCOVERING.value
    eta: str = ETA_CALCULATING
    peers: int = 0
    seeds: int = 0
    is_paused: bool = False
    added_at: float = field(default_factory=time.time)
    last_sampled_at: float = 0.0
    download_tracker: RateTracker = field(default_factory=RateTracker)
    upload_tracker: RateTracker = field(default_factory=RateTracker)

    def reset_rates(self) -> None:
        self.download_tracker.reset()
        self.upload_tracker.reset()
        self.download_rate = 0.0
        self.upload_rate = 0.0

    def to_snapshot(self) -> EntrySnapshot:
        return EntrySnapshot(
            id=self.id,
            name=self.name,
            total_size=self.total_size,
            downloaded_bytes=self.downloaded_bytes,
            uploaded_bytes=self.uploaded_bytes,
            progress=self.progress,
            download_rate=self.download_rate,
            upload_rate=self.upload_rate,
            status=self.status,
            status_text=self.status_text,
            eta=self.eta,
            peers=self.peers,
            seeds=self.seeds,
            files=tuple(FileSnapshot(f.path, f.size, f.progress) for f in self.files),
            is_paused=self.is_paused,
            added_at=self.added_at,
            last_sampled_at=self.last_sampled_at,
        )


@dataclass(frozen=True)
class CompletionEvent:
    """One-shot notice that a transfer crossed into Completed."""

    id: str
    name: str
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class AggregateStats:
    """Totals across all tracked transfers for one refresh cycle."""

    active: int = 0
    completed: int = 0
    seeding: int = 0
    total: int = 0
    download_rate: float = 0.0
    upload_rate: float = 0.0

    @property
    def finished(self) -> int:
        """Entries with nothing left to fetch: complete, or seeding a partial selection."""
        return self.completed + self.seeding

    @property
    def activity(self) -> str:
        if self.active > 0:
            return "Downloading"
        if self.total > 0:
            return "Idle"
        return "Ready"

    @classmethod
    def from_entries(cls, entries: tuple[EntrySnapshot, ...]) -> AggregateStats:
        active = completed = seeding = 0
        download_rate = upload_rate = 0.0
        for entry in entries:
            if entry.progress >= 1.0:
                completed += 1
            elif entry.status is TransferStatus.SEEDING:
                seeding += 1
            else:
                active += 1
                download_rate += entry.download_rate
            upload_rate += entry.upload_rate
        return cls(
            active=active,
            completed=completed,
            seeding=seeding,
            total=len(entries),
            download_rate=download_rate,
            upload_rate=upload_rate,
        )


@dataclass(frozen=True)
class Snapshot:
    """Consistent view of the whole session published once per cycle."""

    entries: tuple[EntrySnapshot, ...] = ()
    stats: AggregateStats = field(default_factory=AggregateStats)
    taken_at: float = 0.0

    def get(self, transfer_id: str) -> EntrySnapshot | None:
        for entry in self.entries:
            if entry.id == transfer_id:
                return entry
        return None

    @property
    def ids(self) -> list[str]:
        return [entry.id for entry in self.entries]
