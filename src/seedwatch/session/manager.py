"""Session manager — refresh loop plus add/remove/pause mutators."""

from __future__ import annotations

import logging
import shutil
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from seedwatch.config import SeedwatchConfig
from seedwatch.engine.base import TransferEngine, TransferHandle
from seedwatch.errors import (
    InvalidHandleError,
    MetadataTimeoutError,
    RegistrationError,
    SampleError,
    SeedwatchError,
)
from seedwatch.session.classifier import classify
from seedwatch.session.models import (
    ETA_CALCULATING,
    AggregateStats,
    CompletionEvent,
    EntrySnapshot,
    FileEntry,
    SessionEntry,
    Snapshot,
    TransferStatus,
)
from seedwatch.session.table import SessionTable

logger = logging.getLogger(__name__)

_MAGNET_PREFIX = "magnet:"

CompletionListener = Callable[[CompletionEvent], None]


class PendingTransfer:
    """A registered transfer waiting for its metadata.

    ``wait()`` blocks until the entry is in the session table, the wait
    failed (``error`` is set) or the transfer was removed (``cancelled``).
    """

    def __init__(self, transfer_id: str, source: str, handle: TransferHandle) -> None:
        self.id = transfer_id
        self.source = source
        self.handle = handle
        self.error: SeedwatchError | None = None
        self.cancelled = False
        self._done = threading.Event()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    @property
    def ok(self) -> bool:
        return self.done and self.error is None and not self.cancelled

    def wait(self, timeout: float | None = None) -> bool:
        return self._done.wait(timeout)

    def _resolve(self, error: SeedwatchError | None = None) -> None:
        if self._done.is_set():
            return
        self.error = error
        self._done.set()


@dataclass(frozen=True)
class AddResult:
    """Per-item outcome of a batch add."""

    source: str
    pending: PendingTransfer | None = None
    error: SeedwatchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class _Reading:
    """Everything read from a handle in one cycle, before any entry mutation."""

    has_metadata: bool
    peers: int
    seeds: int
    total_length: int = 0
    bytes_completed: int = 0
    bytes_uploaded: int = 0
    is_seeding: bool = False
    file_bytes: list[int] | None = None


class SessionManager:
    """Owns the session table and keeps it in step with the engine.

    Threading model:
    - Refresh thread: ``refresh_loop()`` samples every handle once per tick.
    - Caller threads (UI, CLI): mutators; each touches the table only
      through its lock and never waits on engine I/O while holding it.
    - Metadata threads: one per ``add()``, committing the entry when ready.
    """

    def __init__(
        self,
        engine: TransferEngine,
        config: SeedwatchConfig | None = None,
        clock: Callable[[], float] = time.time,
        on_snapshot: Callable[[Snapshot], None] | None = None,
    ) -> None:
        self._engine = engine
        self._config = config or SeedwatchConfig()
        self._clock = clock
        self._on_snapshot = on_snapshot
        self._table = SessionTable()
        # Lock order: _pending_lock before the table lock
        self._pending: dict[str, PendingTransfer] = {}
        self._pending_lock = threading.Lock()
        self._listeners: list[CompletionListener] = []
        self._listeners_lock = threading.Lock()
        self._cleanup_threads: list[threading.Thread] = []
        self._cleanup_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._latest = Snapshot()

    @property
    def table(self) -> SessionTable:
        return self._table

    @property
    def latest_snapshot(self) -> Snapshot:
        """Snapshot published by the most recent refresh cycle."""
        return self._latest

    # --- Mutators ---

    def add(self, source: str | Path) -> PendingTransfer:
        """Register a magnet link or .torrent path with the engine.

        Raises RegistrationError synchronously when the engine rejects the
        source. Adding content that is already tracked or pending returns
        the existing transfer without registering anything new.
        """
        handle = self._register(source)
        transfer_id = handle.stable_id()

        with self._pending_lock:
            existing = self._pending.get(transfer_id)
            if existing is not None:
                logger.info("Transfer %s is already waiting for metadata", transfer_id)
                return existing
            pending = PendingTransfer(transfer_id, str(source), handle)
            if transfer_id in self._table:
                logger.info("Transfer %s is already in the session", transfer_id)
                pending._resolve()
                return pending
            self._pending[transfer_id] = pending

        thread = threading.Thread(
            target=self._await_metadata,
            args=(pending,),
            name=f"metadata-{transfer_id[:8]}",
            daemon=True,
        )
        thread.start()
        logger.info("Registered %s as %s", pending.source, transfer_id)
        return pending

    def add_many(self, sources: Iterable[str | Path]) -> list[AddResult]:
        """Add several sources; one failure never aborts the rest."""
        results: list[AddResult] = []
        for source in sources:
            try:
                results.append(AddResult(str(source), pending=self.add(source)))
            except SeedwatchError as exc:
                logger.warning("Could not add %s: %s", source, exc)
                results.append(AddResult(str(source), error=exc))
        return results

    def pending(self) -> list[PendingTransfer]:
        with self._pending_lock:
            return list(self._pending.values())

    def remove(self, transfer_id: str, delete_data: bool = False) -> EntrySnapshot | None:
        """Detach a transfer's handle and drop it from the session.

        Returns the final state of the removed entry, or None when a
        transfer still waiting for metadata was cancelled. Raises
        NotFoundError for unknown ids. Data deletion runs in the background.
        """
        data_paths: list[Path] = []

        def detach(entry: SessionEntry) -> None:
            if delete_data:
                path = _data_path(entry.handle) or self._config.download_dir / entry.name
                data_paths.append(path)
            _drop(entry.handle, entry.id)
            entry.handle = None

        with self._pending_lock:
            pending = self._pending.pop(transfer_id, None)
            if pending is not None:
                pending.cancelled = True
                _drop(pending.handle, transfer_id)
                pending._resolve()
                logger.info("Cancelled pending transfer %s", transfer_id)
                return None
            entry = self._table.remove(transfer_id, detach=detach)

        logger.info("Removed %s (%s)", entry.name, transfer_id)
        for path in data_paths:
            if _inside(path, self._config.download_dir):
                self._delete_in_background(path)
            else:
                logger.warning(
                    "Refusing to delete %s: not inside the download directory %s",
                    path,
                    self._config.download_dir,
                )
        return entry.to_snapshot()

    def set_paused(self, transfer_id: str, paused: bool) -> None:
        """Pause or resume a transfer. Raises NotFoundError for unknown ids."""
        self._table.mutate(transfer_id, lambda entry: _apply_pause(entry, paused))

    def toggle_paused(self, transfer_id: str) -> bool:
        """Flip the pause flag and return the new value."""
        return self._table.mutate(
            transfer_id, lambda entry: _apply_pause(entry, not entry.is_paused)
        )

    def join_cleanup(self, timeout: float | None = None) -> None:
        """Wait for background data deletions to finish."""
        with self._cleanup_lock:
            threads = list(self._cleanup_threads)
        for thread in threads:
            thread.join(timeout)

    # --- Read side ---

    def subscribe(self, listener: CompletionListener) -> Callable[[], None]:
        """Receive a CompletionEvent whenever a transfer finishes.

        Returns a callable that unsubscribes the listener.
        """
        with self._listeners_lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._listeners_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> Snapshot:
        """Current table contents (not waiting for the next cycle)."""
        self._table.purge_invalid()
        entries = self._table.snapshot()
        return Snapshot(entries, AggregateStats.from_entries(entries), self._clock())

    def stats(self) -> AggregateStats:
        return self.snapshot().stats

    # --- Refresh loop ---

    def refresh_once(self) -> Snapshot:
        """Run one refresh cycle and publish its snapshot."""
        now = self._clock()
        self._table.purge_invalid()

        completed: list[CompletionEvent] = []

        def sample(entry: SessionEntry) -> None:
            try:
                event = self._sample(entry, now)
            except SampleError as exc:
                logger.warning("%s", exc)
                return
            if event is not None:
                completed.append(event)

        entries = self._table.update(sample)
        snapshot = Snapshot(entries, AggregateStats.from_entries(entries), now)
        self._latest = snapshot

        for event in completed:
            self._emit(event)
        if self._on_snapshot is not None:
            try:
                self._on_snapshot(snapshot)
            except Exception:
                logger.exception("Snapshot callback failed")
        return snapshot

    def refresh_loop(self) -> None:
        """Blocking refresh loop until stop() is called."""
        interval = self._config.refresh_interval
        logger.info("Refresh loop started (every %.2fs)", interval)
        while not self._stop_event.is_set():
            try:
                self.refresh_once()
            except Exception:
                logger.exception("Refresh cycle failed")
            self._stop_event.wait(timeout=interval)
        logger.info("Refresh loop stopped")

    def start(self) -> None:
        """Run refresh_loop() on a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.refresh_loop, name="seedwatch-refresh", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal the refresh loop to stop and wait for its thread."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._config.refresh_interval + 1.0)
            self._thread = None

    # --- Internals ---

    def _register(self, source: str | Path) -> TransferHandle:
        text = str(source).strip()
        try:
            if text.startswith(_MAGNET_PREFIX):
                return self._engine.add_magnet(text)
            return self._engine.add_file(source)
        except RegistrationError:
            raise
        except Exception as exc:
            raise RegistrationError(f"Engine rejected {text[:80]!r}: {exc}") from exc

    def _await_metadata(self, pending: PendingTransfer) -> None:
        handle = pending.handle
        timeout = self._config.metadata_timeout
        try:
            ready = handle.wait_for_metadata(timeout)
        except Exception as exc:
            logger.warning("Metadata for %s failed", pending.id, exc_info=True)
            self._abandon(pending, RegistrationError(f"Metadata failed: {exc}"))
            return

        if not ready:
            logger.warning("Timed out after %.0fs waiting for metadata of %s", timeout, pending.id)
            self._abandon(
                pending, MetadataTimeoutError(f"Timeout waiting for metadata of {pending.source}")
            )
            return

        with self._pending_lock:
            if pending.cancelled:
                return
            del self._pending[pending.id]
            try:
                entry = self._build_entry(handle)
                handle.download_all()
                self._table.add(entry)
            except Exception as exc:
                logger.warning("Could not start %s", pending.id, exc_info=True)
                _drop(handle, pending.id)
                pending._resolve(RegistrationError(f"Could not start {pending.source}: {exc}"))
                return
        pending._resolve()
        logger.info("Added %s (%s, %d bytes)", entry.name, entry.id, entry.total_size)

    def _abandon(self, pending: PendingTransfer, error: SeedwatchError) -> None:
        with self._pending_lock:
            if pending.cancelled:
                return
            self._pending.pop(pending.id, None)
            _drop(pending.handle, pending.id)
        pending._resolve(error)

    def _build_entry(self, handle: TransferHandle) -> SessionEntry:
        now = self._clock()
        name = handle.name()
        total = handle.total_length()
        files = [FileEntry(spec.path, spec.length) for spec in handle.file_list()]
        if not files:
            files = [FileEntry(name, total)]
        downloaded = handle.bytes_completed()
        return SessionEntry(
            id=handle.stable_id(),
            name=name,
            total_size=total,
            handle=handle,
            files=files,
            downloaded_bytes=downloaded,
            uploaded_bytes=handle.bytes_uploaded(),
            progress=_progress(downloaded, total),
            eta=ETA_CALCULATING,
            added_at=now,
            last_sampled_at=now,
        )

    def _sample(self, entry: SessionEntry, now: float) -> CompletionEvent | None:
        """Refresh one entry in place; runs under the table lock."""
        handle = entry.handle
        if handle is None:
            return None
        try:
            reading = _read(handle, entry.is_paused)
        except Exception as exc:
            raise SampleError(entry.id, exc) from exc

        previous_status = entry.status
        previous_bytes = entry.downloaded_bytes

        if reading.has_metadata and not entry.is_paused:
            if entry.total_size <= 0 and reading.total_length > 0:
                entry.total_size = reading.total_length
            entry.downloaded_bytes = reading.bytes_completed
            entry.uploaded_bytes = reading.bytes_uploaded
            entry.progress = _progress(entry.downloaded_bytes, entry.total_size)
            entry.download_rate = entry.download_tracker.sample(reading.bytes_completed, now)
            entry.upload_rate = entry.upload_tracker.sample(reading.bytes_uploaded, now)
            _update_files(entry, reading.file_bytes)
        else:
            entry.download_rate = 0.0
            entry.upload_rate = 0.0

        result = classify(
            has_metadata=reading.has_metadata,
            is_paused=entry.is_paused,
            progress=entry.progress,
            total_size=entry.total_size,
            previous_status=previous_status,
            previous_bytes=previous_bytes,
            current_bytes=entry.downloaded_bytes,
            is_seeding=reading.is_seeding,
            download_rate=entry.download_rate,
            min_eta_rate=self._config.min_eta_rate,
        )
        entry.status = result.status
        entry.status_text = result.status_text
        entry.eta = result.eta
        entry.peers = reading.peers
        entry.seeds = reading.seeds
        entry.last_sampled_at = now

        if result.newly_completed:
            logger.info("Download complete: %s", entry.name)
            return CompletionEvent(entry.id, entry.name, now)
        return None

    def _emit(self, event: CompletionEvent) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Completion listener failed for %s", event.id)

    def _delete_in_background(self, path: Path) -> None:
        thread = threading.Thread(
            target=_delete_data, args=(path,), name="seedwatch-cleanup", daemon=True
        )
        with self._cleanup_lock:
            self._cleanup_threads = [t for t in self._cleanup_threads if t.is_alive()]
            self._cleanup_threads.append(thread)
            thread.start()


def _apply_pause(entry: SessionEntry, paused: bool) -> bool:
    if entry.is_paused == paused:
        return paused
    if entry.handle is None:
        raise InvalidHandleError(f"Transfer {entry.id} has no engine handle")

    if paused:
        entry.handle.cancel_all_pieces()
        entry.is_paused = True
        entry.status = TransferStatus.PAUSED
        entry.status_text = TransferStatus.PAUSED.value
        entry.eta = ""
        entry.download_rate = 0.0
        entry.upload_rate = 0.0
        logger.info("Paused %s", entry.name)
        return True

    entry.handle.download_all()
    entry.is_paused = False
    entry.reset_rates()
    if entry.progress >= 1.0:
        entry.status = TransferStatus.COMPLETED
        entry.status_text = TransferStatus.COMPLETED.value
        entry.eta = ""
    else:
        entry.status = TransferStatus.DOWNLOADING
        entry.status_text = f"Downloading ({entry.progress * 100:.1f}%)"
        entry.eta = ETA_CALCULATING
    logger.info("Resumed %s", entry.name)
    return False


def _read(handle: TransferHandle, paused: bool) -> _Reading:
    has_metadata = handle.metadata_ready()
    peers = handle.peer_count()
    seeds = handle.seed_count()
    if not has_metadata or paused:
        return _Reading(has_metadata=has_metadata, peers=peers, seeds=seeds)
    return _Reading(
        has_metadata=True,
        peers=peers,
        seeds=seeds,
        total_length=handle.total_length(),
        bytes_completed=handle.bytes_completed(),
        bytes_uploaded=handle.bytes_uploaded(),
        is_seeding=handle.is_seeding(),
        file_bytes=handle.file_bytes_completed(),
    )


def _progress(downloaded: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return min(1.0, max(0.0, downloaded / total))


def _update_files(entry: SessionEntry, file_bytes: list[int] | None) -> None:
    # Without per-file counters every file shows the transfer's overall progress
    exact = file_bytes is not None and len(file_bytes) == len(entry.files)
    for i, f in enumerate(entry.files):
        if exact and f.size > 0:
            f.progress = min(1.0, max(0.0, file_bytes[i] / f.size))  # type: ignore[index]
        else:
            f.progress = entry.progress


def _data_path(handle: TransferHandle | None) -> Path | None:
    if handle is None:
        return None
    try:
        return handle.data_path()
    except Exception:
        logger.debug("data_path() failed", exc_info=True)
        return None


def _drop(handle: TransferHandle | None, transfer_id: str) -> None:
    if handle is None:
        return
    try:
        handle.drop()
    except Exception:
        logger.warning("Engine failed to drop %s", transfer_id, exc_info=True)


def _inside(path: Path, root: Path) -> bool:
    # Strictly below root; root itself holds every other transfer's data
    root = root.resolve()
    return root in path.resolve().parents


def _delete_data(path: Path) -> None:
    try:
        if path.is_dir():
            shutil.rmtree(path)
        elif path.exists():
            path.unlink()
        else:
            logger.debug("Nothing to delete at %s", path)
            return
        logger.info("Deleted downloaded data at %s", path)
    except OSError as exc:
        logger.error("Error removing downloaded files at %s: %s", path, exc)
