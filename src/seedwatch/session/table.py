"""Thread-safe registry of session entries keyed by transfer id."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TypeVar

from seedwatch.errors import DuplicateIDError, NotFoundError
from seedwatch.session.models import EntrySnapshot, SessionEntry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionTable:
    """Authoritative id → SessionEntry mapping.

    Every read and write goes through one lock. Callers never get a live
    SessionEntry back except inside ``update``/``mutate``/``remove`` callbacks,
    which also run under the lock.
    """

    def __init__(self) -> None:
        self._entries: dict[str, SessionEntry] = {}
        self._lock = threading.Lock()

    def add(self, entry: SessionEntry) -> None:
        with self._lock:
            if entry.id in self._entries:
                raise DuplicateIDError(entry.id)
            self._entries[entry.id] = entry

    def remove(
        self,
        transfer_id: str,
        detach: Callable[[SessionEntry], None] | None = None,
    ) -> SessionEntry:
        """Remove and return an entry.

        ``detach`` runs under the lock before the entry leaves the table, so
        no reader sees the entry after its handle has been released.
        """
        with self._lock:
            entry = self._entries.get(transfer_id)
            if entry is None:
                raise NotFoundError(transfer_id)
            if detach is not None:
                detach(entry)
            del self._entries[transfer_id]
            return entry

    def get(self, transfer_id: str) -> EntrySnapshot:
        with self._lock:
            entry = self._entries.get(transfer_id)
            if entry is None:
                raise NotFoundError(transfer_id)
            return entry.to_snapshot()

    def mutate(self, transfer_id: str, fn: Callable[[SessionEntry], T]) -> T:
        """Apply ``fn`` to one entry under the lock and return its result."""
        with self._lock:
            entry = self._entries.get(transfer_id)
            if entry is None:
                raise NotFoundError(transfer_id)
            return fn(entry)

    def update(self, fn: Callable[[SessionEntry], None]) -> tuple[EntrySnapshot, ...]:
        """Apply ``fn`` to every entry and snapshot in one critical section."""
        with self._lock:
            for entry in self._entries.values():
                fn(entry)
            return self._snapshot_locked()

    def snapshot(self) -> tuple[EntrySnapshot, ...]:
        """Immutable copies of all entries, oldest first."""
        with self._lock:
            return self._snapshot_locked()

    def _snapshot_locked(self) -> tuple[EntrySnapshot, ...]:
        entries = sorted(self._entries.values(), key=lambda e: e.added_at)
        return tuple(e.to_snapshot() for e in entries)

    def purge_invalid(self) -> list[str]:
        """Drop entries whose handle is missing or no longer valid."""
        with self._lock:
            broken = [
                tid for tid, entry in self._entries.items() if not _handle_ok(entry)
            ]
            for tid in broken:
                del self._entries[tid]
        for tid in broken:
            logger.info("Purged transfer %s with an invalid handle", tid)
        return broken

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, transfer_id: object) -> bool:
        with self._lock:
            return transfer_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _handle_ok(entry: SessionEntry) -> bool:
    if entry.handle is None:
        return False
    try:
        return bool(entry.handle.is_valid())
    except Exception:
        logger.debug("is_valid() raised for %s", entry.id, exc_info=True)
        return False
