"""Transfer engine protocols — any engine backend must satisfy these."""

from __future__ import annotations

from pathlib import Path
from typing import NamedTuple, Protocol, runtime_checkable


class FileSpec(NamedTuple):
    """One file inside a transfer as declared by its metadata."""

    path: str
    length: int


@runtime_checkable
class TransferHandle(Protocol):
    """Engine-side reference to one active transfer.

    Accessors read cached engine state and must not block on the network.
    """

    def stable_id(self) -> str:
        """Content hash identifying the transfer."""
        ...

    def metadata_ready(self) -> bool:
        ...

    def wait_for_metadata(self, timeout: float) -> bool:
        """Block until metadata is available. Returns False on timeout."""
        ...

    def name(self) -> str:
        ...

    def total_length(self) -> int:
        ...

    def bytes_completed(self) -> int:
        ...

    def bytes_uploaded(self) -> int:
        ...

    def file_list(self) -> list[FileSpec]:
        ...

    def file_bytes_completed(self) -> list[int] | None:
        """Completed bytes per file, or None if the engine cannot tell."""
        ...

    def peer_count(self) -> int:
        ...

    def seed_count(self) -> int:
        ...

    def is_seeding(self) -> bool:
        ...

    def is_valid(self) -> bool:
        """False once the engine no longer knows this transfer."""
        ...

    def data_path(self) -> Path | None:
        """Where the transfer's content lives on disk, if known."""
        ...

    def download_all(self) -> None:
        ...

    def cancel_all_pieces(self) -> None:
        ...

    def drop(self) -> None:
        """Stop all network activity and forget the transfer."""
        ...


@runtime_checkable
class TransferEngine(Protocol):
    """Registers transfers and hands back their handles."""

    def add_magnet(self, reference: str) -> TransferHandle:
        """Register a magnet-style reference. Raises RegistrationError."""
        ...

    def add_file(self, path: str | Path) -> TransferHandle:
        """Register a metainfo file. Raises RegistrationError."""
        ...

    def close(self) -> None:
        ...
