"""Transfer engine backed by the libtorrent Python bindings.

The bindings are an optional extra (``pip install seedwatch[libtorrent]``)
and are imported when the engine is created, so the rest of the package and
its tests work without them.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any

from seedwatch.engine.base import FileSpec
from seedwatch.errors import EngineUnavailableError, RegistrationError

logger = logging.getLogger(__name__)

_MAGNET_PREFIX = "magnet:"
_METADATA_POLL = 0.1


class LibtorrentHandle:
    """TransferHandle over an ``lt.torrent_handle``.

    ``auto_managed`` is the ``lt.torrent_flags.auto_managed`` flag. It is
    cleared while paused so the session queue cannot resume the torrent.
    """

    def __init__(self, session: Any, handle: Any, auto_managed: Any) -> None:
        self._session = session
        self._handle = handle
        self._auto_managed = auto_managed
        self._id = str(handle.info_hash())

    def stable_id(self) -> str:
        return self._id

    def metadata_ready(self) -> bool:
        return bool(self._handle.status().has_metadata)

    def wait_for_metadata(self, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        while not self.metadata_ready():
            if time.monotonic() >= deadline:
                return False
            time.sleep(_METADATA_POLL)
        return True

    def name(self) -> str:
        info = self._handle.torrent_file()
        if info is not None:
            return info.name()
        return self._handle.status().name or self._id[:8]

    def total_length(self) -> int:
        info = self._handle.torrent_file()
        return info.total_size() if info is not None else 0

    def bytes_completed(self) -> int:
        return int(self._handle.status().total_wanted_done)

    def bytes_uploaded(self) -> int:
        return int(self._handle.status().total_upload)

    def file_list(self) -> list[FileSpec]:
        info = self._handle.torrent_file()
        if info is None:
            return []
        storage = info.files()
        return [
            FileSpec(storage.file_path(i), storage.file_size(i))
            for i in range(storage.num_files())
        ]

    def file_bytes_completed(self) -> list[int] | None:
        if self._handle.torrent_file() is None:
            return None
        return [int(n) for n in self._handle.file_progress()]

    def peer_count(self) -> int:
        return int(self._handle.status().num_peers)

    def seed_count(self) -> int:
        return int(self._handle.status().num_seeds)

    def is_seeding(self) -> bool:
        return bool(self._handle.status().is_seeding)

    def is_valid(self) -> bool:
        return bool(self._handle.is_valid())

    def data_path(self) -> Path | None:
        info = self._handle.torrent_file()
        if info is None:
            return None
        return Path(self._handle.status().save_path) / info.name()

    def download_all(self) -> None:
        self._handle.set_flags(self._auto_managed)
        self._handle.resume()

    def cancel_all_pieces(self) -> None:
        self._handle.unset_flags(self._auto_managed)
        self._handle.pause()

    def drop(self) -> None:
        self._session.remove_torrent(self._handle)


class LibtorrentEngine:
    """TransferEngine owning one ``lt.session``."""

    def __init__(self, download_dir: Path, listen_port: int = 6881) -> None:
        try:
            import libtorrent as lt
        except ImportError as exc:
            raise EngineUnavailableError(
                "libtorrent bindings are not installed "
                "(install the 'libtorrent' extra)"
            ) from exc

        self._lt = lt
        self._download_dir = Path(download_dir)
        self._session = lt.session(
            {
                "listen_interfaces": f"0.0.0.0:{listen_port},[::0]:{listen_port}",
                "enable_dht": True,
                "enable_lsd": True,
            }
        )
        logger.info(
            "libtorrent %s session listening on port %d",
            getattr(lt, "__version__", "?"),
            listen_port,
        )

    def add_magnet(self, reference: str) -> LibtorrentHandle:
        reference = reference.strip()
        if not reference.startswith(_MAGNET_PREFIX):
            raise RegistrationError(f"Not a magnet link: {reference[:80]!r}")
        try:
            params = self._lt.parse_magnet_uri(reference)
        except RuntimeError as exc:
            raise RegistrationError(f"Invalid magnet link: {exc}") from exc
        return self._add(params)

    def add_file(self, path: str | Path) -> LibtorrentHandle:
        path = Path(path)
        if not path.is_file():
            raise RegistrationError(f"Torrent file not found: {path}")
        try:
            info = self._lt.torrent_info(str(path))
        except RuntimeError as exc:
            raise RegistrationError(f"Invalid torrent file {path}: {exc}") from exc
        params = self._lt.add_torrent_params()
        params.ti = info
        return self._add(params)

    def close(self) -> None:
        self._session.pause()

    def _add(self, params: Any) -> LibtorrentHandle:
        params.save_path = str(self._download_dir)
        try:
            handle = self._session.add_torrent(params)
        except RuntimeError as exc:
            raise RegistrationError(f"Engine rejected transfer: {exc}") from exc
        return LibtorrentHandle(self._session, handle, self._lt.torrent_flags.auto_managed)
