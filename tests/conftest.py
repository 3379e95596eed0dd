"""Shared test fixtures — a scriptable fake engine and a manual clock."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from seedwatch.config import SeedwatchConfig
from seedwatch.engine.base import FileSpec
from seedwatch.errors import RegistrationError
from seedwatch.session.manager import SessionManager


class FakeHandle:
    """In-memory TransferHandle whose counters tests set directly."""

    def __init__(
        self,
        transfer_id: str,
        name: str = "ubuntu.iso",
        total: int = 1_000_000,
        files: list[FileSpec] | None = None,
        metadata: bool = True,
    ) -> None:
        self.id = transfer_id
        self.title = name
        self.total = total
        self.files = files or []
        self.completed = 0
        self.uploaded = 0
        self.peers = 0
        self.seeds = 0
        self.seeding = False
        self.valid = True
        self.per_file: list[int] | None = None
        self.path: Path | None = None
        self.fail_reads = False
        self.calls: list[str] = []
        self._metadata = threading.Event()
        if metadata:
            self._metadata.set()

    def publish_metadata(self) -> None:
        self._metadata.set()

    def hide_metadata(self) -> None:
        self._metadata.clear()

    def stable_id(self) -> str:
        return self.id

    def metadata_ready(self) -> bool:
        return self._metadata.is_set()

    def wait_for_metadata(self, timeout: float) -> bool:
        return self._metadata.wait(timeout)

    def name(self) -> str:
        return self.title

    def total_length(self) -> int:
        return self.total

    def bytes_completed(self) -> int:
        if self.fail_reads:
            raise RuntimeError("engine returned inconsistent state")
        return self.completed

    def bytes_uploaded(self) -> int:
        return self.uploaded

    def file_list(self) -> list[FileSpec]:
        return list(self.files)

    def file_bytes_completed(self) -> list[int] | None:
        return self.per_file

    def peer_count(self) -> int:
        return self.peers

    def seed_count(self) -> int:
        return self.seeds

    def is_seeding(self) -> bool:
        return self.seeding

    def is_valid(self) -> bool:
        return self.valid

    def data_path(self) -> Path | None:
        return self.path

    def download_all(self) -> None:
        self.calls.append("download_all")

    def cancel_all_pieces(self) -> None:
        self.calls.append("cancel_all_pieces")

    def drop(self) -> None:
        self.calls.append("drop")
        self.valid = False


class FakeEngine:
    """TransferEngine returning pre-registered handles by source string."""

    def __init__(self) -> None:
        self.sources: dict[str, FakeHandle] = {}
        self.closed = False

    def register(self, source: str, handle: FakeHandle) -> FakeHandle:
        self.sources[source] = handle
        return handle

    def add_magnet(self, reference: str) -> FakeHandle:
        return self._lookup(reference)

    def add_file(self, path: str | Path) -> FakeHandle:
        return self._lookup(str(path))

    def close(self) -> None:
        self.closed = True

    def _lookup(self, source: str) -> FakeHandle:
        handle = self.sources.get(source)
        if handle is None:
            raise RegistrationError(f"Invalid reference: {source}")
        return handle


class ManualClock:
    """Callable clock advanced explicitly by tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def config(tmp_path: Path) -> SeedwatchConfig:
    return SeedwatchConfig(
        config_dir=tmp_path / "config",
        download_dir=tmp_path / "downloads",
        refresh_interval=0.01,
        metadata_timeout=2.0,
    )


@pytest.fixture
def manager(engine: FakeEngine, config: SeedwatchConfig, clock: ManualClock) -> SessionManager:
    return SessionManager(engine, config, clock=clock)


@pytest.fixture
def make_handle(engine: FakeEngine):
    """Create a FakeHandle registered under a magnet link; returns (magnet, handle)."""
    counter = iter(range(1, 1000))

    def _make(name: str = "ubuntu.iso", total: int = 1_000_000, **kwargs):
        n = next(counter)
        transfer_id = f"{n:040x}"
        magnet = f"magnet:?xt=urn:btih:{transfer_id}&dn={name}"
        handle = FakeHandle(transfer_id, name=name, total=total, **kwargs)
        engine.register(magnet, handle)
        return magnet, handle

    return _make


@pytest.fixture
def add_ready(manager: SessionManager, make_handle):
    """Add a transfer and wait until it is committed to the session table."""

    def _add(name: str = "ubuntu.iso", total: int = 1_000_000, **kwargs):
        magnet, handle = make_handle(name=name, total=total, **kwargs)
        pending = manager.add(magnet)
        assert pending.wait(timeout=2.0)
        assert pending.ok
        return handle

    return _add
