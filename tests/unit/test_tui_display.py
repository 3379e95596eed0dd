"""Tests for the dashboard display."""

from __future__ import annotations

from io import StringIO

from rich.console import Console

from seedwatch.session.models import (
    AggregateStats,
    EntrySnapshot,
    FileSnapshot,
    Snapshot,
    TransferStatus,
)
from seedwatch.tui.display import DashboardDisplay
from seedwatch.tui.state import DashboardState


def _entry(
    transfer_id: str = "a" * 40,
    name: str = "ubuntu.iso",
    status: TransferStatus = TransferStatus.DOWNLOADING,
    status_text: str = "Downloading (10.0%)",
    files: tuple[FileSnapshot, ...] = (),
    **overrides,
) -> EntrySnapshot:
    fields = dict(
        id=transfer_id,
        name=name,
        total_size=1_048_576,
        downloaded_bytes=104_858,
        uploaded_bytes=0,
        progress=0.1,
        download_rate=2048.0,
        upload_rate=0.0,
        status=status,
        status_text=status_text,
        eta="7 min",
        peers=12,
        seeds=4,
        files=files,
        is_paused=False,
        added_at=1.0,
        last_sampled_at=2.0,
    )
    fields.update(overrides)
    return EntrySnapshot(**fields)


def _snapshot(*entries: EntrySnapshot) -> Snapshot:
    return Snapshot(entries=entries, stats=AggregateStats.from_entries(entries), taken_at=2.0)


def _render_to_string(
    snapshot: Snapshot,
    state: DashboardState,
    pending: int = 0,
    height: int = 30,
    width: int = 140,
) -> str:
    layout = DashboardDisplay().render(snapshot, state, pending=pending, now=0.0)
    buf = StringIO()
    console = Console(file=buf, width=width, height=height, force_terminal=False)
    console.print(layout)
    return buf.getvalue()


def test_render_empty_session():
    output = _render_to_string(Snapshot(), DashboardState())
    assert "No transfers yet." in output
    assert "Ready" in output


def test_render_rows_and_header():
    snapshot = _snapshot(
        _entry(),
        _entry(
            transfer_id="b" * 40,
            name="debian.iso",
            status=TransferStatus.COMPLETED,
            status_text="Completed",
            progress=1.0,
            download_rate=0.0,
            eta="",
        ),
    )
    output = _render_to_string(snapshot, DashboardState())

    assert "ubuntu.iso" in output
    assert "debian.iso" in output
    assert "Downloading (10.0%)" in output
    assert "1.00 MB" in output
    assert "2.00 KB/s" in output
    assert "12/4" in output
    assert "7 min" in output
    assert "1 Active" in output
    assert "1 Complete" in output


def test_selected_row_is_marked():
    state = DashboardState()
    output = _render_to_string(_snapshot(_entry()), state)
    assert state.selected_id == "a" * 40
    assert "> ubuntu.iso" in output


def test_pending_count_in_header():
    output = _render_to_string(Snapshot(), DashboardState(), pending=2)
    assert "2 waiting for metadata" in output


def test_file_panel_shows_per_file_progress():
    files = (FileSnapshot("disc/a.bin", 1024, 1.0), FileSnapshot("disc/b.bin", 2048, 0.25))
    state = DashboardState(show_files=True)
    output = _render_to_string(_snapshot(_entry(files=files)), state, height=40)

    assert "disc/a.bin" in output
    assert "100.0%" in output
    assert "25.0%" in output


def test_names_are_not_interpreted_as_markup():
    output = _render_to_string(_snapshot(_entry(name="[bold]weird[/bold]")), DashboardState())
    assert "[bold]weird[/bold]" in output


def test_status_message_in_footer():
    state = DashboardState()
    state.set_status("Download complete: ubuntu.iso", now=0.0)
    output = _render_to_string(_snapshot(_entry()), state)
    assert "Download complete: ubuntu.iso" in output
