"""CLI command: seedwatch download <SOURCE>... — add transfers and monitor them."""

from __future__ import annotations

import signal
import sys
import threading
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from seedwatch.config import SeedwatchConfig
from seedwatch.engine.libtorrent_ import LibtorrentEngine
from seedwatch.errors import EngineUnavailableError
from seedwatch.format import human_rate, human_size
from seedwatch.session.manager import AddResult, PendingTransfer, SessionManager
from seedwatch.session.models import CompletionEvent, Snapshot

console = Console(stderr=True)


@click.command()
@click.argument("sources", nargs=-1, required=True)
@click.option("--no-tui", is_flag=True, help="Disable the interactive dashboard.")
@click.option("--seed", is_flag=True, help="Keep running after every transfer completes.")
@click.option(
    "--download-dir",
    "-d",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory to store downloaded data.",
)
@click.pass_context
def download(
    ctx: click.Context,
    sources: tuple[str, ...],
    no_tui: bool,
    seed: bool,
    download_dir: Path | None,
) -> None:
    """Add magnet links or .torrent files and monitor them until done."""
    config: SeedwatchConfig = ctx.obj["config"]
    if download_dir is not None:
        config.download_dir = download_dir
    config.ensure_dirs()

    try:
        engine = LibtorrentEngine(config.download_dir, listen_port=config.listen_port)
    except EngineUnavailableError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        sys.exit(2)

    manager = SessionManager(engine, config)
    results = manager.add_many(sources)
    for result in results:
        if not result.ok:
            console.print(
                f"[red]Could not add torrent:[/red] {escape(result.source)}: "
                f"{escape(str(result.error))}"
            )
    pending = [r.pending for r in results if r.pending is not None]
    if not pending:
        engine.close()
        sys.exit(1)

    manager.start()
    try:
        if sys.stderr.isatty() and not no_tui:
            _run_with_tui(manager, until_complete=not seed)
        else:
            _run_plain(manager, config, pending, until_complete=not seed)
    finally:
        manager.stop()
        manager.join_cleanup(timeout=10)
        engine.close()

    _print_summary(manager.snapshot(), results)
    if any(not r.ok for r in results) or any(p.error for p in pending):
        sys.exit(1)


def _run_plain(
    manager: SessionManager,
    config: SeedwatchConfig,
    pending: list[PendingTransfer],
    until_complete: bool,
) -> None:
    """Streaming log output, one status line per refresh."""
    console.print(
        f"[bold]seedwatch[/bold] downloading {len(pending)} transfer(s) "
        f"to [cyan]{escape(str(config.download_dir))}[/cyan]"
    )
    console.print("  Press Ctrl+C to stop.\n")

    stop = threading.Event()

    def on_completion(event: CompletionEvent) -> None:
        console.print(f"  [green]✓ Download complete[/green] {escape(event.name)}")

    def _signal_handler(signum: int, frame: object) -> None:
        console.print("\n[dim]Stopping...[/dim]")
        stop.set()

    unsubscribe = manager.subscribe(on_completion)
    original_sigint = signal.signal(signal.SIGINT, _signal_handler)
    original_sigterm = signal.signal(signal.SIGTERM, _signal_handler)
    reported: set[str] = set()
    try:
        while not stop.is_set():
            for p in pending:
                if p.error is not None and p.id not in reported:
                    reported.add(p.id)
                    console.print(
                        f"  [red]✗ {escape(p.source)}[/red]: {escape(str(p.error))}"
                    )

            snapshot = manager.snapshot()
            stats = snapshot.stats
            console.print(
                f"  [dim]{stats.activity}: {stats.active} active, "
                f"{stats.completed} complete, "
                f"↓ {human_rate(stats.download_rate)} "
                f"↑ {human_rate(stats.upload_rate)}[/dim]"
            )
            if until_complete and _all_done(manager, snapshot):
                break
            stop.wait(config.refresh_interval)
    finally:
        unsubscribe()
        signal.signal(signal.SIGINT, original_sigint)
        signal.signal(signal.SIGTERM, original_sigterm)


def _run_with_tui(manager: SessionManager, until_complete: bool) -> None:
    """Interactive dashboard mode."""
    from seedwatch.tui import DashboardApp

    app = DashboardApp(manager, until_complete=until_complete)
    app.run()
    for event in app.completed:
        console.print(f"[green]✓ Download complete[/green] {escape(event.name)}")


def _all_done(manager: SessionManager, snapshot: Snapshot) -> bool:
    if manager.pending():
        return False
    stats = snapshot.stats
    return stats.finished == stats.total


def _print_summary(snapshot: Snapshot, results: list[AddResult]) -> None:
    console.print("\n[bold]Session Summary[/bold]")
    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Downloaded", justify="right")
    table.add_column("Size", justify="right")

    for entry in snapshot.entries:
        table.add_row(
            escape(entry.name),
            entry.status_text,
            human_size(entry.downloaded_bytes),
            human_size(entry.total_size),
        )
    console.print(table)

    failed = sum(1 for r in results if not r.ok)
    if failed:
        console.print(f"\n[yellow]⚠ {failed} source(s) could not be added[/yellow]")
