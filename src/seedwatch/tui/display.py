"""Dashboard display — builds Rich renderables from published snapshots."""

from __future__ import annotations

from rich.layout import Layout
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from seedwatch.format import human_rate, human_size
from seedwatch.session.models import EntrySnapshot, Snapshot, TransferStatus
from seedwatch.tui.state import DashboardState

_STATUS_STYLES = {
    TransferStatus.DISCOVERING: "dim",
    TransferStatus.DOWNLOADING: "cyan",
    TransferStatus.PAUSED: "yellow",
    TransferStatus.SEEDING: "magenta",
    TransferStatus.COMPLETED: "green",
}


class DashboardDisplay:
    """Renders a Snapshot plus the UI's DashboardState into a Layout."""

    def render(
        self,
        snapshot: Snapshot,
        state: DashboardState,
        pending: int = 0,
        now: float | None = None,
    ) -> Layout:
        state.sync(snapshot.ids)

        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body"),
            Layout(name="footer", size=4),
        )
        layout["header"].update(self._render_header(snapshot, pending))

        selected = snapshot.get(state.selected_id) if state.selected_id else None
        if state.show_files and selected is not None:
            layout["body"].split_column(
                Layout(self._render_table(snapshot, state), name="table"),
                Layout(self._render_files(selected), name="files", size=12),
            )
        else:
            layout["body"].update(self._render_table(snapshot, state))

        layout["footer"].update(self._render_footer(state, now))
        return layout

    def _render_header(self, snapshot: Snapshot, pending: int) -> Panel:
        stats = snapshot.stats
        line = (
            f"[bold]seedwatch[/bold]  {stats.activity}   "
            f"{stats.active} Active  {stats.completed} Complete   "
            f"[green]↓ {human_rate(stats.download_rate)}[/green]  "
            f"[blue]↑ {human_rate(stats.upload_rate)}[/blue]"
        )
        if pending:
            line += f"   [dim]{pending} waiting for metadata[/dim]"
        return Panel(Text.from_markup(line), style="bold")

    def _render_table(self, snapshot: Snapshot, state: DashboardState) -> Panel:
        if not snapshot.entries:
            return Panel(
                Text("No transfers yet.", style="dim italic"),
                title="Transfers",
                border_style="blue",
            )

        table = Table(
            show_header=True,
            header_style="bold",
            expand=True,
            box=None,
            padding=(0, 1),
        )
        table.add_column("Name", ratio=1, no_wrap=True)
        table.add_column("Status", width=22, no_wrap=True)
        table.add_column("Size", width=11, justify="right")
        table.add_column("↓", width=13, justify="right")
        table.add_column("↑", width=13, justify="right")
        table.add_column("Peers", width=7, justify="right")
        table.add_column("ETA", width=12, justify="right")

        for entry in snapshot.entries:
            is_selected = entry.id == state.selected_id
            status_style = _STATUS_STYLES.get(entry.status, "")
            table.add_row(
                Text(("> " if is_selected else "  ") + entry.name),
                Text(entry.status_text, style=status_style),
                human_size(entry.total_size),
                human_rate(entry.download_rate),
                human_rate(entry.upload_rate),
                f"{entry.peers}/{entry.seeds}",
                entry.eta,
                style="bold reverse" if is_selected else "",
            )

        return Panel(table, title=f"Transfers ({len(snapshot.entries)})", border_style="blue")

    def _render_files(self, entry: EntrySnapshot) -> Panel:
        table = Table(show_header=True, header_style="bold", expand=True, box=None)
        table.add_column("File", ratio=1, no_wrap=True)
        table.add_column("Size", width=11, justify="right")
        table.add_column("Done", width=7, justify="right")
        for f in entry.files:
            table.add_row(Text(f.path), human_size(f.size), f"{f.progress * 100:.1f}%")
        return Panel(table, title=f"Files — {escape(entry.name)}", border_style="cyan")

    def _render_footer(self, state: DashboardState, now: float | None) -> Panel:
        keys = (
            "[dim]q[/dim]:Quit  [dim]↑/↓[/dim]:Select  [dim]Enter[/dim]:Files  "
            "[dim]p[/dim]:Pause/Resume  [dim]r[/dim]:Remove  "
            "[dim]x[/dim]:Remove+Delete"
        )
        message = state.current_status(now)
        if message:
            keys += f"\n[yellow]{escape(message)}[/yellow]"
        return Panel(Text.from_markup(keys), style="dim")
