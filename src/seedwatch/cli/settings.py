"""CLI command: seedwatch config — show the effective configuration."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from seedwatch.config import SeedwatchConfig

console = Console()


@click.command(name="config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Print the configuration after file and environment overrides."""
    config: SeedwatchConfig = ctx.obj["config"]

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="dim")
    table.add_column()
    for key, value in config.as_dict().items():
        table.add_row(key, str(value))
    console.print(table)
