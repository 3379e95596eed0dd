"""CLI entry point — Click group with global options."""

from __future__ import annotations

import logging

import click

from seedwatch import __version__
from seedwatch.config import SeedwatchConfig


@click.group()
@click.version_option(version=__version__, prog_name="seedwatch")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a YAML config file.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """seedwatch — add, monitor, pause and remove peer-to-peer transfers."""
    ctx.ensure_object(dict)

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        config = SeedwatchConfig.load(config_path)
    except (OSError, ValueError) as exc:
        raise click.ClickException(f"Invalid configuration: {exc}") from exc
    config.verbose = verbose
    ctx.obj["config"] = config


def _register_commands() -> None:
    from seedwatch.cli.download import download  # noqa: F811
    from seedwatch.cli.settings import show_config  # noqa: F811

    main.add_command(download)
    main.add_command(show_config)


_register_commands()
