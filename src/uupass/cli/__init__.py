"""
uupass CLI -- the command line front-end.

Each command group lives in its own module and is registered on the
main Click group via a register function. The group turns uupass
errors into a red message and exit code 1, and a cancelled prompt into
a quiet exit 0.

Entry point: uupass.cli:main
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.markup import escape

from .. import __version__
from ..errors import Interrupted, UupassError
from ._common import AppContext, console


class UupassGroup(click.Group):
    """Click group that reports uupass errors instead of tracebacks."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except Interrupted:
            console.print("[dim]Cancelled.[/]")
            ctx.exit(0)
        except UupassError as exc:
            console.print(f"[bold red]Error:[/] {escape(str(exc))}")
            ctx.exit(1)


@click.group(cls=UupassGroup)
@click.version_option(version=__version__, prog_name="uupass")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ~/.config/uupass/config.yaml).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log what is happening.")
@click.pass_context
def main(ctx: click.Context, config_path, verbose):
    """uupass -- pass with UUID-named entries.

    Your paths stay private. Your mirror stays in sync.
    """
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )
    if ctx.obj is None:
        ctx.obj = AppContext(config_path=config_path)


# ---------------------------------------------------------------------------
# Register all command groups/commands from modular files
# ---------------------------------------------------------------------------

from .entries import register_entry_commands
from .maintenance_cmd import register_maintenance_commands
from .config_cmd import register_config_commands
from .sync_cmd import register_sync_commands

register_entry_commands(main)
register_maintenance_commands(main)
register_config_commands(main)
register_sync_commands(main)
