"""Config commands: init, show."""

from __future__ import annotations

import sys

import click
import yaml

from ._common import AppContext, console, pass_app
from ..config import Config, default_config_path, save_config


def register_config_commands(main: click.Group) -> None:
    """Register the config command group."""

    @main.group()
    def config():
        """Inspect and create the configuration file."""

    @config.command("init")
    @click.option("--force", is_flag=True, help="Overwrite an existing file.")
    @pass_app
    def config_init(app: AppContext, force):
        """Write the default configuration."""
        target = (app.config_path or default_config_path()).expanduser()
        if target.exists() and not force:
            console.print(f"[yellow]{target} already exists.[/] Use --force to overwrite.")
            sys.exit(1)
        written = save_config(Config(), target)
        console.print(f"[green]Wrote[/] {written}")

    @config.command("show")
    @pass_app
    def config_show(app: AppContext):
        """Print the effective configuration."""
        data = app.get_config().model_dump(mode="json")
        click.echo(yaml.dump(data, default_flow_style=False), nl=False)
