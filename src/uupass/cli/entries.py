"""Entry commands: ls, get, insert, edit, mv, passwd, rm."""

from __future__ import annotations

from typing import Optional
from uuid import uuid4

import click
from rich.text import Text

from ._common import (
    AppContext,
    ask_password,
    confirm_or_cancel,
    console,
    entry_panel,
    pass_app,
    select_entry,
)
from ..entry import Entry, change_path, create_entry, load_entry, record_name, write_entry
from ..tree import render_tree, sort_for_tree, to_tree

ID_OPTION = click.option(
    "--id", "identifier", default=None, metavar="UUID",
    help="Select the entry by UUID instead of path.",
)
GENERATE_OPTION = click.option(
    "-g", "--generate", type=int, default=None, metavar="LENGTH",
    help="Generate a random password of this length.",
)


def register_entry_commands(main: click.Group) -> None:
    """Register the entry commands."""

    @main.command("ls")
    @click.option("--flat", is_flag=True, help="One path per line, most used first.")
    @pass_app
    def ls(app: AppContext, flat):
        """List all entries as a folder tree."""
        paths = [path for _, path in app.get_index().get()]
        if flat:
            for path in paths:
                console.print(Text(path))
            return
        console.print(render_tree(to_tree(sort_for_tree(paths))))

    @main.command("get")
    @click.argument("path", required=False)
    @ID_OPTION
    @click.option("-p", "--password-only", is_flag=True, help="Print only the password.")
    @click.option("--show", is_flag=True, help="Do not mask the password.")
    @pass_app
    def get(app: AppContext, path, identifier, password_only, show):
        """Show an entry."""
        entry = select_entry(app.get_index(), path, identifier)
        if password_only:
            click.echo(entry.password)
            return
        console.print(entry_panel(entry, show_password=show))

    @main.command("insert")
    @click.argument("path")
    @click.option("-u", "--username", default=None, help="Username to store.")
    @click.option("--url", default=None, help="URL to store.")
    @GENERATE_OPTION
    @pass_app
    def insert(app: AppContext, path, username, url, generate):
        """Create a new entry at PATH."""
        index = app.get_index()
        entry = Entry(
            password=ask_password(generate),
            username=username,
            url=url,
            path=path,
            uuid=uuid4(),
        )
        create_entry(index, entry)
        console.print(f"[green]Created[/] {path} [dim]({entry.uuid})[/]")

    @main.command("edit")
    @click.argument("path", required=False)
    @ID_OPTION
    @pass_app
    def edit(app: AppContext, path, identifier):
        """Edit an entry in $EDITOR through pass."""
        index = app.get_index()
        entry = select_entry(index, path, identifier)
        store, config = index.store, index.config
        store.edit(record_name(config, entry.uuid))

        edited = load_entry(store, config, entry.uuid)
        if edited.path != entry.path:
            console.print(
                "[yellow]The path line cannot be changed by editing; "
                "use `uupass mv`. Restoring it.[/]"
            )
            edited.path = entry.path
            write_entry(store, config, edited)

    @main.command("mv")
    @click.argument("paths", nargs=-1, required=True)
    @ID_OPTION
    @pass_app
    def mv(app: AppContext, paths, identifier):
        """Move an entry: mv SOURCE DESTINATION, or mv --id UUID DESTINATION."""
        expected = 1 if identifier else 2
        if len(paths) != expected:
            raise click.UsageError("Expected SOURCE DESTINATION, or --id UUID DESTINATION.")
        source: Optional[str] = None if identifier else paths[0]
        destination = paths[-1]

        index = app.get_index()
        entry = select_entry(index, source, identifier)
        old_path = entry.path
        change_path(index, entry, destination)
        console.print(f"Moved [cyan]{old_path}[/] to [cyan]{destination}[/]")

    @main.command("passwd")
    @click.argument("path", required=False)
    @ID_OPTION
    @GENERATE_OPTION
    @pass_app
    def passwd(app: AppContext, path, identifier, generate):
        """Change the password of an entry."""
        index = app.get_index()
        entry = select_entry(index, path, identifier)
        console.print(f"Changing password of [cyan]{entry.path}[/]")
        entry.password = ask_password(generate)
        write_entry(index.store, index.config, entry)
        console.print("[green]Password changed.[/]")

    @main.command("rm")
    @click.argument("path", required=False)
    @ID_OPTION
    @click.option("-f", "--force", is_flag=True, help="Do not ask for confirmation.")
    @pass_app
    def rm(app: AppContext, path, identifier, force):
        """Delete an entry."""
        index = app.get_index()
        entry = select_entry(index, path, identifier)
        if not force:
            console.print(entry_panel(entry))
            confirm_or_cancel("Are you sure to delete this entry?")
        index.remove(entry.uuid)
        console.print(f"[green]Removed[/] {entry.path}")
