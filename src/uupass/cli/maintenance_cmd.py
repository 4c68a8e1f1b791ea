"""Maintenance commands: init, fix-index, bulk-rename."""

from __future__ import annotations

import sys

import click
from rich.markup import escape

from ._common import AppContext, confirm_or_cancel, console, pass_app
from ..errors import NoIndexError
from ..maintenance import (
    IssueKind,
    apply_renames,
    check_index,
    find_unmanaged_records,
    fix_issue,
    migrate_store,
    plan_bulk_rename,
)


def register_maintenance_commands(main: click.Group) -> None:
    """Register store maintenance commands."""

    @main.command("init")
    @click.option("-y", "--yes", is_flag=True, help="Index without asking.")
    @click.option("--prune", is_flag=True, help="Remove the path-named originals afterwards.")
    @pass_app
    def init(app: AppContext, yes, prune):
        """Index an existing pass store."""
        index = app.get_index()
        if not index.store.root.is_dir():
            console.print(
                f"[bold red]No password store at {index.store.root}.[/] Run pass init first."
            )
            sys.exit(1)

        names = find_unmanaged_records(index)
        if not names:
            try:
                index.get()
                console.print("Nothing to do!")
            except NoIndexError:
                migrate_store(index, [])
                console.print("Generated an empty index.")
            return

        for name in names:
            console.print(f"  [dim]{escape(name)}[/]")
        if not yes:
            confirm_or_cancel(f"Generating index for {len(names)} entries. Continue?")
        added = migrate_store(index, names, prune=prune)
        console.print(f"[green]Indexed {len(added)} entries.[/]")

    @main.command("fix-index")
    @click.option("--dry-run", is_flag=True, help="Only report problems.")
    @click.option("-y", "--yes", is_flag=True, help="Apply every fix without asking.")
    @click.option(
        "--prefer",
        type=click.Choice(["index", "entry"]),
        default=None,
        help="Which path wins when entry and index disagree.",
    )
    @pass_app
    def fix_index(app: AppContext, dry_run, yes, prefer):
        """Check the index against the uuid folder and repair it."""
        index = app.get_index()
        issues = check_index(index)
        if not issues:
            console.print("[green]Index is consistent.[/]")
            return

        fixed = 0
        for issue in issues:
            style = "yellow" if issue.fixable else "red"
            console.print(f"[{style}]{escape(issue.describe())}[/]")
            if dry_run or not issue.fixable:
                continue

            if issue.kind == IssueKind.NOT_INDEXED_NO_PATH:
                if yes:
                    continue
                new_path = click.prompt("New path (empty to skip)", default="", show_default=False)
                if not new_path:
                    continue
                fixed += fix_issue(index, issue, new_path=new_path)
                continue

            if not yes and not click.confirm("Fix it?", default=False):
                continue
            choice = prefer or "index"
            if issue.kind == IssueKind.PATH_MISMATCH and prefer is None and not yes:
                choice = click.prompt(
                    "Keep the path from",
                    type=click.Choice(["index", "entry"]),
                    default="index",
                )
            fixed += fix_issue(index, issue, prefer=choice)

        console.print(f"\n{len(issues)} issue(s), {fixed} fixed.")

    @main.command("bulk-rename")
    @click.option("-y", "--yes", is_flag=True, help="Apply the renames without asking.")
    @pass_app
    def bulk_rename(app: AppContext, yes):
        """Rename many entries at once by editing a copy of the index."""
        index = app.get_index()
        changes = plan_bulk_rename(index)
        if not changes:
            console.print("No entries are renamed.")
            return

        console.print("The following entries will be moved:\n")
        for change in changes:
            console.print(f"  {escape(change.old_path)} [dim]-->[/] {escape(change.new_path)}")
        if not yes:
            confirm_or_cancel("\nContinue?")
        apply_renames(index, changes)
        console.print(f"[green]Renamed {len(changes)} entries.[/]")
