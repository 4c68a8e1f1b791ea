"""Sync commands: repo, full, init, status."""

from __future__ import annotations

import click
from rich.markup import escape
from rich.panel import Panel

from ._common import AppContext, console, pass_app
from ..errors import BaselineNotFoundError
from ..git import GitRepo
from ..sync import SyncEngine, initialize_sync
from ..sync.baseline import read_baseline


def register_sync_commands(main: click.Group) -> None:
    """Register the sync command group."""

    @main.group()
    def sync():
        """Mirror the store into a path-named pass store under .sync/.

        Both are git repos. Changes made on either side are replayed on
        the other.
        """

    @sync.command("repo")
    @click.option("-n", "--dry-run", is_flag=True, help="Show what would change.")
    @pass_app
    def sync_repo(app: AppContext, dry_run):
        """Reconcile the store with its mirror."""
        report = SyncEngine(app.get_index()).run(apply=not dry_run)

        for action in report.actions:
            console.print(f"  {escape(action.describe())}")
        for warning in report.warnings:
            console.print(f"  [yellow]Warning:[/] {escape(warning)}")

        if not report.has_changes:
            console.print("[green]Already in sync.[/]")
        elif dry_run:
            console.print(f"\n[dim]{len(report.actions)} change(s) planned, nothing applied.[/]")
        else:
            console.print(f"\n[green]{len(report.actions)} change(s) applied.[/]")

    @sync.command("full")
    @pass_app
    def sync_full(app: AppContext):
        """Sync, pull and push the mirror, then sync again."""
        engine = SyncEngine(app.get_index())
        remote = engine.config.sync.remote
        reports = engine.full()

        for report in reports:
            for action in report.actions:
                console.print(f"  {escape(action.describe())}")
            for warning in report.warnings:
                console.print(f"  [yellow]Warning:[/] {escape(warning)}")
        applied = sum(len(report.actions) for report in reports)
        console.print(f"\n[green]{applied} change(s) applied, mirror exchanged with {escape(remote)}.[/]")

    @sync.command("init")
    @pass_app
    def sync_init(app: AppContext):
        """Create the mirror repository and copy every entry into it."""
        index = app.get_index()
        baseline = initialize_sync(index)
        console.print(
            f"[green]Sync initialized[/] with {len(index.get())} entries "
            f"[dim](master {baseline.master[:8]}, slave {baseline.slave[:8]})[/]"
        )

    @sync.command("status")
    @pass_app
    def sync_status(app: AppContext):
        """Show the sync baseline and the current heads."""
        config = app.get_config()
        store = app.get_store()
        slave_root = store.root / config.store.sync_folder
        marker = slave_root / config.store.sync_commit_file

        try:
            baseline = read_baseline(marker)
        except BaselineNotFoundError:
            console.print("[yellow]Sync is not initialized.[/] Run uupass sync init.")
            return

        master_head = GitRepo(store.root).head()
        slave_head = GitRepo(slave_root).head()

        def _state(head: str, base: str) -> str:
            return "[green]in sync[/]" if head == base else "[yellow]changed[/]"

        console.print(
            Panel(
                f"Mirror: [cyan]{slave_root}[/]\n"
                f"Master: {baseline.master[:8]} -> {master_head[:8]} "
                f"{_state(master_head, baseline.master)}\n"
                f"Slave:  {baseline.slave[:8]} -> {slave_head[:8]} "
                f"{_state(slave_head, baseline.slave)}",
                title="uupass sync",
                border_style="magenta",
            )
        )
