"""
Sync setup -- create and seed the path-named mirror repository.
"""

from __future__ import annotations

import logging
import shutil

from ..errors import SyncSetupError
from ..git import GitRepo
from ..index import Index
from .baseline import write_baseline
from .engine import SyncEngine
from .models import SyncBaseline

logger = logging.getLogger("uupass.sync.setup")


def _ensure_ignored(master: GitRepo, folder: str) -> None:
    """List the slave folder in the master's .gitignore and commit it."""
    gitignore = master.path / ".gitignore"
    lines = gitignore.read_text(encoding="utf-8").splitlines() if gitignore.exists() else []
    if any(line.strip().strip("/") == folder for line in lines):
        return
    lines.append(folder)
    gitignore.write_text("\n".join(lines) + "\n", encoding="utf-8")
    master.add(".gitignore")
    master.commit("added gitignore for sync")
    logger.info("Added %s to %s", folder, gitignore)


def initialize_sync(index: Index) -> SyncBaseline:
    """Create the slave repository and copy every indexed entry into it.

    Args:
        index: Index of the master store. Its store root must be a git repo.

    Returns:
        The baseline written at the end of the setup.

    Raises:
        SyncSetupError: If the store is not a git repo or the slave exists.
    """
    engine = SyncEngine(index)
    config = index.config
    master, slave = engine.master, engine.slave

    if not master.is_repo():
        raise SyncSetupError(
            f"{master.path} is not a git repository; run `pass git init` first"
        )
    if engine.slave_root.exists():
        raise SyncSetupError(f"Sync folder {engine.slave_root} already exists")

    _ensure_ignored(master, config.store.sync_folder)

    engine.slave_root.mkdir(parents=True)
    slave.init()
    slave.config("diff.gpg.binary", "true")
    slave.config("diff.gpg.textconv", config.sync.textconv)
    (engine.slave_root / ".gitignore").write_text(
        f"{config.store.sync_commit_file}\n", encoding="utf-8"
    )
    (engine.slave_root / ".gitattributes").write_text(
        f"*{config.store.extension} diff=gpg\n", encoding="utf-8"
    )
    gpg_id = master.path / ".gpg-id"
    if gpg_id.is_file():
        shutil.copyfile(gpg_id, engine.slave_root / ".gpg-id")
    slave.add()
    slave.commit("initial commit")

    items = index.get()
    for identifier, path in items:
        engine.copy_to_slave(identifier, path, overwrite=False)
    slave.add()
    slave.commit("initial sync")

    baseline = SyncBaseline(master=master.head(), slave=slave.head())
    write_baseline(engine.marker, baseline)
    logger.info("Sync initialized with %d entries in %s", len(items), engine.slave_root)
    return baseline
