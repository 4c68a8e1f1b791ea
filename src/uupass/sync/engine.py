"""
Sync Engine -- reconciles the UUID-named store with its path-named mirror.

The master tree keeps records under ``uuids/<id>.gpg``; the slave tree
(``.sync/`` inside the store) keeps byte-identical copies under
``<path>.gpg`` so a regular pass client can use it. Both are git repos.
Each run diffs both trees against the recorded baseline commits and
replays every change on the opposite side:

    master added     ->  copy to slave
    master removed   ->  delete from slave
    master modified  ->  rename on slave if the path changed, then copy
    slave removed    ->  remove from index and master
    slave added      ->  new identifier, new master record, copy back
    slave modified   ->  verify identity, write to master

Then the slave is committed and the baseline advanced. ``full`` wraps
two runs around a pull and push of the mirror.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Iterator, Optional
from uuid import UUID, uuid4

from ..entry import create_entry, read_entry, record_name, write_entry
from ..errors import (
    DestinationExistsError,
    EntryWithoutPathError,
    IdentifierMismatchError,
    MalformedIdentifierError,
    PathMismatchError,
    SlaveEntryMissingError,
    StoreIOError,
    UnknownIdentifierError,
    UnknownPathError,
)
from ..git import GitRepo
from ..index import Index, to_forward_map, to_reverse_map
from .baseline import read_baseline, write_baseline
from .diff import declared_path, parse_diffs, previous_path
from .models import (
    ActionKind,
    DiffRecord,
    PatchSet,
    SyncAction,
    SyncBaseline,
    SyncDirection,
    SyncReport,
)

logger = logging.getLogger("uupass.sync.engine")


def prune_empty_dirs(start: Path, stop: Path) -> None:
    """Remove ``start`` and its ancestors while they are empty.

    ``stop`` itself is never removed, nor anything outside it.
    """
    stop = stop.resolve()
    current = start.resolve()
    while current != stop and stop in current.parents:
        if not current.is_dir() or any(current.iterdir()):
            break
        try:
            current.rmdir()
        except OSError as exc:
            raise StoreIOError(f"Cannot remove folder {current}: {exc}") from exc
        logger.debug("Removed empty folder %s", current)
        current = current.parent


class SyncEngine:
    """Bidirectional reconciliation between master and slave trees.

    One engine is bound to one Index; the index's store decides where
    both trees live.
    """

    def __init__(
        self,
        index: Index,
        master: Optional[GitRepo] = None,
        slave: Optional[GitRepo] = None,
    ):
        """Initialize the sync engine.

        Args:
            index: Index of the master store.
            master: Repo of the master tree. Defaults to the store root.
            slave: Repo of the slave tree. Defaults to the sync folder.
        """
        self.index = index
        self.store = index.store
        self.config = index.config
        self.slave_root = self.store.root / self.config.store.sync_folder
        self.marker = self.slave_root / self.config.store.sync_commit_file
        self.master = master or GitRepo(self.store.root)
        self.slave = slave or GitRepo(self.slave_root)

        self._report: Optional[SyncReport] = None
        self._slave_changed = False

    # ------------------------------------------------------------------
    # Slave tree file operations
    # ------------------------------------------------------------------

    def slave_file(self, path: str) -> Path:
        return self.slave_root / f"{path}{self.config.store.extension}"

    def copy_to_slave(self, identifier: UUID, path: str, overwrite: bool) -> None:
        """Copy a master record's encrypted blob to the slave.

        Args:
            identifier: Master record to copy.
            path: Destination path in the slave tree.
            overwrite: True when the destination must already exist,
                False when it must not.

        Raises:
            DestinationExistsError: Destination present and not overwriting.
            SlaveEntryMissingError: Destination absent while overwriting.
        """
        source = self.store.path_of(record_name(self.config, identifier))
        target = self.slave_file(path)
        if target.is_file() and not overwrite:
            raise DestinationExistsError(f"Entry {path} already exists in the slave")
        if not target.is_file() and overwrite:
            raise SlaveEntryMissingError(f"Entry {path} does not exist in the slave")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except OSError as exc:
            raise StoreIOError(f"Cannot copy {identifier} to {target}: {exc}") from exc
        self._slave_changed = True

    def remove_from_slave(self, path: str) -> None:
        """Delete a slave file and prune emptied folders.

        A file that is already gone is reported and skipped.
        """
        target = self.slave_file(path)
        if target.is_file():
            try:
                target.unlink()
            except OSError as exc:
                raise StoreIOError(f"Cannot remove {target}: {exc}") from exc
        else:
            self._warn(f"Entry {path} does not exist in the slave; nothing to remove")
        prune_empty_dirs(target.parent, self.slave_root)
        self._slave_changed = True

    def rename_on_slave(self, old_path: str, new_path: str) -> None:
        """Move a slave file to a new path.

        Raises:
            DestinationExistsError: If the new path is taken.
            SlaveEntryMissingError: If the old path does not exist.
        """
        source = self.slave_file(old_path)
        target = self.slave_file(new_path)
        if target.exists():
            raise DestinationExistsError(f"Entry {new_path} already exists in the slave")
        if not source.is_file():
            raise SlaveEntryMissingError(f"Entry {old_path} does not exist in the slave")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            source.rename(target)
        except OSError as exc:
            raise StoreIOError(f"Cannot move {source} to {target}: {exc}") from exc
        prune_empty_dirs(source.parent, self.slave_root)
        self._slave_changed = True

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    def run(self, apply: bool = False) -> SyncReport:
        """Reconcile both trees.

        Args:
            apply: Perform the changes. When False only the plan is
                reported and nothing on disk changes.

        Returns:
            SyncReport with every planned or applied action.
        """
        baseline = read_baseline(self.marker)
        master_patch, slave_patch = parse_diffs(self.master, self.slave, baseline)
        items = self.index.get()
        forward = to_forward_map(items)
        reverse = to_reverse_map(items)

        self._report = SyncReport(applied=apply, previous=baseline)
        self._slave_changed = False
        logger.info(
            "Sync %s: %d master change(s), %d slave change(s)",
            "run" if apply else "dry run",
            len(master_patch),
            len(slave_patch),
        )

        self._master_added(master_patch, forward, apply)
        self._master_removed(master_patch, apply)
        self._master_modified(master_patch, forward, apply)
        self._slave_removed(slave_patch, reverse, apply)
        self._slave_added(slave_patch, apply)
        self._slave_modified(slave_patch, reverse, apply)

        report = self._report
        if apply:
            if self._slave_changed:
                self.slave.add()
                report.slave_committed = (
                    self.slave.commit(self.config.sync.commit_message) is not None
                )
            report.baseline = SyncBaseline(master=self.master.head(), slave=self.slave.head())
            write_baseline(self.marker, report.baseline)
        self._report = None
        return report

    def full(self) -> list[SyncReport]:
        """Sync, exchange the mirror with its remote, and sync again.

        The mirror pulls before the second run so that changes made by
        other clients reach the store, and pushes after it so the remote
        also gets the records that run copied back.

        Raises:
            VcsError: If the pull or push fails, e.g. on a merge conflict.
        """
        settings = self.config.sync
        reports = [self.run(apply=True)]
        self.slave.pull(settings.remote, settings.branch)
        reports.append(self.run(apply=True))
        self.slave.push(settings.remote, settings.branch)
        return reports

    def _record(
        self,
        direction: SyncDirection,
        kind: ActionKind,
        path: str,
        old_path: Optional[str] = None,
    ) -> None:
        action = SyncAction(direction=direction, kind=kind, path=path, old_path=old_path)
        logger.info(action.describe())
        self._report.actions.append(action)

    def _warn(self, message: str) -> None:
        logger.warning(message)
        if self._report is not None:
            self._report.warnings.append(message)

    # -- master -> slave -------------------------------------------------

    def _master_records(self, records: list[DiffRecord]) -> Iterator[tuple[DiffRecord, UUID]]:
        """Records under the uuid folder, index excluded, with their identifier."""
        store = self.config.store
        prefix = f"{store.uuid_folder}/"
        index_file = f"{store.index_record}{store.extension}"
        for record in records:
            if not record.path.startswith(prefix) or not record.path.endswith(store.extension):
                continue
            if record.path == index_file:
                continue
            name = record.path[len(prefix):-len(store.extension)]
            try:
                identifier = UUID(name)
            except ValueError as exc:
                raise MalformedIdentifierError(f"Cannot parse uuid from {record.path}") from exc
            yield record, identifier

    @staticmethod
    def _lookup(forward: dict[UUID, str], identifier: UUID) -> str:
        try:
            return forward[identifier]
        except KeyError as exc:
            raise UnknownIdentifierError(f"{identifier} is not in the index") from exc

    def _master_added(self, patch: PatchSet, forward: dict[UUID, str], apply: bool) -> None:
        for _, identifier in self._master_records(patch.added):
            path = self._lookup(forward, identifier)
            self._record(SyncDirection.TO_SLAVE, ActionKind.ADD, path)
            if apply:
                self.copy_to_slave(identifier, path, overwrite=False)

    def _master_removed(self, patch: PatchSet, apply: bool) -> None:
        for record, identifier in self._master_records(patch.removed):
            path = declared_path(record, self.config.keys.path)
            if path is None:
                raise EntryWithoutPathError(f"Removed entry {identifier} declared no path")
            self._record(SyncDirection.TO_SLAVE, ActionKind.REMOVE, path)
            if apply:
                self.remove_from_slave(path)

    def _master_modified(self, patch: PatchSet, forward: dict[UUID, str], apply: bool) -> None:
        for record, identifier in self._master_records(patch.modified):
            path = self._lookup(forward, identifier)
            old_path = previous_path(record, self.config.keys.path)
            if old_path is not None and old_path != path:
                self._record(SyncDirection.TO_SLAVE, ActionKind.RENAME, path, old_path)
                if apply:
                    self.rename_on_slave(old_path, path)
            self._record(SyncDirection.TO_SLAVE, ActionKind.MODIFY, path)
            if apply:
                self.copy_to_slave(identifier, path, overwrite=True)

    # -- slave -> master -------------------------------------------------

    def _slave_records(self, records: list[DiffRecord]) -> Iterator[str]:
        """Entry paths of changed slave files."""
        extension = self.config.store.extension
        for record in records:
            if record.path.endswith(extension):
                yield record.path[:-len(extension)]

    def _slave_removed(self, patch: PatchSet, reverse: dict[str, UUID], apply: bool) -> None:
        for path in self._slave_records(patch.removed):
            identifier = reverse.get(path)
            if identifier is None:
                self._warn(f"Removed slave entry {path} is not in the index; skipping")
                continue
            self._record(SyncDirection.TO_MASTER, ActionKind.REMOVE, path)
            if apply:
                self.index.remove(identifier)

    def _slave_added(self, patch: PatchSet, apply: bool) -> None:
        for path in self._slave_records(patch.added):
            self._record(SyncDirection.TO_MASTER, ActionKind.ADD, path)
            if not apply:
                continue
            entry = read_entry(
                self.store, f"{self.config.store.sync_folder}/{path}", self.config.keys
            )
            entry.uuid = uuid4()
            entry.path = path
            create_entry(self.index, entry)
            # push the identifier and path lines back to the slave copy
            self.copy_to_slave(entry.uuid, path, overwrite=True)

    def _slave_modified(self, patch: PatchSet, reverse: dict[str, UUID], apply: bool) -> None:
        for path in self._slave_records(patch.modified):
            identifier = reverse.get(path)
            if identifier is None:
                raise UnknownPathError(f"Modified slave entry {path} is not in the index")
            entry = read_entry(
                self.store, f"{self.config.store.sync_folder}/{path}", self.config.keys
            )
            if entry.uuid != identifier:
                raise IdentifierMismatchError(
                    f"Slave entry {path} has uuid {entry.uuid}, index says {identifier}"
                )
            if entry.path != path:
                raise PathMismatchError(
                    f"Slave entry {path} declares path {entry.path}"
                )
            self._record(SyncDirection.TO_MASTER, ActionKind.MODIFY, path)
            if apply:
                write_entry(self.store, self.config, entry)
