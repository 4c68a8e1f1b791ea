"""
Store maintenance -- index consistency checks and migration.

``check_index`` compares the uuid folder with the index and reports what
does not line up; ``fix_issue`` repairs one finding. ``migrate_store``
turns a plain path-named pass store into a managed one.
``plan_bulk_rename`` lets the user rewrite paths in an editor and
``apply_renames`` moves the entries that changed.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel

from .entry import change_path, load_entry, read_entry, split_lines, write_entry
from .errors import (
    EntryWithoutPathError,
    ManagedFolderNotFoundError,
    NoIndexError,
    PathCollisionError,
)
from .index import Index, IndexItem, serialize_index, to_forward_map, to_reverse_map

logger = logging.getLogger("uupass.maintenance")

GIT_FOLDER = ".git"


class IssueKind(str, Enum):
    """Categories of index inconsistencies."""

    UNRECOGNIZED_FILE = "unrecognized_file"
    DIRECTORY = "directory"
    INVALID_UUID = "invalid_uuid"
    NOT_INDEXED = "not_indexed"
    NOT_INDEXED_NO_PATH = "not_indexed_no_path"
    PATH_MISMATCH = "path_mismatch"
    DANGLING = "dangling"


FIXABLE = {
    IssueKind.NOT_INDEXED,
    IssueKind.NOT_INDEXED_NO_PATH,
    IssueKind.PATH_MISMATCH,
    IssueKind.DANGLING,
}


class IndexIssue(BaseModel):
    """One inconsistency between the uuid folder and the index."""

    kind: IssueKind
    name: str
    identifier: Optional[UUID] = None
    entry_path: Optional[str] = None
    index_path: Optional[str] = None

    @property
    def fixable(self) -> bool:
        return self.kind in FIXABLE

    def describe(self) -> str:
        if self.kind == IssueKind.UNRECOGNIZED_FILE:
            return f"unrecognized file: {self.name}"
        if self.kind == IssueKind.DIRECTORY:
            return f"uuids folder should not contain any folders: {self.name}"
        if self.kind == IssueKind.INVALID_UUID:
            return f"invalid uuid: {self.name}"
        if self.kind == IssueKind.NOT_INDEXED:
            return f"entry {self.identifier} is not in the index (path {self.entry_path})"
        if self.kind == IssueKind.NOT_INDEXED_NO_PATH:
            return f"entry {self.identifier} is not in the index and has no path"
        if self.kind == IssueKind.PATH_MISMATCH:
            return (
                f"entry {self.identifier}: index says {self.index_path}, "
                f"entry says {self.entry_path}"
            )
        return f"index item {self.index_path} ({self.identifier}) has no record"


def check_index(index: Index) -> list[IndexIssue]:
    """Scan the uuid folder and report every inconsistency with the index.

    Args:
        index: Index of the store to check.

    Returns:
        Issues in folder order, dangling index items last.

    Raises:
        ManagedFolderNotFoundError: If the uuid folder does not exist.
        NoIndexError: If there is no index record.
    """
    store, config = index.store, index.config
    folder = store.root / config.store.uuid_folder
    if not folder.is_dir():
        raise ManagedFolderNotFoundError(f"Managed folder {folder} not found")

    forward = to_forward_map(index.get())
    index_file = f"{config.store.index_entry}{config.store.extension}"
    issues: list[IndexIssue] = []
    seen: set[UUID] = set()

    for child in sorted(folder.iterdir()):
        name = child.name
        if child.is_dir():
            issues.append(IndexIssue(kind=IssueKind.DIRECTORY, name=name))
            continue
        if name == index_file:
            continue
        stem = name[:-len(config.store.extension)]
        if not name.endswith(config.store.extension) or "." in stem:
            issues.append(IndexIssue(kind=IssueKind.UNRECOGNIZED_FILE, name=name))
            continue
        try:
            identifier = UUID(stem)
        except ValueError:
            issues.append(IndexIssue(kind=IssueKind.INVALID_UUID, name=name))
            continue

        seen.add(identifier)
        entry = load_entry(store, config, identifier)
        index_path = forward.get(identifier)
        if index_path is None:
            kind = IssueKind.NOT_INDEXED if entry.path else IssueKind.NOT_INDEXED_NO_PATH
            issues.append(
                IndexIssue(kind=kind, name=name, identifier=identifier, entry_path=entry.path)
            )
        elif index_path != entry.path:
            issues.append(
                IndexIssue(
                    kind=IssueKind.PATH_MISMATCH,
                    name=name,
                    identifier=identifier,
                    entry_path=entry.path,
                    index_path=index_path,
                )
            )
        else:
            logger.debug("Entry at %s is correct", index_path)

    for identifier, path in forward.items():
        if identifier not in seen:
            issues.append(
                IndexIssue(
                    kind=IssueKind.DANGLING,
                    name=f"{identifier}{config.store.extension}",
                    identifier=identifier,
                    index_path=path,
                )
            )
    return issues


def fix_issue(
    index: Index,
    issue: IndexIssue,
    prefer: str = "index",
    new_path: Optional[str] = None,
) -> bool:
    """Repair a single issue.

    Args:
        index: Index of the store.
        issue: Finding from check_index.
        prefer: For a path mismatch, which side's path wins:
            ``"index"`` rewrites the entry, ``"entry"`` moves the index item.
        new_path: Path for an unindexed entry without one.

    Returns:
        True if something was changed.

    Raises:
        EntryWithoutPathError: If an entry needs a path and none was given.
    """
    store, config = index.store, index.config

    if issue.kind == IssueKind.PATH_MISMATCH:
        if prefer == "entry" and issue.entry_path:
            index.move(issue.identifier, issue.entry_path)
        else:
            entry = load_entry(store, config, issue.identifier)
            entry.path = issue.index_path
            write_entry(store, config, entry)
        logger.info("Fixed path of %s", issue.identifier)
        return True

    if issue.kind == IssueKind.NOT_INDEXED:
        index.insert(issue.identifier, issue.entry_path)
        logger.info("Indexed %s at %s", issue.identifier, issue.entry_path)
        return True

    if issue.kind == IssueKind.NOT_INDEXED_NO_PATH:
        if not new_path:
            raise EntryWithoutPathError(f"Entry {issue.identifier} needs a path")
        change_path(index, load_entry(store, config, issue.identifier), new_path)
        logger.info("Moved %s to %s", issue.identifier, new_path)
        return True

    if issue.kind == IssueKind.DANGLING:
        # the record is already gone, so only the index line is dropped
        index.write([item for item in index.get() if item[0] != issue.identifier])
        logger.info("Dropped dangling index item %s", issue.index_path)
        return True

    return False


def find_unmanaged_records(index: Index) -> list[str]:
    """Names of all path-named records outside the managed folders."""
    store, config = index.store, index.config
    skipped = {GIT_FOLDER, config.store.uuid_folder, config.store.sync_folder}
    extension = config.store.extension
    names: list[str] = []

    def _walk(folder: Path) -> None:
        for child in sorted(folder.iterdir()):
            if child.is_dir():
                if child.name not in skipped:
                    _walk(child)
            elif child.name.endswith(extension):
                relative = child.relative_to(store.root).as_posix()
                names.append(relative[:-len(extension)])

    _walk(store.root)
    return names


def migrate_store(index: Index, names: Optional[list[str]] = None, prune: bool = False) -> list[IndexItem]:
    """Index path-named records, creating the index if necessary.

    Args:
        index: Index of the store.
        names: Records to migrate. Defaults to find_unmanaged_records().
        prune: Remove the original path-named record after copying.

    Returns:
        The newly indexed items.
    """
    store, config = index.store, index.config
    if names is None:
        names = find_unmanaged_records(index)
    try:
        items = index.get()
    except NoIndexError:
        logger.info("Generating an empty index")
        items = []

    known = to_reverse_map(items)
    taken = set(to_forward_map(items))
    added: list[IndexItem] = []
    for name in names:
        if name in known:
            logger.warning("%s is already indexed as %s, skipping", name, known[name])
            continue
        entry = read_entry(store, name, config.keys)
        entry.path = name
        if entry.uuid in taken:
            logger.warning("%s carries identifier %s, which is already indexed", name, entry.uuid)
            entry.uuid = uuid4()
        elif not entry.has_identifier:
            entry.uuid = uuid4()
        taken.add(entry.uuid)
        write_entry(store, config, entry)
        items.append((entry.uuid, name))
        added.append((entry.uuid, name))
        known[name] = entry.uuid
        logger.info("Indexing %s", name)
        if prune:
            store.remove(name)

    index.write(items)
    return added


class PathChange(BaseModel):
    """One entry to move during a bulk rename."""

    identifier: UUID
    old_path: str
    new_path: str


def shadow_record(index: Index) -> str:
    return f"{index.config.store.uuid_folder}/.shadow"


def _parse_shadow(raw: str) -> dict[UUID, str]:
    """Read an edited index copy, skipping lines that no longer parse."""
    paths: dict[UUID, str] = {}
    for line in split_lines(raw):
        ident, sep, path = line.partition(" ")
        if not sep or not path:
            if line.strip():
                logger.warning("Ignoring malformed line in edited index: %r", line)
            continue
        try:
            paths[UUID(ident)] = path
        except ValueError:
            logger.warning("Ignoring line with invalid uuid in edited index: %r", line)
    return paths


def plan_bulk_rename(index: Index) -> list[PathChange]:
    """Let the user edit a copy of the index and collect the moved entries.

    The copy is written to a shadow record next to the index, opened
    with the store's editor, and removed again afterwards. Lines whose
    identifier is missing from the index are ignored, as are deleted
    lines.

    Returns:
        Changes ordered by the current path.

    Raises:
        PathCollisionError: If a new path is used twice, or is currently
            held by another entry.
    """
    store = index.store
    items = sorted(index.get(), key=lambda item: item[1])
    name = shadow_record(index)
    store.write(name, serialize_index(items))
    try:
        store.edit(name)
        edited = _parse_shadow(store.read(name))
    finally:
        store.remove(name)

    reverse = to_reverse_map(items)
    changes: list[PathChange] = []
    targets: dict[str, UUID] = {}
    for identifier, old_path in items:
        new_path = edited.get(identifier)
        if new_path is None or new_path == old_path:
            continue
        if new_path in targets:
            raise PathCollisionError(
                f"Path {new_path} is given to both {targets[new_path]} and {identifier}"
            )
        owner = reverse.get(new_path)
        if owner is not None:
            raise PathCollisionError(f"Path {new_path} is already used by {owner}")
        targets[new_path] = identifier
        changes.append(PathChange(identifier=identifier, old_path=old_path, new_path=new_path))
    return changes


def apply_renames(index: Index, changes: list[PathChange]) -> None:
    """Move every planned entry, updating its record and the index."""
    store, config = index.store, index.config
    for change in changes:
        change_path(index, load_entry(store, config, change.identifier), change.new_path)
        logger.info("Renamed %s to %s", change.old_path, change.new_path)
