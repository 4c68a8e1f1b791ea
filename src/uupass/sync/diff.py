"""
Diff extraction -- what changed in each tree since the baseline.

git produces the unified diff (with rename detection off, so a moved
file shows up as a remove plus an add, or as a changed ``path:`` line);
unidiff parses it; this module reduces it to DiffRecords.
"""

from __future__ import annotations

import logging
from typing import Optional

from unidiff import PatchSet as UnifiedDiff
from unidiff.errors import UnidiffParseError

from ..errors import DiffEncodingError, DiffParseError
from ..git import GitRepo
from .models import ChangeKind, DiffRecord, PatchSet, SyncBaseline

logger = logging.getLogger("uupass.sync.diff")


def parse_patch(raw: bytes, label: str = "diff") -> PatchSet:
    """Turn raw ``git diff`` output into a PatchSet.

    Raises:
        DiffEncodingError: If the output is not UTF-8.
        DiffParseError: If the output is not a unified diff.
    """
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DiffEncodingError(f"Cannot decode {label} as UTF-8: {exc}") from exc

    try:
        parsed = UnifiedDiff(text)
    except UnidiffParseError as exc:
        raise DiffParseError(f"Could not parse {label}: {exc}") from exc

    records: list[DiffRecord] = []
    for patched in parsed:
        if patched.is_added_file:
            kind = ChangeKind.ADDED
        elif patched.is_removed_file:
            kind = ChangeKind.REMOVED
        else:
            kind = ChangeKind.MODIFIED

        record = DiffRecord(path=patched.path, kind=kind)
        for hunk in patched:
            for line in hunk:
                if line.is_removed:
                    record.removed_lines.append(line.value.rstrip("\r\n"))
                elif line.is_added:
                    record.added_lines.append(line.value.rstrip("\r\n"))
        records.append(record)

    logger.debug("%s: %d changed file(s)", label, len(records))
    return PatchSet(records)


def parse_diffs(
    master: GitRepo,
    slave: GitRepo,
    baseline: SyncBaseline,
) -> tuple[PatchSet, PatchSet]:
    """Diff both trees against their baseline commits.

    Returns:
        (master patch set, slave patch set).
    """
    master_patch = parse_patch(master.diff(baseline.master, no_renames=True), "master diff")
    slave_patch = parse_patch(slave.diff(baseline.slave, no_renames=True), "slave diff")
    return master_patch, slave_patch


def _first_removed_value(record: DiffRecord, path_key: str) -> Optional[str]:
    key = path_key.lower()
    for line in record.removed_lines:
        if line.lower().startswith(key):
            return line[len(path_key):]
    return None


def declared_path(record: DiffRecord, path_key: str = "path: ") -> Optional[str]:
    """Path a removed entry declared before it was deleted."""
    return _first_removed_value(record, path_key)


def previous_path(record: DiffRecord, path_key: str = "path: ") -> Optional[str]:
    """Path a modified entry had at the baseline, if its path line changed."""
    if record.kind != ChangeKind.MODIFIED:
        return None
    return _first_removed_value(record, path_key)
