"""
Sync data models -- baseline, diff records, and the run report.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

COMMIT_PATTERN = r"^[0-9a-fA-F]{40}$"


class ChangeKind(str, Enum):
    """How a file changed between the baseline and the working tree."""

    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


class SyncDirection(str, Enum):
    """Which side an action is applied to."""

    TO_SLAVE = "M -> S"
    TO_MASTER = "M <- S"


class ActionKind(str, Enum):
    """What a reconciliation step does to one entry."""

    ADD = "add"
    REMOVE = "remove"
    RENAME = "rename"
    MODIFY = "modify"


class SyncBaseline(BaseModel):
    """Commit pair both trees were last known consistent at."""

    master: str = Field(pattern=COMMIT_PATTERN)
    slave: str = Field(pattern=COMMIT_PATTERN)


@dataclass
class DiffRecord:
    """One changed file of a tree.

    Attributes:
        path: File path relative to the repository root.
        kind: Added, removed or modified.
        removed_lines: Lines present at the baseline and gone now.
        added_lines: Lines present now and absent at the baseline.
    """

    path: str
    kind: ChangeKind
    removed_lines: list[str] = field(default_factory=list)
    added_lines: list[str] = field(default_factory=list)


@dataclass
class PatchSet:
    """All changed files of one tree."""

    records: list[DiffRecord] = field(default_factory=list)

    def _of_kind(self, kind: ChangeKind) -> list[DiffRecord]:
        return [r for r in self.records if r.kind == kind]

    @property
    def added(self) -> list[DiffRecord]:
        return self._of_kind(ChangeKind.ADDED)

    @property
    def removed(self) -> list[DiffRecord]:
        return self._of_kind(ChangeKind.REMOVED)

    @property
    def modified(self) -> list[DiffRecord]:
        return self._of_kind(ChangeKind.MODIFIED)

    def __len__(self) -> int:
        return len(self.records)


_LABELS = {
    ActionKind.ADD: "New entry   ",
    ActionKind.REMOVE: "Remove entry",
    ActionKind.RENAME: "Rename entry",
    ActionKind.MODIFY: "Modify entry",
}


class SyncAction(BaseModel):
    """One planned or applied reconciliation step."""

    direction: SyncDirection
    kind: ActionKind
    path: str
    old_path: Optional[str] = None
    skipped: bool = False

    def describe(self) -> str:
        target = f"{self.old_path} -> {self.path}" if self.old_path else self.path
        return f"{_LABELS[self.kind]} [{self.direction.value}]: {target}"


class SyncReport(BaseModel):
    """Outcome of a reconciliation run."""

    applied: bool
    previous: SyncBaseline
    actions: list[SyncAction] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    slave_committed: bool = False
    baseline: Optional[SyncBaseline] = None

    @property
    def has_changes(self) -> bool:
        return bool(self.actions)
