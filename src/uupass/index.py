"""
The Index -- single source of truth for UUID <-> path.

The whole mapping is one encrypted record, one ``"<uuid> <path>"`` line
per entry. Every mutation loads the full list, changes one item, and
writes the full list back. Reads are served from an in-process snapshot
that is refreshed when the record changes on disk and dropped after
every local write.
"""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from .config import Config
from .entry import split_lines
from .errors import (
    DuplicateIdentifierError,
    IndexFormatError,
    NoIndexError,
    PathCollisionError,
    RecordNotFoundError,
)
from .history import UsageHistory
from .store import SecretStore

logger = logging.getLogger("uupass.index")

IndexItem = tuple[UUID, str]


def parse_index(raw: str) -> list[IndexItem]:
    """Parse index record content.

    Raises:
        IndexFormatError: If a line has no separator or a bad UUID.
    """
    items: list[IndexItem] = []
    for lineno, line in enumerate(split_lines(raw), start=1):
        if not line.strip():
            continue
        ident, sep, path = line.partition(" ")
        if not sep:
            raise IndexFormatError(f"Index line {lineno} has no path: {line!r}")
        try:
            items.append((UUID(ident), path))
        except ValueError as exc:
            raise IndexFormatError(f"Cannot parse uuid on index line {lineno}: {ident!r}") from exc
    return items


def serialize_index(items: list[IndexItem]) -> str:
    return "".join(f"{ident} {path}\n" for ident, path in items)


def to_forward_map(items: list[IndexItem]) -> dict[UUID, str]:
    """Identifier -> path. Valid until the next index mutation."""
    return {ident: path for ident, path in items}


def to_reverse_map(items: list[IndexItem]) -> dict[str, UUID]:
    """Path -> identifier. Valid until the next index mutation."""
    return {path: ident for ident, path in items}


class Index:
    """Cached view of the index record plus its mutators.

    One instance is created per invocation and handed to every caller
    that reads or changes the mapping.
    """

    def __init__(
        self,
        store: SecretStore,
        config: Config,
        history: Optional[UsageHistory] = None,
    ):
        self.store = store
        self.config = config
        self.history = history or UsageHistory(
            config.store.history_file, config.store.history_days
        )
        self._items: Optional[list[IndexItem]] = None
        self._mtime: Optional[int] = None

    @property
    def record_name(self) -> str:
        return self.config.store.index_record

    def _current_mtime(self) -> int:
        try:
            return self.store.path_of(self.record_name).stat().st_mtime_ns
        except FileNotFoundError as exc:
            raise NoIndexError() from exc

    def invalidate(self) -> None:
        """Drop the cached snapshot."""
        self._items = None
        self._mtime = None

    def get(self) -> list[IndexItem]:
        """Return the index, most used entries first, then by path.

        Raises:
            NoIndexError: If the index record does not exist.
        """
        mtime = self._current_mtime()
        if self._items is None or mtime != self._mtime:
            self._items = self._read()
            self._mtime = mtime
        return list(self._items)

    def _read(self) -> list[IndexItem]:
        try:
            raw = self.store.read(self.record_name)
        except RecordNotFoundError as exc:
            raise NoIndexError() from exc
        items = parse_index(raw)
        frequency = self.history.frequencies()
        items.sort(key=lambda item: (-frequency.get(item[0], 0), item[1].lower()))
        logger.debug("Loaded %d index items", len(items))
        return items

    def write(self, items: list[IndexItem]) -> None:
        """Replace the whole index record."""
        self.store.write(self.record_name, serialize_index(items))
        self.invalidate()

    def ensure_path_free(self, identifier: UUID, path: str) -> None:
        """Reject a path already owned by another identifier.

        Raises:
            PathCollisionError: If the path belongs to a different entry.
        """
        owner = to_reverse_map(self.get()).get(path)
        if owner is not None and owner != identifier:
            raise PathCollisionError(f"Path {path} is already used by {owner}")

    def ensure_identifier_free(self, identifier: UUID) -> None:
        """Reject an identifier that already has an index item.

        Raises:
            DuplicateIdentifierError: If the identifier is indexed.
        """
        path = to_forward_map(self.get()).get(identifier)
        if path is not None:
            raise DuplicateIdentifierError(f"Identifier {identifier} is already indexed at {path}")

    def insert(self, identifier: UUID, path: str) -> None:
        items = self.get()
        self.ensure_identifier_free(identifier)
        self.ensure_path_free(identifier, path)
        items.append((identifier, path))
        self.history.touch(identifier)
        self.write(items)

    def remove(self, identifier: UUID) -> None:
        """Drop an identifier and delete its record."""
        items = [item for item in self.get() if item[0] != identifier]
        self.store.remove(f"{self.config.store.uuid_folder}/{identifier}")
        self.write(items)

    def move(self, identifier: UUID, new_path: str) -> None:
        items = [item for item in self.get() if item[0] != identifier]
        self.ensure_path_free(identifier, new_path)
        items.append((identifier, new_path))
        self.write(items)

    def touch(self, identifier: UUID) -> None:
        self.history.touch(identifier)

    def path_of(self, identifier: UUID) -> Optional[str]:
        return to_forward_map(self.get()).get(identifier)

    def identifier_of(self, path: str) -> Optional[UUID]:
        return to_reverse_map(self.get()).get(path)
