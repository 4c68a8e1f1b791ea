"""
Entry codec -- one decrypted secret record.

A record is a flat block of lines: the password first, then optional
``key: value`` lines for the fields uupass understands, then anything
else the user keeps there. Unknown lines survive a round trip untouched.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .config import Config, RecordKeys
from .errors import EmptyEntryError, EntryWithoutPathError
from .store import SecretStore

if TYPE_CHECKING:
    from .index import Index

logger = logging.getLogger("uupass.entry")

NIL_UUID = UUID(int=0)


def split_lines(raw: str) -> list[str]:
    """Split on LF or CRLF only; a final terminator adds no empty line.

    str.splitlines also breaks on form feeds, NEL and other Unicode
    separators, which are ordinary characters inside a value.
    """
    lines = [line[:-1] if line.endswith("\r") else line for line in raw.split("\n")]
    if lines and lines[-1] == "":
        lines.pop()
    return lines


class Entry(BaseModel):
    """A single secret record."""

    password: str
    username: Optional[str] = None
    url: Optional[str] = None
    path: Optional[str] = None
    uuid: UUID = NIL_UUID
    extra_lines: list[str] = Field(default_factory=list)

    @property
    def has_identifier(self) -> bool:
        return self.uuid != NIL_UUID


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value.strip())
    except ValueError:
        return NIL_UUID


def parse_entry(raw: str, keys: Optional[RecordKeys] = None, name: str = "") -> Entry:
    """Parse raw record text into an Entry.

    Args:
        raw: Decrypted record content.
        keys: Recognized line prefixes. Defaults to RecordKeys().
        name: Record name, used in error messages only.

    Returns:
        The parsed Entry.

    Raises:
        EmptyEntryError: If the record has no password line.
    """
    keys = keys or RecordKeys()
    lines = split_lines(raw)
    if not lines:
        raise EmptyEntryError(f"Empty entry found: {name}")

    entry = Entry(password=lines[0])
    for line in lines[1:]:
        lowered = line.lower()
        if lowered.startswith(keys.user.lower()):
            entry.username = line[len(keys.user):]
        elif lowered.startswith(keys.user_alt.lower()):
            entry.username = line[len(keys.user_alt):]
        elif lowered.startswith(keys.path.lower()):
            entry.path = line[len(keys.path):]
        elif lowered.startswith(keys.url.lower()):
            entry.url = line[len(keys.url):]
        elif lowered.startswith(keys.uuid.lower()):
            entry.uuid = _parse_uuid(line[len(keys.uuid):])
        elif line:
            entry.extra_lines.append(line)
    return entry


def serialize_entry(entry: Entry, keys: Optional[RecordKeys] = None) -> str:
    """Render an Entry in the fixed write order, identifier last."""
    keys = keys or RecordKeys()
    lines = [entry.password]
    if entry.username is not None:
        lines.append(f"{keys.user}{entry.username}")
    if entry.url is not None:
        lines.append(f"{keys.url}{entry.url}")
    if entry.path is not None:
        lines.append(f"{keys.path}{entry.path}")
    lines.extend(entry.extra_lines)
    lines.append(f"{keys.uuid}{entry.uuid}")
    return "\n".join(lines) + "\n"


def record_name(config: Config, identifier: UUID) -> str:
    """Store name of the record for an identifier."""
    return f"{config.store.uuid_folder}/{identifier}"


def read_entry(store: SecretStore, name: str, keys: Optional[RecordKeys] = None) -> Entry:
    """Read and parse any record by its store name."""
    return parse_entry(store.read(name), keys, name)


def load_entry(store: SecretStore, config: Config, identifier: UUID) -> Entry:
    """Load the entry stored under an identifier.

    If the record declares a different identifier (legacy data), the
    requested one wins in memory; it is persisted on the next write.
    """
    entry = read_entry(store, record_name(config, identifier), config.keys)
    if entry.uuid != identifier:
        logger.warning("Fixing UUID stored in entry %s", identifier)
        entry.uuid = identifier
    return entry


def write_entry(store: SecretStore, config: Config, entry: Entry) -> None:
    """Persist an entry under its identifier."""
    store.write(record_name(config, entry.uuid), serialize_entry(entry, config.keys))


def create_entry(index: Index, entry: Entry) -> None:
    """Write a new entry and register it in the index.

    Raises:
        EntryWithoutPathError: If the entry has no path.
    """
    if entry.path is None:
        raise EntryWithoutPathError(f"Entry does not have a path: {entry.uuid}")
    index.ensure_identifier_free(entry.uuid)
    index.ensure_path_free(entry.uuid, entry.path)
    write_entry(index.store, index.config, entry)
    index.insert(entry.uuid, entry.path)


def change_path(index: Index, entry: Entry, new_path: str) -> None:
    """Move an entry to a new path, updating both the record and the index."""
    index.ensure_path_free(entry.uuid, new_path)
    entry.path = new_path
    write_entry(index.store, index.config, entry)
    index.move(entry.uuid, new_path)
