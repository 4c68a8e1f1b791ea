"""
Secret store primitive -- where the encrypted records live.

uupass never touches cryptography itself. Reading, writing, and removing
a record is delegated to the `pass` command. The store only knows record
names (``uuids/<id>``, ``uuids/index``, ``.sync/<path>``) and where the
encrypted blob for a name sits on disk.
"""

from __future__ import annotations

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from .config import StoreConfig
from .errors import RecordNotFoundError, StoreError

logger = logging.getLogger("uupass.store")


class SecretStore(ABC):
    """Abstract record store addressed by name."""

    def __init__(self, root: Path, extension: str = ".gpg"):
        self.root = root.expanduser()
        self.extension = extension

    @abstractmethod
    def read(self, name: str) -> str:
        """Decrypt and return the record content.

        Raises:
            RecordNotFoundError: If no record has this name.
        """

    @abstractmethod
    def write(self, name: str, content: str) -> None:
        """Create or overwrite a record with multiline content."""

    @abstractmethod
    def remove(self, name: str) -> None:
        """Delete a record."""

    @abstractmethod
    def edit(self, name: str) -> None:
        """Open the record in the user's editor."""

    def path_of(self, name: str) -> Path:
        """On-disk location of the encrypted blob for a record name."""
        return self.root / f"{name}{self.extension}"

    def exists(self, name: str) -> bool:
        return self.path_of(name).is_file()


class PassStore(SecretStore):
    """Store backed by the `pass` command line tool."""

    def __init__(self, root: Path, extension: str = ".gpg", command: str = "pass"):
        super().__init__(root, extension)
        self.command = command

    def _run(
        self,
        *args: str,
        input: Optional[str] = None,
        capture_output: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        env = os.environ.copy()
        env["PASSWORD_STORE_DIR"] = str(self.root)
        try:
            return subprocess.run(
                [self.command, *args],
                input=input,
                capture_output=capture_output,
                text=True,
                check=False,
                env=env,
            )
        except OSError as exc:
            raise StoreError(f"Cannot run {self.command}: {exc}") from exc

    def read(self, name: str) -> str:
        result = self._run(name)
        if result.returncode != 0:
            if not self.exists(name):
                raise RecordNotFoundError(f"{name} is not in the password store")
            raise StoreError(f"{self.command} {name} failed: {result.stderr.strip()}")
        return result.stdout

    def write(self, name: str, content: str) -> None:
        result = self._run("insert", "--multiline", "--force", name, input=content)
        if result.returncode != 0:
            raise StoreError(f"{self.command} insert {name} failed: {result.stderr.strip()}")
        logger.debug("Wrote record %s", name)

    def remove(self, name: str) -> None:
        result = self._run("rm", "--force", name)
        if result.returncode != 0:
            raise StoreError(f"{self.command} rm {name} failed: {result.stderr.strip()}")
        logger.debug("Removed record %s", name)

    def edit(self, name: str) -> None:
        result = self._run("edit", name, capture_output=False)
        if result.returncode != 0:
            raise StoreError(f"{self.command} edit {name} failed")


def create_store(config: StoreConfig) -> SecretStore:
    """Build the store described by the configuration."""
    return PassStore(config.root_path, config.extension, config.pass_command)
