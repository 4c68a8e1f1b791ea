"""Shared test fixtures for uupass."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Callable, Optional
from uuid import uuid4

import pytest

from uupass.config import Config, StoreConfig, SyncSettings
from uupass.entry import Entry, create_entry
from uupass.errors import RecordNotFoundError
from uupass.git import GitRepo
from uupass.index import Index
from uupass.store import SecretStore


class PlainStore(SecretStore):
    """Unencrypted stand-in for pass.

    Records are plain text files at the usual location. Like pass, every
    change is committed when the store root is a git repository.
    """

    def __init__(self, root: Path, extension: str = ".gpg"):
        super().__init__(root, extension)
        self.editor: Optional[Callable[[str], str]] = None

    def _commit(self, message: str) -> None:
        if (self.root / ".git").exists():
            repo = GitRepo(self.root)
            repo.add()
            repo.commit(message)

    def read(self, name: str) -> str:
        path = self.path_of(name)
        if not path.is_file():
            raise RecordNotFoundError(f"{name} is not in the password store")
        return path.read_text(encoding="utf-8")

    def write(self, name: str, content: str) -> None:
        path = self.path_of(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        self._commit(f"Add given password for {name} to store.")

    def remove(self, name: str) -> None:
        path = self.path_of(name)
        if not path.is_file():
            raise RecordNotFoundError(f"{name} is not in the password store")
        path.unlink()
        self._commit(f"Remove {name} from store.")

    def edit(self, name: str) -> None:
        if self.editor is not None:
            self.write(name, self.editor(self.read(name)))


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Configuration pointing at a temporary store and history file."""
    root = tmp_path / "store"
    root.mkdir()
    return Config(
        store=StoreConfig(root=root, history_file=tmp_path / "history.json"),
        sync=SyncSettings(textconv="cat"),
    )


@pytest.fixture
def store(config: Config) -> PlainStore:
    return PlainStore(config.store.root_path, config.store.extension)


@pytest.fixture
def index(store: PlainStore, config: Config) -> Index:
    """An Index over an empty, initialized store."""
    idx = Index(store, config)
    idx.write([])
    return idx


@pytest.fixture
def add_entry(index: Index) -> Callable[..., Entry]:
    """Create entries through the regular creation path."""

    def _add(path: str, password: str = "hunter2", **fields) -> Entry:
        entry = Entry(password=password, path=path, uuid=uuid4(), **fields)
        create_entry(index, entry)
        return entry

    return _add


@pytest.fixture
def git_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Isolate git from the user's configuration; skip without git."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "uupass test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@uupass.local")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "uupass test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@uupass.local")
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(tmp_path / "gitconfig"))


@pytest.fixture
def git_index(git_env: None, store: PlainStore, config: Config) -> Index:
    """An Index over an empty store that is a git repository, like `pass git init`."""
    repo = GitRepo(store.root)
    repo.init()
    (store.root / ".gpg-id").write_text("test@uupass.local\n", encoding="utf-8")
    repo.add()
    repo.commit("Add current contents of password store.")

    idx = Index(store, config)
    idx.write([])
    return idx


@pytest.fixture
def git_add_entry(git_index: Index) -> Callable[..., Entry]:
    """Create entries in the git-backed store."""

    def _add(path: str, password: str = "hunter2", **fields) -> Entry:
        entry = Entry(password=password, path=path, uuid=uuid4(), **fields)
        create_entry(git_index, entry)
        return entry

    return _add
