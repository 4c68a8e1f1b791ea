"""Shared utilities for all CLI command modules.

Provides the Rich console instance, the per-invocation application
context, entry selection, and entry formatting helpers.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from uuid import UUID

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from ..config import Config, load_config
from ..entry import Entry, load_entry
from ..errors import Interrupted, MalformedIdentifierError, UnknownIdentifierError, UnknownPathError
from ..index import Index
from ..store import SecretStore, create_store

console = Console()

PASSWORD_ALPHABET = string.ascii_letters + string.digits + "!#$%&*+-=?@^_"


@dataclass
class AppContext:
    """Lazily built configuration, store and index for one invocation."""

    config_path: Optional[Path] = None
    config: Optional[Config] = None
    store: Optional[SecretStore] = None
    index: Optional[Index] = None

    def get_config(self) -> Config:
        if self.config is None:
            self.config = load_config(self.config_path)
        return self.config

    def get_store(self) -> SecretStore:
        if self.store is None:
            self.store = create_store(self.get_config().store)
        return self.store

    def get_index(self) -> Index:
        if self.index is None:
            self.index = Index(self.get_store(), self.get_config())
        return self.index


pass_app = click.make_pass_decorator(AppContext)


def select_entry(index: Index, path: Optional[str], identifier: Optional[str]) -> Entry:
    """Resolve an entry from a path or a UUID string and record the use.

    Raises:
        click.UsageError: If neither selector was given.
        MalformedIdentifierError: If the UUID cannot be parsed.
        UnknownPathError / UnknownIdentifierError: If the index has no match.
    """
    if identifier:
        try:
            ident = UUID(identifier)
        except ValueError as exc:
            raise MalformedIdentifierError(f"Invalid uuid: {identifier}") from exc
        if index.path_of(ident) is None:
            raise UnknownIdentifierError(f"{ident} is not in the index")
    elif path:
        found = index.identifier_of(path)
        if found is None:
            raise UnknownPathError(f"{path} is not in the password store")
        ident = found
    else:
        raise click.UsageError("Select an entry by PATH or --id.")

    entry = load_entry(index.store, index.config, ident)
    index.touch(ident)
    return entry


def entry_panel(entry: Entry, show_password: bool = False) -> Panel:
    """Render an entry for the terminal, password masked by default."""
    password = escape(entry.password) if show_password else "[dim]********[/]"
    lines = [
        f"Path:     [cyan]{escape(entry.path or '-')}[/]",
        f"Username: {escape(entry.username) if entry.username else '[dim]none[/]'}",
        f"Password: {password}",
        f"URL:      {escape(entry.url) if entry.url else '[dim]none[/]'}",
    ]
    lines.extend(f"          [dim]{escape(line)}[/]" for line in entry.extra_lines)
    lines.append(f"UUID:     [dim]{entry.uuid}[/]")
    return Panel("\n".join(lines), title=escape(entry.path or str(entry.uuid)), border_style="blue")


def generate_password(length: int) -> str:
    """Random password from letters, digits and a few symbols."""
    if length < 1:
        raise click.BadParameter("length must be positive", param_hint="--generate")
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def ask_password(generate: Optional[int]) -> str:
    """Generated password, or one typed twice at a hidden prompt."""
    if generate is not None:
        password = generate_password(generate)
        console.print(f"Password: [bold]{password}[/]")
        return password
    return click.prompt("Enter a password", hide_input=True, confirmation_prompt=True)


def confirm_or_cancel(question: str) -> None:
    """Ask a yes/no question and raise Interrupted on no."""
    if not click.confirm(question, default=False):
        raise Interrupted()
