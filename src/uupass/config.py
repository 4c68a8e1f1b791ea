"""
Pydantic models for the uupass configuration.

The config file is optional. Every field has a default that matches a
stock pass setup, so a missing or broken file still yields a usable
configuration.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from . import CONFIG_PATH, STORE_HOME

logger = logging.getLogger("uupass.config")

GPG_TEXTCONV = (
    "gpg2 -d --quiet --yes --compress-algo=none --no-encrypt-to --batch --use-agent"
)


class StoreConfig(BaseModel):
    """Where the password store lives and how it is laid out."""

    root: Path = Path(STORE_HOME)
    uuid_folder: str = "uuids"
    index_entry: str = "index"
    extension: str = ".gpg"
    sync_folder: str = ".sync"
    sync_commit_file: str = ".sync_commit"
    history_file: Path = Path("~/.cache/uupass_history")
    history_days: int = 50
    pass_command: str = "pass"

    @property
    def root_path(self) -> Path:
        """Expanded store root."""
        return self.root.expanduser()

    @property
    def index_record(self) -> str:
        """Store name of the index record."""
        return f"{self.uuid_folder}/{self.index_entry}"

    @property
    def slave_root(self) -> Path:
        """Root of the path-named mirror repository."""
        return self.root_path / self.sync_folder

    @property
    def baseline_file(self) -> Path:
        """Location of the sync marker file."""
        return self.slave_root / self.sync_commit_file


class RecordKeys(BaseModel):
    """Line prefixes recognized inside a record."""

    user: str = "user: "
    user_alt: str = "username: "
    path: str = "path: "
    url: str = "url: "
    uuid: str = "uuid: "


class SyncSettings(BaseModel):
    """Settings for the mirror reconciliation."""

    commit_message: str = "uupass sync"
    textconv: str = GPG_TEXTCONV
    remote: str = "origin"
    branch: Optional[str] = None


class Config(BaseModel):
    """Complete uupass configuration."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    keys: RecordKeys = Field(default_factory=RecordKeys)
    sync: SyncSettings = Field(default_factory=SyncSettings)


def default_config_path() -> Path:
    """Config file location honoring UUPASS_CONFIG."""
    return Path(CONFIG_PATH).expanduser()


def load_config(path: Optional[Path] = None) -> Config:
    """Load the configuration from disk.

    Args:
        path: Config file. Defaults to ~/.config/uupass/config.yaml.

    Returns:
        Config loaded from the YAML file, or defaults.
    """
    config_file = (path or default_config_path()).expanduser()
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
            return Config(**data)
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            logger.warning("Failed to load config %s: %s -- using defaults", config_file, exc)
    return Config()


def save_config(config: Config, path: Optional[Path] = None) -> Path:
    """Persist the configuration as YAML.

    Args:
        config: Configuration to write.
        path: Target file. Defaults to the standard config location.

    Returns:
        Path of the written file.
    """
    config_file = (path or default_config_path()).expanduser()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="json")
    config_file.write_text(yaml.dump(data, default_flow_style=False), encoding="utf-8")
    return config_file
