"""Sync marker file: the commit pair the next run diffs against."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from ..errors import BaselineFormatError, BaselineNotFoundError
from .models import SyncBaseline

logger = logging.getLogger("uupass.sync.baseline")


def read_baseline(marker: Path) -> SyncBaseline:
    """Read the master and slave commit hashes.

    Args:
        marker: Path of the marker file inside the slave repository.

    Returns:
        The persisted baseline.

    Raises:
        BaselineNotFoundError: If the marker file does not exist.
        BaselineFormatError: If it does not hold exactly two 40-character hashes.
    """
    if not marker.is_file():
        raise BaselineNotFoundError(f"Sync marker {marker} not found")

    lines = marker.read_text(encoding="utf-8").splitlines()
    if len(lines) != 2:
        raise BaselineFormatError(f"{marker.name} file is invalid: expected 2 lines, got {len(lines)}")
    try:
        return SyncBaseline(master=lines[0], slave=lines[1])
    except ValidationError as exc:
        raise BaselineFormatError(f"{marker.name} file is invalid: {exc}") from exc


def write_baseline(marker: Path, baseline: SyncBaseline) -> None:
    """Overwrite the marker file with a new baseline."""
    marker.write_text(f"{baseline.master}\n{baseline.slave}\n", encoding="utf-8")
    logger.info("Sync baseline advanced to %s / %s", baseline.master[:8], baseline.slave[:8])
