"""
Usage history -- which entries get used, and how often.

Every read or creation of an entry appends one record to a small JSON
file. Records older than the configured horizon are dropped on read, so
the frequency ranking reflects recent habits rather than all-time use.
"""

from __future__ import annotations

import json
import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger("uupass.history")


class UsageRecord(BaseModel):
    """One touch of an entry."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    uuid: UUID


class UsageHistory:
    """Bounded-age log of touched identifiers."""

    def __init__(self, path: Path, days: int = 50):
        self.path = path.expanduser()
        self.days = days

    def read(self, now: Optional[datetime] = None) -> list[UsageRecord]:
        """Load the records younger than the horizon.

        An unreadable history file is deleted and treated as empty.
        """
        if not self.path.exists():
            return []
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=self.days)
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            records = [UsageRecord(**item) for item in raw]
            return [r for r in records if r.timestamp > cutoff]
        except (OSError, json.JSONDecodeError, TypeError, ValidationError) as exc:
            logger.warning("Discarding unreadable history file %s: %s", self.path, exc)
            self.path.unlink(missing_ok=True)
            return []

    def touch(self, identifier: UUID) -> None:
        """Record one use of an entry."""
        records = self.read()
        records.append(UsageRecord(uuid=identifier))
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [r.model_dump(mode="json") for r in records]
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def frequencies(self) -> Counter[UUID]:
        """Number of recent uses per identifier."""
        return Counter(r.uuid for r in self.read())
