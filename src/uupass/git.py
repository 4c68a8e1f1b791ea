"""Git primitive: the version-control operations the sync engine needs."""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path
from typing import Optional

from .errors import VcsError

logger = logging.getLogger("uupass.git")

_COMMIT_RE = re.compile(r"^[0-9a-f]{40}$")


class GitRepo:
    """Wraps git CLI operations on one working tree."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess[bytes]:
        """Run a git command in the working tree, capturing raw bytes."""
        cmd = ["git", *args]
        try:
            result = subprocess.run(cmd, cwd=self.path, capture_output=True, check=False)
        except OSError as exc:
            raise VcsError(f"Cannot run git in {self.path}: {exc}") from exc
        if check and result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise VcsError(f"{' '.join(cmd)} failed (exit {result.returncode}): {stderr}")
        return result

    def is_repo(self) -> bool:
        return (self.path / ".git").exists()

    def init(self) -> None:
        self._run("init")
        logger.info("Initialized git repo in %s", self.path)

    def config(self, key: str, value: str) -> None:
        self._run("config", key, value)

    def add(self, *paths: str) -> None:
        """Stage paths; with no arguments stage everything, deletions included."""
        if paths:
            self._run("add", "--", *paths)
        else:
            self._run("add", "-A")

    def commit(self, message: str) -> Optional[str]:
        """Commit the index. Returns the new HEAD, or None if nothing was staged."""
        staged = self._run("diff", "--cached", "--quiet", check=False)
        if staged.returncode == 0:
            return None
        self._run("commit", "-m", message)
        return self.head()

    def head(self) -> str:
        """Return the full hash of HEAD."""
        result = self._run("rev-parse", "HEAD")
        commit = result.stdout.decode("ascii", errors="replace").strip()
        if not _COMMIT_RE.match(commit):
            raise VcsError(f"Unexpected output from git rev-parse in {self.path}: {commit!r}")
        return commit

    def diff(self, commit: str, no_renames: bool = True) -> bytes:
        """Unified diff of the working tree against a commit."""
        args = ["-c", "core.quotePath=false", "diff", commit]
        if no_renames:
            args.append("--no-renames")
        return self._run(*args).stdout

    def branch(self) -> str:
        """Name of the checked-out branch."""
        result = self._run("rev-parse", "--abbrev-ref", "HEAD")
        return result.stdout.decode("utf-8", errors="replace").strip()

    def pull(self, remote: str, branch: Optional[str] = None) -> None:
        """Merge the remote branch into the current one."""
        self._run("pull", "--no-rebase", "--no-edit", remote, branch or self.branch())
        logger.info("Pulled %s into %s", remote, self.path)

    def push(self, remote: str, branch: Optional[str] = None) -> None:
        self._run("push", remote, branch or self.branch())
        logger.info("Pushed %s to %s", self.path, remote)
