"""Shell and git utilities.

Provides simple wrappers around subprocess calls for git operations, the
version-control collaborator used by the release engine, and output
formatting helpers.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Protocol

from .errors import VersionControlError


def git(*args: str, cwd: Path | None = None, check: bool = True) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "status", "--short").
        cwd: Directory to run git in. Defaults to the process cwd.
        check: If True (default), raise VersionControlError on non-zero
               exit. Set to False for commands that may legitimately fail.

    Returns:
        Stripped stdout from the git command.
    """
    try:
        result = subprocess.run(
            ["git", *args], cwd=cwd, capture_output=True, text=True, check=False
        )
    except OSError as exc:
        raise VersionControlError(list(args), str(exc)) from exc
    if check and result.returncode != 0:
        raise VersionControlError(list(args), result.stderr)
    return result.stdout.strip()


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate major phases of the release in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


class VersionControl(Protocol):
    """The version-control operations the release engine needs."""

    def stage(self, path: Path) -> None: ...

    def commit(self, message: str) -> None: ...

    def find_introducing_revision(self, path: Path) -> str | None: ...


class GitRepository:
    """VersionControl implementation backed by the git CLI."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def stage(self, path: Path) -> None:
        # "git add" on a removed directory stages the deletions too
        git("add", "--", str(path), cwd=self.root)

    def commit(self, message: str) -> None:
        git("commit", "-m", message, cwd=self.root)

    def find_introducing_revision(self, path: Path) -> str | None:
        """Return the short hash of the commit that added ``path``, if any."""
        rev = git(
            "log",
            "--diff-filter=A",
            "--max-count=1",
            "--format=%h",
            "--",
            str(path),
            cwd=self.root,
        )
        return rev or None
