"""Exception types raised by the release engine.

Errors raised before any file is touched leave the repository unchanged.
Errors raised after that point carry the list of files already applied so
the operator can inspect the working tree; nothing is rolled back.
"""

from __future__ import annotations

from pathlib import Path


class ReleaseError(Exception):
    """Base class for all release failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.applied: list[Path] = []


class ConfigurationError(ReleaseError):
    """Missing changeset directory or invalid configuration."""


class MalformedRecordError(ReleaseError):
    """A change record directory could not be read or parsed."""

    def __init__(self, record_dir: Path, reason: str) -> None:
        super().__init__(f"Malformed changeset {record_dir.name}: {reason}")
        self.record_dir = record_dir
        self.reason = reason


class UnknownPackageError(ReleaseError):
    """A change record names a package that is not in the workspace."""

    def __init__(self, names: dict[str, list[str]]) -> None:
        details = ", ".join(
            f"{name} (in {', '.join(ids)})" for name, ids in sorted(names.items())
        )
        super().__init__(f"Changesets reference unknown packages: {details}")
        self.names = names


class ManifestError(ReleaseError, OSError):
    """Reading or writing a manifest or changelog failed."""

    def __init__(self, path: Path, reason: str, written: list[Path]) -> None:
        super().__init__(f"Failed to update {path}: {reason}")
        self.path = path
        self.written = list(written)


class VersionControlError(ReleaseError):
    """A git command exited with a non-zero status."""

    def __init__(self, command: list[str], stderr: str = "") -> None:
        message = f"git {' '.join(command)} failed"
        if stderr:
            message += f": {stderr.strip()}"
        super().__init__(message)
        self.command = command
        self.stderr = stderr


class InvalidVersionError(ReleaseError):
    """A package version cannot be bumped as major.minor.patch."""

    def __init__(self, package: str | None, version: str, reason: str) -> None:
        subject = f"{package} {version}" if package else version
        super().__init__(f"Cannot bump version {subject}: {reason}")
        self.package = package
        self.version = version
