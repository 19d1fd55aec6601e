"""Pending change records ("changesets").

Each record lives in its own directory under the changeset base:

    .changeset/
      brave-lions-dance/
        changes.json   {"releases": [{"name": "pkg-a", "type": "minor"}]}
        changes.md     free-form summary for the changelog

Records are read-only here; they are removed only by clear_records() once
the release they belong to has been applied.
"""

from __future__ import annotations

import json
import shutil
from pathlib import Path

from pydantic import ValidationError

from .errors import ConfigurationError, MalformedRecordError, VersionControlError
from .models import ChangeRecord
from .shell import VersionControl

METADATA_FILE = "changes.json"
SUMMARY_FILE = "changes.md"


def remove_empty_dirs(base: Path) -> list[Path]:
    """Remove record directories that contain nothing at all.

    These are left behind when a previous run failed part way through
    removing records. Safe to call repeatedly.

    Returns:
        The directories removed.
    """
    removed: list[Path] = []
    if not base.is_dir():
        return removed
    for entry in sorted(base.iterdir()):
        if entry.is_dir() and _is_empty_tree(entry):
            shutil.rmtree(entry)
            removed.append(entry)
    return removed


def _is_empty_tree(path: Path) -> bool:
    return all(p.is_dir() for p in path.rglob("*"))


def read_record(
    record_dir: Path, vcs: VersionControl | None = None
) -> ChangeRecord:
    """Read one change record directory.

    The introducing revision is looked up best-effort: a record that has not
    been committed yet, or a git failure, leaves ``introduced_at`` unset.

    Raises:
        MalformedRecordError: If either file is missing or the metadata is
            not valid.
    """
    summary_path = record_dir / SUMMARY_FILE
    metadata_path = record_dir / METADATA_FILE
    if not metadata_path.is_file():
        raise MalformedRecordError(record_dir, f"missing {METADATA_FILE}")
    if not summary_path.is_file():
        raise MalformedRecordError(record_dir, f"missing {SUMMARY_FILE}")

    try:
        summary = summary_path.read_text(encoding="utf-8")
        metadata = json.loads(metadata_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedRecordError(record_dir, str(exc)) from exc
    if not isinstance(metadata, dict):
        raise MalformedRecordError(record_dir, f"{METADATA_FILE} is not an object")
    if "releases" not in metadata:
        raise MalformedRecordError(record_dir, f"{METADATA_FILE} has no releases")

    introduced_at = None
    if vcs is not None:
        try:
            introduced_at = vcs.find_introducing_revision(metadata_path)
        except VersionControlError:
            introduced_at = None

    try:
        return ChangeRecord(
            id=record_dir.name,
            releases=metadata["releases"],
            summary=summary.strip(),
            introduced_at=introduced_at,
        )
    except ValidationError as exc:
        raise MalformedRecordError(record_dir, str(exc)) from exc


def load_pending(
    base: Path, vcs: VersionControl | None = None
) -> list[ChangeRecord]:
    """Load every pending change record under ``base``.

    Files directly under ``base`` (a README, config) are ignored. A single
    malformed record aborts the whole load.

    Args:
        base: The changeset directory.
        vcs: Used to find the revision that introduced each record.

    Returns:
        Records sorted by id.

    Raises:
        ConfigurationError: If ``base`` does not exist.
        MalformedRecordError: If any record directory is malformed.
    """
    if not base.is_dir():
        raise ConfigurationError(f"There is no pending-change directory at {base}")
    remove_empty_dirs(base)

    return [
        read_record(entry, vcs)
        for entry in sorted(base.iterdir())
        if entry.is_dir()
    ]


def clear_records(base: Path) -> list[Path]:
    """Remove every record directory under ``base``, keeping plain files.

    Returns:
        The directories removed.
    """
    removed: list[Path] = []
    for entry in sorted(base.iterdir()):
        if entry.is_dir():
            shutil.rmtree(entry)
            removed.append(entry)
    return removed
