"""TOML reading and writing utilities.

Uses tomlkit to preserve formatting and comments when modifying pyproject.toml
files. This is important for maintaining readable, diff-friendly files.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

import tomlkit
from packaging.utils import canonicalize_name

from .errors import ConfigurationError


def load_pyproject(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a pyproject.toml file.

    Returns a TOMLDocument that preserves formatting when modified and saved.
    """
    return tomlkit.parse(path.read_text())


def save_pyproject(path: Path, doc: tomlkit.TOMLDocument) -> None:
    """Save a TOMLDocument back to disk, preserving original formatting."""
    atomic_write_text(path, tomlkit.dumps(doc))


def atomic_write_text(path: Path, content: str) -> None:
    """Write text to path atomically using temp file + replace.

    Either the new content lands completely or the file keeps its previous
    content. An existing file keeps its permission bits; a new file gets the
    usual umask-derived mode rather than the temp file's 0600.
    """
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        if path.exists():
            shutil.copymode(path, tmp_path)
        else:
            os.chmod(tmp_path, 0o666 & ~_current_umask())
        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def get_project_name(doc: tomlkit.TOMLDocument, fallback: str) -> str:
    """Extract the canonical package name from [project].name.

    Names are normalized per PEP 503 (lowercase, hyphens instead of
    underscores) for consistent comparison.

    Args:
        doc: Parsed pyproject.toml document.
        fallback: Value to return if name is not specified.
    """
    return canonicalize_name(doc.get("project", {}).get("name", fallback))


def get_project_version(doc: tomlkit.TOMLDocument) -> str:
    """Extract version from [project].version, defaulting to '0.0.0'."""
    return str(doc.get("project", {}).get("version", "0.0.0"))


def dependency_lists(doc: tomlkit.TOMLDocument) -> list[list[Any]]:
    """Return every dependency array of a pyproject.toml, unmodified.

    Gathers arrays from three locations:
    - [project].dependencies (main runtime deps)
    - [project].optional-dependencies.* (extras like [dev], [test])
    - [dependency-groups].* (PEP 735 dependency groups)

    The returned lists are the document's own arrays, so editing them in
    place edits the document.
    """
    lists: list[list[Any]] = []
    project = doc.get("project", {})
    deps = project.get("dependencies")
    if isinstance(deps, list):
        lists.append(deps)
    for group in project.get("optional-dependencies", {}).values():
        if isinstance(group, list):
            lists.append(group)
    for group in doc.get("dependency-groups", {}).values():
        if isinstance(group, list):
            lists.append(group)
    return lists


def get_all_dependency_strings(doc: tomlkit.TOMLDocument) -> list[str]:
    """Collect all dependency strings from a pyproject.toml.

    Returns raw PEP 508 strings like "requests>=2.0" or "pkg[extra]~=1.0".
    Table entries in dependency groups (``{include-group = ...}``) are skipped.
    """
    return [
        str(dep)
        for group in dependency_lists(doc)
        for dep in group
        if isinstance(dep, str)
    ]


def get_workspace_member_globs(doc: tomlkit.TOMLDocument) -> list[str]:
    """Extract workspace member glob patterns from [tool.uv.workspace].

    These patterns (e.g., "packages/*", "libs/*") define which directories
    contain workspace packages.

    Raises:
        ConfigurationError: If no workspace members are defined.
    """
    members = doc.get("tool", {}).get("uv", {}).get("workspace", {}).get("members")
    if not members:
        raise ConfigurationError(
            "No [tool.uv.workspace] members defined in root pyproject.toml"
        )
    return [str(m) for m in members]


def get_tool_table(doc: tomlkit.TOMLDocument, name: str) -> dict[str, Any]:
    """Return [tool.<name>] as a plain dict, or {} when absent."""
    table = doc.get("tool", {}).get(name, {})
    return dict(table.unwrap()) if hasattr(table, "unwrap") else dict(table)
