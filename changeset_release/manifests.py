"""Apply a release plan to package manifests (pyproject.toml).

Every planned package gets its new [project].version, and every internal
dependency constraint on a planned package is retargeted at the new
version. Each manifest is written at most once, atomically.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, cast

import tomlkit.exceptions

from .deps import retarget_dep_list
from .errors import ManifestError
from .models import PackageInfo, ReleasePlan
from .toml import dependency_lists, load_pyproject, save_pyproject


def rewrite_manifest(
    pyproject_path: Path,
    new_version: str | None,
    released: dict[str, str],
) -> bool:
    """Update a manifest's version and internal dependency constraints.

    Uses tomlkit so formatting, comments and key order are preserved.

    Args:
        pyproject_path: Path to the pyproject.toml file.
        new_version: New version string, or None to leave the version alone.
        released: Map of package name → released version; matching
                  dependencies are retargeted.

    Returns:
        True if the file was written, False if nothing changed.
    """
    doc = load_pyproject(pyproject_path)
    changed = False

    if new_version is not None:
        # Cast needed because tomlkit types are complex unions
        project = cast(dict[str, Any], doc["project"])
        if project.get("version") != new_version:
            project["version"] = new_version
            changed = True

    if released:
        for group in dependency_lists(doc):
            changed = retarget_dep_list(group, released) or changed

    if changed:
        save_pyproject(pyproject_path, doc)
    return changed


def apply_plan(
    plan: ReleasePlan,
    packages: Mapping[str, PackageInfo],
    root: Path,
    on_write: Callable[[Path], None] | None = None,
) -> list[Path]:
    """Write the plan's versions into every affected manifest.

    Planned packages are written first, then the other packages that depend
    on a planned package. Nothing is rolled back on failure.

    Args:
        plan: The release plan.
        packages: All workspace packages.
        root: Workspace root; package paths are relative to it.
        on_write: Called with each manifest path right after it is written.

    Returns:
        Paths of the manifests written, in write order.

    Raises:
        ManifestError: If a manifest cannot be read, parsed or written. Its
            ``written`` attribute lists the files already written.
    """
    released = plan.versions()
    planned = sorted(plan.releases)
    dependents = sorted(
        name
        for name, info in packages.items()
        if name not in plan.releases and any(dep in released for dep in info.deps)
    )

    written: list[Path] = []
    for name in [*planned, *dependents]:
        info = packages[name]
        path = root / info.path / "pyproject.toml"
        entry = plan.releases.get(name)
        deps = {dep: released[dep] for dep in info.deps if dep in released}
        try:
            did_write = rewrite_manifest(
                path, entry.new_version if entry else None, deps
            )
        except (OSError, KeyError, tomlkit.exceptions.ParseError) as exc:
            raise ManifestError(path, str(exc), written) from exc
        if not did_write:
            continue
        written.append(path)
        if entry:
            print(f"  {name}: {entry.old_version} → {entry.new_version}")
        else:
            print(f"  {name}: updated dependency constraints")
        if on_write is not None:
            on_write(path)
    return written
