"""Workspace package discovery.

Reads [tool.uv.workspace].members from the root pyproject.toml to find
package directories, then extracts name, version, and internal dependency
constraints from each package's pyproject.toml.
"""

from __future__ import annotations

import glob
from pathlib import Path

import tomlkit
import tomlkit.exceptions
from packaging.requirements import InvalidRequirement

from .deps import dep_canonical_name, dep_specifier
from .errors import ConfigurationError
from .models import PackageInfo
from .shell import step
from .toml import (
    get_all_dependency_strings,
    get_project_name,
    get_project_version,
    get_workspace_member_globs,
    load_pyproject,
)


def _load(path: Path) -> tomlkit.TOMLDocument:
    try:
        return load_pyproject(path)
    except tomlkit.exceptions.ParseError as exc:
        raise ConfigurationError(f"Invalid {path}: {exc}") from exc


def discover_packages(root: Path) -> dict[str, PackageInfo]:
    """Scan the workspace and discover all packages.

    Args:
        root: Workspace root holding the root pyproject.toml.

    Returns:
        Map of package name to PackageInfo.

    Raises:
        ConfigurationError: If the root pyproject.toml is missing, a
            pyproject.toml cannot be parsed, a dependency string is invalid,
            or no member directory holds a pyproject.toml.
    """
    step("Discovering workspace packages")

    root_pyproject = root / "pyproject.toml"
    if not root_pyproject.exists():
        raise ConfigurationError(f"No pyproject.toml found in {root}")
    member_globs = get_workspace_member_globs(_load(root_pyproject))

    # Expand globs to find all package directories
    member_dirs: list[Path] = []
    for pattern in member_globs:
        for match in sorted(glob.glob(str(root / pattern))):
            p = Path(match)
            if (p / "pyproject.toml").exists():
                member_dirs.append(p)

    if not member_dirs:
        raise ConfigurationError("No packages found matching workspace members")

    # First pass: collect basic info from each package
    packages: dict[str, PackageInfo] = {}
    raw_deps: dict[str, list[str]] = {}

    for d in member_dirs:
        doc = _load(d / "pyproject.toml")
        name = get_project_name(doc, d.name)
        packages[name] = PackageInfo(
            name=name,
            path=str(d.relative_to(root)),
            version=get_project_version(doc),
        )
        raw_deps[name] = get_all_dependency_strings(doc)

    # Second pass: identify which deps are internal (within workspace).
    # The first declaration of a dependency wins.
    for name, deps in raw_deps.items():
        for dep_str in deps:
            try:
                dep_name = dep_canonical_name(dep_str)
            except InvalidRequirement as exc:
                raise ConfigurationError(
                    f"Invalid dependency {dep_str!r} in {name}: {exc}"
                ) from exc
            if dep_name == name or dep_name not in packages:
                continue
            if dep_name not in packages[name].deps:
                packages[name].deps[dep_name] = dep_specifier(dep_str)

    # Print discovered packages for user feedback
    for name, info in packages.items():
        deps = f" → [{', '.join(info.deps)}]" if info.deps else ""
        print(f"  {name} {info.version} ({info.path}){deps}")

    return packages
