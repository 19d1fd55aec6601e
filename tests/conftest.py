"""Shared test fixtures."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import tomlkit

from changeset_release.errors import VersionControlError


class FakeVCS:
    """In-memory VersionControl that records every call."""

    def __init__(self, revisions: dict[str, str] | None = None) -> None:
        self.revisions = revisions or {}
        self.calls: list[tuple[str, str]] = []
        self.fail_on: set[str] = set()

    def stage(self, path: Path) -> None:
        self.calls.append(("stage", str(path)))
        if "stage" in self.fail_on:
            raise VersionControlError(["add", "--", str(path)], "index.lock exists")

    def commit(self, message: str) -> None:
        self.calls.append(("commit", message))
        if "commit" in self.fail_on:
            raise VersionControlError(["commit", "-m", message], "nothing to commit")

    def find_introducing_revision(self, path: Path) -> str | None:
        self.calls.append(("find", str(path)))
        return self.revisions.get(path.parent.name)

    @property
    def staged(self) -> list[str]:
        return [arg for op, arg in self.calls if op == "stage"]

    @property
    def commits(self) -> list[str]:
        return [arg for op, arg in self.calls if op == "commit"]


def write_changeset(
    base: Path, record_id: str, releases: list[tuple[str, str]], summary: str
) -> Path:
    """Create a change record directory under ``base``."""
    record_dir = base / record_id
    record_dir.mkdir(parents=True)
    (record_dir / "changes.json").write_text(
        json.dumps({"releases": [{"name": n, "type": t} for n, t in releases]})
    )
    (record_dir / "changes.md").write_text(summary + "\n")
    return record_dir


def write_package(
    root: Path, name: str, version: str, deps: list[str] | None = None
) -> Path:
    """Create packages/<name>/pyproject.toml."""
    pkg_dir = root / "packages" / name
    pkg_dir.mkdir(parents=True)
    dep_lines = "".join(f'    "{d}",\n' for d in deps or [])
    (pkg_dir / "pyproject.toml").write_text(
        f"""\
[project]
name = "{name}"
version = "{version}"
description = "The {name} package"  # keep me
dependencies = [
{dep_lines}]

[tool.hatch.build]
only-packages = true
"""
    )
    return pkg_dir / "pyproject.toml"


@pytest.fixture
def fake_vcs() -> FakeVCS:
    return FakeVCS()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A uv workspace: pkg-a depends on pkg-b, pkg-c is independent.

    pkg-a 0.5.0 → pkg-b>=1.2.0
    pkg-b 1.2.0
    pkg-c 2.0.0
    """
    (tmp_path / "pyproject.toml").write_text(
        '[tool.uv.workspace]\nmembers = ["packages/*"]\n'
    )
    write_package(tmp_path, "pkg-a", "0.5.0", ["requests>=2.0", "pkg-b>=1.2.0"])
    write_package(tmp_path, "pkg-b", "1.2.0")
    write_package(tmp_path, "pkg-c", "2.0.0")
    (tmp_path / ".changeset").mkdir()
    (tmp_path / ".changeset" / "README.md").write_text("Pending changesets\n")
    return tmp_path


@pytest.fixture
def tmp_pyproject(tmp_path: Path) -> Path:
    """Create a temporary pyproject.toml file."""
    content = """\
[project]
name = "test-package"
version = "1.0.0"
dependencies = [
    "requests>=2.0",
    "internal-dep>=1.0",
]

[project.optional-dependencies]
dev = ["pytest>=8.0", "another-internal~=0.5"]

[dependency-groups]
test = ["pytest>=8.0", "group-internal==0.1", {include-group = "dev"}]
"""
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text(content)
    return pyproject


@pytest.fixture
def sample_toml_doc() -> tomlkit.TOMLDocument:
    """Create a sample TOML document."""
    content = """\
[project]
name = "my-package"
version = "2.0.0"
dependencies = ["click>=8.0", "pydantic>=2.0"]

[project.optional-dependencies]
dev = ["pytest>=8.0"]
docs = ["sphinx>=7.0"]

[dependency-groups]
test = ["hypothesis>=6.0"]

[tool.uv.workspace]
members = ["packages/*", "libs/*"]

[tool.changeset-release]
commit = false
skip-ci = false
"""
    return tomlkit.parse(content)
