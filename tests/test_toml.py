"""Tests for changeset_release.toml."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest
import tomlkit

from changeset_release.errors import ConfigurationError
from changeset_release.toml import (
    atomic_write_text,
    get_all_dependency_strings,
    get_project_name,
    get_project_version,
    get_tool_table,
    get_workspace_member_globs,
    load_pyproject,
    save_pyproject,
)


class TestLoadSavePyproject:
    def test_load(self, tmp_pyproject: Path) -> None:
        doc = load_pyproject(tmp_pyproject)
        assert get_project_name(doc, "") == "test-package"

    def test_save_preserves_content(self, tmp_pyproject: Path) -> None:
        original = tmp_pyproject.read_text()
        doc = load_pyproject(tmp_pyproject)
        doc["project"]["version"] = "9.9.9"  # type: ignore[index]
        save_pyproject(tmp_pyproject, doc)

        assert tmp_pyproject.read_text() == original.replace(
            'version = "1.0.0"', 'version = "9.9.9"'
        )

    def test_atomic_write_leaves_no_temp_files(self, tmp_path: Path) -> None:
        target = tmp_path / "file.txt"
        atomic_write_text(target, "hello\n")
        assert target.read_text() == "hello\n"
        assert [p.name for p in tmp_path.iterdir()] == ["file.txt"]

    def test_atomic_write_keeps_old_content_on_failure(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        target = tmp_path / "file.txt"
        target.write_text("old\n")

        def boom(src: str, dst: str) -> None:
            raise OSError("disk full")

        monkeypatch.setattr("changeset_release.toml.os.replace", boom)
        with pytest.raises(OSError, match="disk full"):
            atomic_write_text(target, "new\n")
        assert target.read_text() == "old\n"
        assert [p.name for p in tmp_path.iterdir()] == ["file.txt"]

    @pytest.mark.parametrize("mode", [0o644, 0o755, 0o664])
    def test_atomic_write_keeps_existing_mode(self, tmp_path: Path, mode: int) -> None:
        target = tmp_path / "pyproject.toml"
        target.write_text("old\n")
        target.chmod(mode)

        atomic_write_text(target, "new\n")

        assert stat.S_IMODE(target.stat().st_mode) == mode

    def test_atomic_write_new_file_follows_umask(self, tmp_path: Path) -> None:
        old_umask = os.umask(0o022)
        try:
            atomic_write_text(tmp_path / "CHANGELOG.md", "# pkg\n")
        finally:
            os.umask(old_umask)

        assert stat.S_IMODE((tmp_path / "CHANGELOG.md").stat().st_mode) == 0o644


class TestGetProjectName:
    def test_returns_name(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        assert get_project_name(sample_toml_doc, "fallback") == "my-package"

    def test_normalizes_name(self) -> None:
        doc = tomlkit.parse('[project]\nname = "My_Package"')
        assert get_project_name(doc, "fallback") == "my-package"

    def test_returns_fallback_when_no_project(self) -> None:
        doc = tomlkit.parse("")
        assert get_project_name(doc, "fallback") == "fallback"


class TestGetProjectVersion:
    def test_returns_version(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        assert get_project_version(sample_toml_doc) == "2.0.0"

    def test_returns_default_when_missing(self) -> None:
        doc = tomlkit.parse("[project]")
        assert get_project_version(doc) == "0.0.0"


class TestGetAllDependencyStrings:
    def test_gets_every_location(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        deps = get_all_dependency_strings(sample_toml_doc)
        assert deps == [
            "click>=8.0",
            "pydantic>=2.0",
            "pytest>=8.0",
            "sphinx>=7.0",
            "hypothesis>=6.0",
        ]

    def test_skips_include_group_tables(self, tmp_pyproject: Path) -> None:
        deps = get_all_dependency_strings(load_pyproject(tmp_pyproject))
        assert "group-internal==0.1" in deps
        assert all(isinstance(d, str) for d in deps)

    def test_empty_when_no_deps(self) -> None:
        doc = tomlkit.parse("[project]\nname = 'foo'")
        assert get_all_dependency_strings(doc) == []


class TestGetWorkspaceMemberGlobs:
    def test_returns_members(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        assert get_workspace_member_globs(sample_toml_doc) == ["packages/*", "libs/*"]

    def test_missing_members_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="workspace"):
            get_workspace_member_globs(tomlkit.parse("[project]"))


class TestGetToolTable:
    def test_returns_plain_dict(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        table = get_tool_table(sample_toml_doc, "changeset-release")
        assert table == {"commit": False, "skip-ci": False}
        assert type(table) is dict

    def test_missing_table(self, sample_toml_doc: tomlkit.TOMLDocument) -> None:
        assert get_tool_table(sample_toml_doc, "nothing") == {}
