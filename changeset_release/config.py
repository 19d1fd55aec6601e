"""Run configuration.

Settings are merged from three sources, lowest precedence first:

1. built-in defaults
2. the ``[tool.changeset-release]`` table of ``<cwd>/pyproject.toml``
3. explicit options (CLI flags); ``None`` means "not given"
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit.exceptions
from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import ConfigurationError
from .toml import get_tool_table, load_pyproject

TOOL_NAME = "changeset-release"


class ReleaseConfig(BaseModel):
    """Resolved settings for one release run.

    Attributes:
        commit: Stage every change and create a release commit. When off,
                changes are left in the working tree for review.
        skip_ci: Append "[skip ci]" to the release commit message.
        no_changelog: Do not regenerate changelogs.
        changeset_dir: Directory of pending change records, relative to cwd.
        cwd: Workspace root; anchors all relative paths.
    """

    model_config = ConfigDict(extra="forbid")

    commit: bool = True
    skip_ci: bool = True
    no_changelog: bool = False
    changeset_dir: str = ".changeset"
    cwd: Path

    @property
    def changeset_base(self) -> Path:
        return self.cwd / self.changeset_dir


def _normalize_keys(table: dict[str, Any]) -> dict[str, Any]:
    return {key.replace("-", "_"): value for key, value in table.items()}


def resolve_config(options: dict[str, Any] | None = None) -> ReleaseConfig:
    """Merge defaults, pyproject settings and explicit options.

    Args:
        options: Explicit settings, usually from the CLI. Keys with a None
                 value are ignored.

    Raises:
        ConfigurationError: If pyproject.toml cannot be parsed or a setting
            is unknown or has an invalid value.
    """
    given = {k: v for k, v in (options or {}).items() if v is not None}
    cwd = Path(given.pop("cwd", None) or Path.cwd()).resolve()

    file_settings: dict[str, Any] = {}
    pyproject = cwd / "pyproject.toml"
    if pyproject.exists():
        try:
            doc = load_pyproject(pyproject)
        except tomlkit.exceptions.ParseError as exc:
            raise ConfigurationError(f"Invalid {pyproject}: {exc}") from exc
        file_settings = _normalize_keys(get_tool_table(doc, TOOL_NAME))
        file_settings.pop("cwd", None)

    try:
        return ReleaseConfig(**{**file_settings, **given, "cwd": cwd})
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
