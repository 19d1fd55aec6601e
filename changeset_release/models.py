"""Data models for changeset-release.

These Pydantic models represent the core data structures used throughout
the release engine: workspace packages, pending change records and the
release plan computed from them.
"""

from __future__ import annotations

from typing import Literal

from packaging.utils import canonicalize_name
from pydantic import BaseModel, ConfigDict, Field, field_validator

Severity = Literal["patch", "minor", "major"]

SEVERITY_RANK: dict[str, int] = {"patch": 0, "minor": 1, "major": 2}

# Record id used for entries added by the dependency cascade
CASCADE = "cascade"


def max_severity(*severities: Severity) -> Severity:
    """Return the highest of the given severities (major > minor > patch)."""
    return max(severities, key=SEVERITY_RANK.__getitem__)


class PackageInfo(BaseModel):
    """Metadata for a single package in the monorepo workspace.

    Attributes:
        name: Canonical (PEP 503) package name.
        path: Relative path from workspace root to the package directory.
        version: Current version string from pyproject.toml.
        deps: Map of internal (workspace) dependency name → declared version
              specifier ("" when unconstrained). External deps are not
              tracked since only internal constraints get rewritten.
    """

    name: str
    path: str
    version: str
    deps: dict[str, str] = Field(default_factory=dict)


class ReleaseSpec(BaseModel):
    """A single package/severity pair inside a change record."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: Severity

    @field_validator("name")
    @classmethod
    def _canonical(cls, value: str) -> str:
        return canonicalize_name(value)


class ChangeRecord(BaseModel):
    """A pending unit of release intent read from the changeset directory.

    Attributes:
        id: Name of the record's directory.
        releases: Packages to release and how severely to bump each.
        summary: Human-written description, copied into changelogs.
        introduced_at: Short git revision that added the record, if committed.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    releases: tuple[ReleaseSpec, ...]
    summary: str = ""
    introduced_at: str | None = None

    @field_validator("releases")
    @classmethod
    def _unique_packages(
        cls, value: tuple[ReleaseSpec, ...]
    ) -> tuple[ReleaseSpec, ...]:
        names = [r.name for r in value]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate packages: {', '.join(duplicates)}")
        return value


class ReleaseEntry(BaseModel):
    """The planned release of one package.

    Attributes:
        name: Package name.
        old_version: Version before the release.
        new_version: Version after the release.
        type: Effective bump severity.
        record_ids: Ids of the change records that requested this release,
                    or [CASCADE] for dependency-only bumps.
        dependencies: Planned workspace dependencies of this package.
    """

    name: str
    old_version: str
    new_version: str
    type: Severity
    record_ids: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)

    @property
    def is_cascade(self) -> bool:
        return self.record_ids == [CASCADE]


class ReleasePlan(BaseModel):
    """All package releases computed for one run."""

    releases: dict[str, ReleaseEntry] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.releases

    def versions(self) -> dict[str, str]:
        """Map of package name → new version."""
        return {name: e.new_version for name, e in self.releases.items()}

    def direct(self) -> list[ReleaseEntry]:
        return [e for _, e in sorted(self.releases.items()) if not e.is_cascade]

    def cascaded(self) -> list[ReleaseEntry]:
        return [e for _, e in sorted(self.releases.items()) if e.is_cascade]
