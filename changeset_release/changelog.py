"""Changelog generation.

Prepends a section per released version to each package's CHANGELOG.md:

    # pkg-a

    ## 1.3.0

    ### Minor Changes

    - 1a2b3c4: Add the frobnicate option

    ### Patch Changes

    - Updated dependencies [pkg-b]
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path

from .errors import ManifestError
from .models import ChangeRecord, PackageInfo, ReleaseEntry, ReleasePlan
from .toml import atomic_write_text

CHANGELOG_FILE = "CHANGELOG.md"

_HEADINGS = (
    ("major", "Major Changes"),
    ("minor", "Minor Changes"),
    ("patch", "Patch Changes"),
)


def _bullet(record: ChangeRecord) -> str:
    lines = record.summary.splitlines() or [""]
    first = f"{record.introduced_at}: {lines[0]}" if record.introduced_at else lines[0]
    rest = [f"  {line}" if line else "" for line in lines[1:]]
    return "\n".join([f"- {first}", *rest])


def render_entry(entry: ReleaseEntry, records: Iterable[ChangeRecord]) -> str:
    """Render the changelog section for one released version."""
    by_type: dict[str, list[str]] = {}
    for record in records:
        for spec in record.releases:
            if spec.name == entry.name:
                by_type.setdefault(spec.type, []).append(_bullet(record))
    if entry.dependencies:
        by_type.setdefault("patch", []).append(
            f"- Updated dependencies [{', '.join(entry.dependencies)}]"
        )

    parts = [f"## {entry.new_version}"]
    for severity, heading in _HEADINGS:
        if severity in by_type:
            parts.append(f"### {heading}")
            parts.append("\n".join(by_type[severity]))
    return "\n\n".join(parts) + "\n"


def prepend_section(existing: str, package: str, section: str) -> str:
    """Insert ``section`` below the changelog's title, creating one if needed."""
    if existing.startswith("# "):
        title, _, body = existing.partition("\n")
        body = body.lstrip("\n")
    else:
        title, body = f"# {package}", existing
    text = f"{title}\n\n{section}"
    if body:
        text += f"\n{body}"
    return text if text.endswith("\n") else text + "\n"


def update_changelogs(
    plan: ReleasePlan,
    records: Iterable[ChangeRecord],
    packages: Mapping[str, PackageInfo],
    root: Path,
) -> list[Path]:
    """Write a new section into the changelog of every released package.

    Returns:
        Paths of the changelogs written.

    Raises:
        ManifestError: If a changelog cannot be read or written.
    """
    records = list(records)
    written: list[Path] = []
    for name, entry in sorted(plan.releases.items()):
        path = root / packages[name].path / CHANGELOG_FILE
        section = render_entry(entry, records)
        try:
            existing = path.read_text(encoding="utf-8") if path.exists() else ""
            atomic_write_text(path, prepend_section(existing, name, section))
        except OSError as exc:
            raise ManifestError(path, str(exc), written) from exc
        written.append(path)
        print(f"  {path.relative_to(root)}")
    return written
