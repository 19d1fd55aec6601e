"""Release planning: change records → one version per package.

Planning is pure: it reads records and package metadata and returns a
ReleasePlan without touching the filesystem or git.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from .errors import UnknownPackageError
from .models import (
    CASCADE,
    ChangeRecord,
    PackageInfo,
    ReleaseEntry,
    ReleasePlan,
    Severity,
    max_severity,
)
from .versions import bump_version


def plan_release(
    records: Iterable[ChangeRecord], packages: Mapping[str, PackageInfo]
) -> ReleasePlan:
    """Aggregate change records into a release plan.

    When several records name the same package, the highest severity wins
    (major > minor > patch) and the package is bumped exactly once, so the
    result does not depend on record order. Dependents of released packages
    then receive patch bumps (see apply_cascade).

    Args:
        records: Pending change records.
        packages: Map of package name → PackageInfo for the whole workspace.

    Returns:
        The plan. Empty if there are no records.

    Raises:
        UnknownPackageError: If a record names a package not in ``packages``.
    """
    severities: dict[str, Severity] = {}
    record_ids: dict[str, list[str]] = {}
    unknown: dict[str, list[str]] = {}

    for record in records:
        for spec in record.releases:
            if spec.name not in packages:
                unknown.setdefault(spec.name, []).append(record.id)
                continue
            current = severities.get(spec.name)
            severities[spec.name] = (
                spec.type if current is None else max_severity(current, spec.type)
            )
            record_ids.setdefault(spec.name, []).append(record.id)

    if unknown:
        raise UnknownPackageError({n: sorted(ids) for n, ids in unknown.items()})

    plan = ReleasePlan()
    for name in sorted(severities):
        info = packages[name]
        plan.releases[name] = ReleaseEntry(
            name=name,
            old_version=info.version,
            new_version=bump_version(
                info.version, severities[name], package=name
            ),
            type=severities[name],
            record_ids=sorted(record_ids[name]),
        )

    apply_cascade(plan, packages)
    return plan


def apply_cascade(plan: ReleasePlan, packages: Mapping[str, PackageInfo]) -> int:
    """Give every dependent of a released package at least a patch bump.

    Runs passes over all packages until a pass adds nothing. Each pass
    either adds an entry or ends the loop, and there are finitely many
    packages, so this terminates. Packages already in the plan keep their
    severity, since patch is the lowest. Running it again on its own
    output adds nothing.

    Also refreshes every entry's ``dependencies`` list.

    Returns:
        Number of cascade entries added.
    """
    added = 0
    while True:
        new_entries: list[ReleaseEntry] = []
        for name in sorted(packages):
            if name in plan.releases:
                continue
            info = packages[name]
            if any(dep in plan.releases for dep in info.deps):
                new_entries.append(
                    ReleaseEntry(
                        name=name,
                        old_version=info.version,
                        new_version=bump_version(
                            info.version, "patch", package=name
                        ),
                        type="patch",
                        record_ids=[CASCADE],
                    )
                )
        if not new_entries:
            break
        for entry in new_entries:
            plan.releases[entry.name] = entry
        added += len(new_entries)

    for name, entry in plan.releases.items():
        deps = packages[name].deps if name in packages else {}
        entry.dependencies = sorted(d for d in deps if d in plan.releases)
    return added
