"""Version parsing and bumping utilities.

Handles conversion between version strings and semver objects, with
special handling for incomplete version strings (e.g., "1.0" → "1.0.0").
"""

from __future__ import annotations

import semver

from .errors import InvalidVersionError
from .models import Severity


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Handles incomplete versions by padding with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "1.2.3" → "1.2.3"

    Only the first 3 components are used (major.minor.patch).
    Prerelease/build metadata is not supported.
    """
    parts = version_str.split(".")
    # Pad with zeros to ensure we have at least 3 parts
    while len(parts) < 3:
        parts.append("0")
    return semver.Version.parse(".".join(parts[:3]))


def bump_version(
    version_str: str, severity: Severity, *, package: str | None = None
) -> str:
    """Apply a semantic-versioning bump and return the new version string.

    Examples:
        bump_version("1.2.3", "patch") → "1.2.4"
        bump_version("1.2.3", "minor") → "1.3.0"
        bump_version("1.2.3", "major") → "2.0.0"
        bump_version("1.2", "patch") → "1.2.1"

    Raises:
        InvalidVersionError: If the version is not plain major.minor.patch
            (e.g. "1.2.0rc1"). ``package`` is named in the message.
    """
    try:
        version = parse_version(version_str)
    except ValueError as exc:
        raise InvalidVersionError(package, version_str, str(exc)) from exc
    if severity == "major":
        return str(version.bump_major())
    if severity == "minor":
        return str(version.bump_minor())
    if severity == "patch":
        return str(version.bump_patch())
    raise ValueError(f"Unknown bump severity: {severity!r}")

