"""Dependency handling utilities.

Provides functions for parsing PEP 508 dependency strings and retargeting
the version constraints of internal workspace dependencies at a newly
released version, keeping the constraint style the author chose.
"""

from __future__ import annotations

import re
from typing import Any

from packaging.requirements import Requirement
from packaging.specifiers import Specifier
from packaging.utils import canonicalize_name
from packaging.version import Version

# Operators that anchor a requirement at a version and follow it on release
_ANCHORS = {"==", ">=", "~=", "==="}

# Name and optional extras at the start of a PEP 508 string
_HEAD = re.compile(r"\s*[A-Za-z0-9][A-Za-z0-9._-]*\s*(\[[^\]]*\])?\s*")


def dep_canonical_name(dep_str: str) -> str:
    """Extract the canonical package name from a PEP 508 dependency string.

    Handles version specifiers, extras, and normalizes the name per PEP 503
    (lowercase, hyphens instead of underscores).

    Examples:
        "requests>=2.0" → "requests"
        "My_Package[extra]~=1.0" → "my-package"
    """
    return canonicalize_name(Requirement(dep_str).name)


def dep_specifier(dep_str: str) -> str:
    """Return the version specifier of a dependency string ("" if none)."""
    return str(Requirement(dep_str).specifier)


def _split_requirement(dep_str: str) -> tuple[str, str, str]:
    """Split a dependency string into (head, specifiers, tail) text.

    ``head`` is the name with its extras, ``tail`` the marker part with its
    leading whitespace. Both are returned exactly as written.
    """
    body, sep, marker = dep_str.partition(";")
    match = _HEAD.match(body)
    head = body[: match.end()] if match else ""
    stripped = body.rstrip()
    return head, stripped[len(head) :], body[len(stripped) :] + sep + marker


def _anchor(operator: str, operand: str, version: str) -> str:
    """Re-anchor one specifier at ``version``, keeping the operand's precision."""
    if operator == "~=" or operand.endswith(".*"):
        width = len(Version(operand.removesuffix(".*")).release)
        release = list(Version(version).release[:width])
        release += [0] * (width - len(release))
        new = ".".join(str(part) for part in release)
        return f"{operator}{new}.*" if operand.endswith(".*") else f"{operator}{new}"
    return f"{operator}{version}"


def retarget_dep(dep_str: str, version: str) -> str:
    """Point a dependency's version constraint at a newly released version.

    The requirement's name spelling, extras, environment markers and the
    order of its specifiers are kept as written. Each specifier is handled
    by operator:

    - ``==``, ``>=``, ``===``: same operator, new version
    - ``~=`` and ``==X.*``: same operator, new version cut to the number of
      release segments the old operand had
    - ``>``: becomes ``>=`` so the new version itself is allowed
    - ``<``, ``<=``, ``!=``: kept unless the new version violates them

    Requirements without a specifier, or with a direct URL, are returned
    unchanged.

    Examples:
        retarget_dep("pkg>=1.0", "1.3.0") → "pkg>=1.3.0"
        retarget_dep("pkg[x]~=1.2,<2", "1.3.0") → "pkg[x]~=1.3,<2"
        retarget_dep("pkg>=1.0,<2", "2.0.0") → "pkg>=2.0.0"
        retarget_dep("pkg", "2.0.0") → "pkg"
    """
    req = Requirement(dep_str)
    if req.url or not req.specifier:
        return dep_str

    head, spec_text, tail = _split_requirement(dep_str)
    spec_text = spec_text.strip()
    parens = spec_text.startswith("(") and spec_text.endswith(")")
    if parens:
        spec_text = spec_text[1:-1]

    new = Version(version)
    specs: list[str] = []
    for part in spec_text.split(","):
        spec = Specifier(part.strip())
        if spec.operator in _ANCHORS:
            specs.append(_anchor(spec.operator, spec.version, version))
        elif spec.operator == ">":
            specs.append(f">={version}")
        elif spec.contains(new, prereleases=True):
            specs.append(part.strip())

    joined = (", " if ", " in spec_text else ",").join(specs)
    if parens:
        joined = f"({joined})"
    return f"{head}{joined}{tail}"


def retarget_dep_list(deps: list[Any], versions: dict[str, str]) -> bool:
    """Retarget internal dependencies in a list, modifying in place.

    Iterates through a list of PEP 508 dependency strings and rewrites any
    that match a released package. Non-string entries (include-group
    tables) are left alone.

    Args:
        deps: List of dependency strings (modified in place).
        versions: Map of canonical package name → released version.

    Returns:
        True if any entry changed.
    """
    changed = False
    for i, dep_str in enumerate(deps):
        if not isinstance(dep_str, str):
            continue
        name = dep_canonical_name(str(dep_str))
        if name not in versions:
            continue
        new_dep = retarget_dep(str(dep_str), versions[name])
        if new_dep != str(dep_str):
            deps[i] = new_dep
            changed = True
    return changed
