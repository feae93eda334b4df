"""Version parsing and bumping utilities.

Handles conversion between version strings and semver objects, with
special handling for incomplete version strings (e.g., "1.0" → "1.0.0")
and loosely formatted release tags (e.g., "v5.0.4").
"""

from __future__ import annotations

import re

import semver
from packaging.version import InvalidVersion, Version

from .models import VersionType

_COERCE_EXPRESSION = re.compile(r"(\d+)(?:\.(\d+))?(?:\.(\d+))?")


class InvalidVersionError(ValueError):
    """Raised when a manifest version cannot be read as a version."""

    def __init__(self, version_str: str) -> None:
        self.version_str = version_str
        super().__init__(f"{version_str!r} is not a valid version")


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Handles incomplete versions by padding with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "1.2.3" → "1.2.3"

    Any PEP 440 version is accepted. Only the release part is kept, so
    pre-release, dev, post and local segments are dropped:
    - "0.4.0rc1" → "0.4.0"
    - "1.0.0-rc.1" → "1.0.0"

    Raises:
        InvalidVersionError: If version_str is not a version at all.
    """
    try:
        release = Version(version_str).release
    except InvalidVersion:
        raise InvalidVersionError(version_str) from None
    parts = list(release[:3])
    while len(parts) < 3:
        parts.append(0)
    return semver.Version(*parts)


def coerce_version(text: str) -> semver.Version | None:
    """Extract the first version-looking number run from arbitrary text.

    Examples:
        "v5.0.4" → 5.0.4
        "release-2.1" → 2.1.0
        "nightly" → None
    """
    match = _COERCE_EXPRESSION.search(text)
    if not match:
        return None
    major, minor, patch = (int(part or 0) for part in match.groups())
    return semver.Version(major, minor, patch)


def bump_version(version_str: str, version_type: VersionType) -> str:
    """Increment a version by the given bump category.

    Examples:
        ("1.2.3", MINOR) → "1.3.0"
        ("1.0", PATCH) → "1.0.1"
        ("2.4.1", NONE) → "2.4.1"
    """
    if version_type is VersionType.NONE:
        return version_str
    return str(parse_version(version_str).next_version(part=version_type.value))
