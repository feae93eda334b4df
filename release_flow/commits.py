"""Conventional commit parsing and version-bump classification.

Matches messages such as:
- ``feat: my message``
- ``feat(subject): my message``
- ``feat!: breaking change``
- ``feat(subject)!: breaking subject``
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from .models import ConventionalCommit, VersionType

CONVENTIONAL_COMMIT_EXPRESSION = re.compile(
    r"^\s*((?P<type>\w+)(\((?P<scope>[^)]+)\))?(?P<annotation>!?):\s*)"
    r"(?P<message>[\s\S]+?)\s*$"
)
BREAKING_CHANGE_EXPRESSION = re.compile(r"^BREAKING CHANGE:", re.MULTILINE)

# Bump applied to commits whose type has no explicit rule, including
# messages that do not follow the grammar at all.
UNKNOWN_TYPE_VERSION_TYPE = VersionType.PATCH

_VERSION_TYPES = list(VersionType)


class InvalidVersionTypeError(ValueError):
    """Raised when an integer does not name a VersionType rank."""

    def __init__(self, rank: int) -> None:
        self.rank = rank
        super().__init__(f"Invalid version type number: {rank}")


def parse_conventional_commit(commit_message: str) -> ConventionalCommit:
    """Parse a raw commit message into a ConventionalCommit.

    Messages that do not match the grammar are not an error: they yield a
    record with no type or scope whose message is the whole (trimmed) input.
    """
    match = CONVENTIONAL_COMMIT_EXPRESSION.match(commit_message)
    if not match:
        return ConventionalCommit(message=commit_message.strip())

    return ConventionalCommit(
        type=match.group("type").lower(),
        scope=match.group("scope"),
        breaking_change=match.group("annotation") == "!"
        or BREAKING_CHANGE_EXPRESSION.search(commit_message) is not None,
        message=match.group("message"),
    )


def get_version_type(
    commit: ConventionalCommit,
    *,
    unknown: VersionType = UNKNOWN_TYPE_VERSION_TYPE,
) -> VersionType:
    """Map a parsed commit to the version bump it implies.

    Breaking changes always win; otherwise feat → minor, fix → patch,
    docs/chore → none, and anything else gets ``unknown``.
    """
    if commit.breaking_change:
        return VersionType.MAJOR
    if commit.type == "feat":
        return VersionType.MINOR
    if commit.type == "fix":
        return VersionType.PATCH
    if commit.type in ("docs", "chore"):
        return VersionType.NONE
    return unknown


def version_type_rank(version_type: VersionType) -> int:
    return _VERSION_TYPES.index(version_type)


def version_type_from_rank(rank: int) -> VersionType:
    """Convert a rank (0-3) back into a VersionType.

    Raises:
        InvalidVersionTypeError: If rank is outside 0..3.
    """
    if not 0 <= rank < len(_VERSION_TYPES):
        raise InvalidVersionTypeError(rank)
    return _VERSION_TYPES[rank]


def aggregate_version_type(
    commits: Iterable[ConventionalCommit],
    *,
    unknown: VersionType = UNKNOWN_TYPE_VERSION_TYPE,
) -> VersionType:
    """Reduce many commits to the single most severe bump.

    The result is independent of commit order and never additive: ten
    fixes are still a patch. No commits means no bump.
    """
    rank = 0
    for commit in commits:
        rank = max(rank, version_type_rank(get_version_type(commit, unknown=unknown)))
    return version_type_from_rank(rank)
