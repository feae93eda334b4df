"""Changelog rendering and CHANGELOG.md maintenance.

Commits are grouped into fixed Markdown sections (Features, Bug Fixes, ...)
independent of their bump category. New releases are prepended to the
project's CHANGELOG.md below a fixed header so history is preserved.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import Literal, Union

from pydantic import BaseModel

from .models import ConventionalCommit
from .shell import warn

CHANGELOG_HEADER = "# Changelog\n\n"
BREAKING_CHANGE_MARKER = "**BREAKING CHANGE**"

# (order, title) per section key
SECTIONS: dict[str, tuple[int, str]] = {
    "feat": (0, "Features"),
    "fix": (1, "Bug Fixes"),
    "perf": (2, "Performance Improvements"),
    "refactor": (3, "Code Refactoring"),
    "docs": (4, "Documentation"),
    "test": (5, "Tests"),
    "misc": (6, "Miscellaneous"),
}

UnrecognizedPolicy = Literal["discard", "append"]


def get_changelog_section(commit_type: str | None) -> str:
    """Map a commit type to its section key; unknown types are ``misc``."""
    if commit_type == "tests":
        return "test"
    if commit_type in SECTIONS:
        return commit_type
    return "misc"


def format_commit(commit: ConventionalCommit) -> str:
    """Format one commit as a Markdown bullet.

    Only the first line of the message is used, with its first character
    upper-cased.
    """
    message = commit.message.split("\n")[0]
    message = message[:1].upper() + message[1:]
    if commit.breaking_change:
        message = f"{BREAKING_CHANGE_MARKER} {message}"
    parts = [f"**{commit.scope}**:" if commit.scope else "", message]
    return "- " + " ".join(part for part in parts if part)


def render_changelog(commits: Iterable[ConventionalCommit]) -> str:
    """Render commits as grouped Markdown sections.

    Sections appear in a fixed order regardless of input order; commits
    keep their input order within a section. Returns an empty string when
    there is nothing to render.
    """
    grouped: dict[str, list[ConventionalCommit]] = {}
    for commit in commits:
        grouped.setdefault(get_changelog_section(commit.type), []).append(commit)

    if not grouped:
        return ""

    blocks: list[str] = []
    for section in sorted(grouped, key=lambda key: SECTIONS[key][0]):
        lines = "\n".join(format_commit(c) for c in grouped[section])
        blocks.append(f"### {SECTIONS[section][1]}\n\n{lines}")
    return "\n\n".join(blocks) + "\n"


class MissingChangelog(BaseModel):
    kind: Literal["missing"] = "missing"


class RecognizedChangelog(BaseModel):
    """An existing changelog that starts with the expected header.

    Attributes:
        entries: Everything after the header.
    """

    kind: Literal["recognized"] = "recognized"
    entries: str


class UnrecognizedChangelog(BaseModel):
    """An existing file that does not start with the expected header."""

    kind: Literal["unrecognized"] = "unrecognized"
    raw_text: str


ChangelogDocument = Union[MissingChangelog, RecognizedChangelog, UnrecognizedChangelog]


def read_changelog(text: str | None) -> ChangelogDocument:
    """Classify the current contents of a changelog file."""
    if text is None:
        return MissingChangelog()
    if text.startswith(CHANGELOG_HEADER):
        return RecognizedChangelog(entries=text[len(CHANGELOG_HEADER) :])
    return UnrecognizedChangelog(raw_text=text)


def merge_changelog(
    existing: ChangelogDocument,
    new_section: str,
    *,
    policy: UnrecognizedPolicy = "discard",
) -> str:
    """Prepend a new section to an existing changelog document.

    Re-running with the same section inserts it again; every call is
    treated as a new release.

    Args:
        existing: Result of read_changelog() for the current file.
        new_section: Rendered Markdown for the new release.
        policy: What to do with an unrecognized document: ``discard`` drops
                it, ``append`` keeps its raw text below the new section.
    """
    content = f"{CHANGELOG_HEADER}{new_section}"
    if isinstance(existing, RecognizedChangelog):
        return f"{content}\n\n{existing.entries}"
    if isinstance(existing, UnrecognizedChangelog) and policy == "append":
        return f"{content}\n\n{existing.raw_text}"
    return content


def create_or_update_changelog_file(
    base_path: Path,
    changelog: str,
    *,
    file_name: str = "CHANGELOG.md",
    policy: UnrecognizedPolicy = "discard",
) -> Path:
    """Write a project's changelog file, preserving previous entries.

    Returns:
        Path of the written file.
    """
    path = base_path / file_name
    existing = read_changelog(path.read_text() if path.exists() else None)
    if isinstance(existing, UnrecognizedChangelog):
        if policy == "discard":
            warn(f"{path} does not start with '# Changelog'; previous content discarded")
        else:
            warn(f"{path} does not start with '# Changelog'; previous content kept below")
    path.write_text(merge_changelog(existing, changelog, policy=policy))
    return path
