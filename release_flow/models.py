"""Data models for release-flow.

These Pydantic models represent the core data structures passed between
commit classification, change resolution and the release workflow.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class VersionType(str, Enum):
    """Semantic-version increment implied by one or more commits.

    Members are declared in ascending severity; their rank is their
    position in this declaration.
    """

    NONE = "none"
    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"


class Commit(BaseModel):
    """A raw commit as read from ``git log``.

    Attributes:
        sha: Full commit hash.
        author: ``Name <email>`` of the author.
        date: Author date.
        message: Full commit message, trimmed.
    """

    sha: str
    author: str
    date: datetime
    message: str


class ConventionalCommit(BaseModel):
    """A commit message parsed with the conventional-commit grammar.

    Attributes:
        type: Lower-cased leading type word, or None when the message does
              not follow the grammar.
        scope: Optional parenthesized qualifier.
        breaking_change: Whether the commit declares a breaking change.
        message: Text after the ``type(scope)!:`` prefix, or the whole
                 message when it did not match.
    """

    type: str | None = None
    scope: str | None = None
    breaking_change: bool = False
    message: str


class ProjectDescriptor(BaseModel):
    """A releasable project found in the repository.

    Attributes:
        name: Canonical project name.
        version: Current version declared in the manifest.
        path: Path to the project's pyproject.toml.
        location: Project directory relative to the repository root.
    """

    name: str
    version: str
    path: str
    location: str


class ProjectChangeInformation(BaseModel):
    """Computed release information for one project.

    Attributes:
        name: Canonical project name.
        location: Project directory relative to the repository root;
                  ``.`` for a project at the root.
        version: Version declared in the manifest when resolved.
        next_version: Version to release; equals ``version`` when there is
                      no bump or bumping is disabled.
        commits: Commits since the latest release, oldest first.
        version_type: Most severe bump implied by ``commits``.
        changelog: ``## <name>: v<next_version>`` section, or None when
                   there is no bump.
    """

    name: str
    location: str
    version: str
    next_version: str
    commits: list[Commit] = Field(default_factory=list)
    version_type: VersionType = VersionType.NONE
    changelog: str | None = None


class RepositoryChange(BaseModel):
    """Change of the repository as a whole.

    Attributes:
        change: Change information of the root project, reported even
                when it has no bump of its own.
    """

    change: ProjectChangeInformation


class ChangeDetails(BaseModel):
    """Repository-wide change report.

    Attributes:
        root_path: Absolute path of the repository root.
        repository: Change information of the root project, always present.
        changes: Every project with a bump other than ``none``, root first.
        changelog: Combined Markdown changelog of ``changes``.
    """

    root_path: str
    repository: RepositoryChange
    changes: list[ProjectChangeInformation]
    changelog: str


class VersionBump(BaseModel):
    """Records a version change written to a project's manifest.

    Attributes:
        old: The version before bumping.
        new: The version after bumping.
    """

    old: str
    new: str
