"""Configuration loaded from [tool.release-flow] in the root pyproject.toml."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .manifest import MANIFEST_NAME, get_tool_table, load_pyproject
from .models import VersionType


class ReleaseFlowConfig(BaseModel):
    """Release workflow settings.

    Attributes:
        projects: Project directories relative to the repository root. When
                  empty, projects are discovered from the root manifest and
                  [tool.uv.workspace].members.
        branch_prefix: Prefix of release-candidate branches; the next
                       version is appended.
        label: Label applied to release-candidate pull requests.
        remote: Git remote that branches and tags are pushed to.
        changelog_file: Name of each project's changelog file.
        on_project_error: ``skip`` drops a project whose commits cannot be
                          read (with a warning), ``fail`` aborts.
        unknown_commit_bump: Bump for commit types with no explicit rule.
        unrecognized_changelog: Whether a changelog file without the
                                expected header is discarded or appended.
        max_workers: Upper bound on concurrent project resolution.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    projects: list[str] = Field(default_factory=list)
    branch_prefix: str = Field("versioning/release/", alias="branch-prefix")
    label: str = "release-candidate"
    remote: str = "origin"
    changelog_file: str = Field("CHANGELOG.md", alias="changelog-file")
    on_project_error: Literal["skip", "fail"] = Field("skip", alias="on-project-error")
    unknown_commit_bump: VersionType = Field(
        VersionType.PATCH, alias="unknown-commit-bump"
    )
    unrecognized_changelog: Literal["discard", "append"] = Field(
        "discard", alias="unrecognized-changelog"
    )
    max_workers: int = Field(8, alias="max-workers", ge=1)


def load_config(root_path: Path) -> ReleaseFlowConfig:
    """Load settings from the root manifest, falling back to defaults.

    Raises:
        pydantic.ValidationError: If the table contains invalid values.
    """
    manifest = root_path / MANIFEST_NAME
    if not manifest.exists():
        return ReleaseFlowConfig()
    return ReleaseFlowConfig.model_validate(get_tool_table(load_pyproject(manifest)))
