"""Change-set resolution: from commit history to next versions and changelog.

For every project in the repository:
1. Read commits since the latest published release, scoped to the
   project's directory
2. Classify each commit and reduce them to one version bump
3. Compute the next version and render the project's changelog

The root project (the one whose manifest sits closest to the repository
root) is always reported; other projects only when they need a release.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path, PurePath

from .changelog import render_changelog
from .commits import UNKNOWN_TYPE_VERSION_TYPE, aggregate_version_type, parse_conventional_commit
from .config import ReleaseFlowConfig
from .git import get_commits, get_repo_path
from .github import get_latest_release
from .models import (
    ChangeDetails,
    ProjectChangeInformation,
    ProjectDescriptor,
    RepositoryChange,
    VersionType,
)
from .shell import CommandError, step, warn
from .versions import InvalidVersionError, bump_version
from .workspace import discover_projects

CHANGES_HEADER = "# Changes\n\n"


class ChangeResolutionError(RuntimeError):
    """A project's changes could not be resolved."""

    def __init__(self, project: str, cause: Exception) -> None:
        self.project = project
        super().__init__(f"Could not resolve changes for {project}: {cause}")


def manifest_depth(project: ProjectDescriptor, root_path: str) -> int:
    """Number of path segments of the manifest relative to the root."""
    relative = os.path.relpath(os.path.join(root_path, project.path), root_path)
    return len([part for part in PurePath(relative).parts if part not in ("", ".")])


def select_root_project(
    projects: Sequence[ProjectDescriptor], root_path: str
) -> ProjectDescriptor | None:
    """Pick the project whose manifest is shallowest.

    Ties go to the project discovered first.
    """
    ranked = sorted(
        enumerate(projects),
        key=lambda item: (manifest_depth(item[1], root_path), item[0]),
    )
    return ranked[0][1] if ranked else None


def get_project_change(
    root_path: str,
    project: ProjectDescriptor,
    bump_version_enabled: bool,
    release_tag: str | None,
    *,
    unknown: VersionType = UNKNOWN_TYPE_VERSION_TYPE,
) -> ProjectChangeInformation:
    """Compute the change information of a single project.

    Args:
        root_path: Repository root.
        project: The project to resolve.
        bump_version_enabled: When False, next_version stays the current
                              version even if commits call for a bump.
        release_tag: Latest published release tag; None reads the whole
                     history.
        unknown: Bump applied to commit types without an explicit rule.

    Raises:
        CommandError: If the commit log cannot be read.
        InvalidVersionError: If the manifest version is not a version.
    """
    project_dir = os.path.dirname(os.path.join(root_path, project.path)) or root_path
    commits = sorted(
        get_commits(project_dir, f"refs/tags/{release_tag}" if release_tag else ""),
        key=lambda commit: commit.date,
    )
    conventional_commits = [parse_conventional_commit(c.message) for c in commits]
    version_type = aggregate_version_type(conventional_commits, unknown=unknown)

    next_version = (
        bump_version(project.version, version_type)
        if bump_version_enabled
        else project.version
    )

    changelog = None
    if version_type is not VersionType.NONE:
        changelog = (
            f"## {project.name}: v{next_version}\n\n"
            f"{render_changelog(conventional_commits)}"
        )

    return ProjectChangeInformation(
        name=project.name,
        location=os.path.relpath(project_dir, root_path),
        version=project.version,
        next_version=next_version,
        commits=commits,
        version_type=version_type,
        changelog=changelog,
    )


def resolve_projects(
    root_path: str,
    projects: Sequence[ProjectDescriptor],
    bump_version_enabled: bool,
    release_tag: str | None,
    config: ReleaseFlowConfig,
) -> list[ProjectChangeInformation | None]:
    """Resolve every project concurrently and join the results.

    Results keep the order of ``projects``. A failed project becomes None
    under the ``skip`` policy (with a warning) or raises
    ChangeResolutionError under ``fail``.
    """

    def resolve(project: ProjectDescriptor) -> ProjectChangeInformation | None:
        try:
            return get_project_change(
                root_path,
                project,
                bump_version_enabled,
                release_tag,
                unknown=config.unknown_commit_bump,
            )
        except (CommandError, InvalidVersionError) as exc:
            if config.on_project_error == "fail":
                raise ChangeResolutionError(project.name, exc) from exc
            warn(f"Skipping {project.name}: {exc}")
            return None

    workers = max(1, min(config.max_workers, len(projects)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(resolve, projects))


def build_changelog(changes: Sequence[ProjectChangeInformation]) -> str:
    """Combine per-project changelogs into the repository-wide one."""
    return CHANGES_HEADER + "\n\n".join(c.changelog or "" for c in changes) + "\n"


def get_change_details(
    bump_version_enabled: bool, config: ReleaseFlowConfig | None = None
) -> ChangeDetails | None:
    """Resolve what every project releases next.

    Returns:
        The change report, or None when there are no projects or no
        project needs a release. None is a normal outcome, not a failure.

    Raises:
        ChangeResolutionError: If the root project cannot be resolved, or
                               any project fails under the ``fail`` policy.
    """
    root_path = get_repo_path()
    config = config or ReleaseFlowConfig()
    projects = discover_projects(Path(root_path), config)

    root_project = select_root_project(projects, root_path)
    if root_project is None:
        print("No root project found")
        return None

    step("Resolving changes")
    release_tag = get_latest_release()
    print(f"  Latest release: {release_tag or '<none, using full history>'}")

    other_projects = [p for p in projects if p.path != root_project.path]
    results = resolve_projects(
        root_path,
        [root_project, *other_projects],
        bump_version_enabled,
        release_tag,
        config,
    )

    root_change, *other_changes = results
    if root_change is None:
        raise ChangeResolutionError(
            root_project.name, RuntimeError("root project could not be resolved")
        )

    actual_changes = [
        c for c in other_changes if c is not None and c.version_type is not VersionType.NONE
    ]
    if root_change.version_type is not VersionType.NONE:
        actual_changes.insert(0, root_change)

    for change in results:
        if change is not None:
            print(
                f"  {change.name}: {change.version_type.value} "
                f"({change.version} → {change.next_version})"
            )

    if not actual_changes:
        print("No changes found")
        return None

    return ChangeDetails(
        root_path=root_path,
        repository=RepositoryChange(change=root_change),
        changes=actual_changes,
        changelog=build_changelog(actual_changes),
    )
