"""Project discovery and on-disk updates for a release.

Projects are directories holding a pyproject.toml. They are listed in
[tool.release-flow].projects, or, when that is empty, taken from the root
manifest itself plus every [tool.uv.workspace] member.
"""

from __future__ import annotations

import glob
from pathlib import Path

from .changelog import create_or_update_changelog_file
from .config import ReleaseFlowConfig
from .manifest import (
    MANIFEST_NAME,
    get_workspace_member_globs,
    has_project_table,
    load_pyproject,
    read_project,
    update_project_version,
)
from .models import ChangeDetails, ProjectChangeInformation, ProjectDescriptor, VersionBump
from .shell import step


def _project_dirs(root_path: Path, config: ReleaseFlowConfig) -> list[Path]:
    if config.projects:
        return [root_path / location for location in config.projects]

    dirs: list[Path] = []
    root_manifest = root_path / MANIFEST_NAME
    if not root_manifest.exists():
        return dirs

    root_doc = load_pyproject(root_manifest)
    if has_project_table(root_doc):
        dirs.append(root_path)

    # Expand globs to find all member directories
    for pattern in get_workspace_member_globs(root_doc):
        for match in sorted(glob.glob(str(root_path / pattern))):
            p = Path(match)
            if (p / MANIFEST_NAME).exists() and p not in dirs:
                dirs.append(p)
    return dirs


def discover_projects(root_path: Path, config: ReleaseFlowConfig) -> list[ProjectDescriptor]:
    """Scan the repository and describe every releasable project.

    Order of the result is discovery order, which breaks ties when the
    root project is selected. Projects whose manifest is missing or
    unreadable are skipped with a warning.
    """
    step("Discovering projects")

    projects: list[ProjectDescriptor] = []
    for d in _project_dirs(root_path, config):
        project = read_project(d / MANIFEST_NAME, root_path)
        if project is not None:
            projects.append(project)
            print(f"  {project.name} {project.version} ({project.location})")

    return projects


def get_project_version(root_path: Path, location: str) -> ProjectDescriptor | None:
    """Re-read a project's manifest, e.g. after it was rewritten."""
    return read_project(root_path / location / MANIFEST_NAME, root_path)


def apply_project_version_change(
    root_path: Path,
    change: ProjectChangeInformation,
    config: ReleaseFlowConfig,
    version_suffix: str = "",
    build_number: str | None = None,
) -> VersionBump | None:
    """Write one project's changelog and new version to disk.

    Returns:
        The recorded version change, or None when the project directory
        holds no manifest.
    """
    project_path = root_path / change.location

    if change.changelog:
        create_or_update_changelog_file(
            project_path,
            change.changelog,
            file_name=config.changelog_file,
            policy=config.unrecognized_changelog,
        )

    manifest = project_path / MANIFEST_NAME
    if not manifest.exists():
        print(f"  {change.name}: no {MANIFEST_NAME} in {project_path}")
        return None

    written = update_project_version(
        manifest, change.next_version, version_suffix, build_number
    )
    return VersionBump(old=change.version, new=written)


def update_all_projects(
    change_details: ChangeDetails,
    config: ReleaseFlowConfig,
    version_suffix: str = "",
    build_number: str | None = None,
) -> dict[str, VersionBump]:
    """Apply every resolved change: the root project first, then the rest.

    Each project location is written once even though the root project
    may also appear in ``changes``.
    """
    step("Updating project versions")

    root_path = Path(change_details.root_path)
    ordered = [change_details.repository.change, *change_details.changes]

    bumped: dict[str, VersionBump] = {}
    seen: set[str] = set()
    for change in ordered:
        if change.location in seen:
            continue
        seen.add(change.location)
        bump = apply_project_version_change(
            root_path, change, config, version_suffix, build_number
        )
        if bump is not None:
            bumped[change.name] = bump
            print(f"  {change.name}: {bump.old} → {bump.new}")

    return bumped
