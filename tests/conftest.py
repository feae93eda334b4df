"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from release_flow.models import (
    ChangeDetails,
    ProjectChangeInformation,
    RepositoryChange,
    VersionType,
)


@pytest.fixture
def tmp_pyproject(tmp_path: Path) -> Path:
    """Create a temporary pyproject.toml file."""
    content = """\
# managed by release-flow
[project]
name = "Test_Package"
version = "1.0.0"  # bumped automatically
dependencies = ["requests>=2.0"]
"""
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text(content)
    return pyproject


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A uv workspace: a root project plus two member packages."""
    (tmp_path / "pyproject.toml").write_text(
        '[project]\nname = "root-app"\nversion = "2.0.0"\n\n'
        '[tool.uv.workspace]\nmembers = ["packages/*"]\n'
    )
    for name, version in (("pkg-a", "1.0.0"), ("pkg-b", "0.3.1")):
        package_dir = tmp_path / "packages" / name
        package_dir.mkdir(parents=True)
        (package_dir / "pyproject.toml").write_text(
            f'[project]\nname = "{name}"\nversion = "{version}"\n'
        )
    # A directory matching the glob without a manifest is ignored
    (tmp_path / "packages" / "scratch").mkdir()
    return tmp_path


@pytest.fixture
def change_details(workspace: Path) -> ChangeDetails:
    """Resolved changes for the workspace fixture: root and pkg-a bumped."""
    root_change = ProjectChangeInformation(
        name="root-app",
        location=".",
        version="2.0.0",
        next_version="2.1.0",
        version_type=VersionType.MINOR,
        changelog="## root-app: v2.1.0\n\n### Features\n\n- Root feature\n",
    )
    pkg_a = ProjectChangeInformation(
        name="pkg-a",
        location="packages/pkg-a",
        version="1.0.0",
        next_version="1.0.1",
        version_type=VersionType.PATCH,
        changelog="## pkg-a: v1.0.1\n\n### Bug Fixes\n\n- A fix\n",
    )
    return ChangeDetails(
        root_path=str(workspace),
        repository=RepositoryChange(change=root_change),
        changes=[root_change, pkg_a],
        changelog="# Changes\n\n"
        + root_change.changelog
        + "\n\n"
        + pkg_a.changelog
        + "\n",
    )
