"""Tests for release_flow.changes."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from release_flow.changes import (
    ChangeResolutionError,
    build_changelog,
    get_change_details,
    get_project_change,
    select_root_project,
)
from release_flow.config import ReleaseFlowConfig
from release_flow.models import (
    Commit,
    ProjectChangeInformation,
    ProjectDescriptor,
    VersionType,
)
from release_flow.shell import CommandError

ROOT = "/repo"


def make_commit(message: str, day: int, sha: str = "abc") -> Commit:
    return Commit(
        sha=sha,
        author="Dev <dev@example.com>",
        date=datetime(2024, 5, day, tzinfo=timezone.utc),
        message=message,
    )


def make_project(name: str, path: str, version: str = "1.0.0") -> ProjectDescriptor:
    location = path.rpartition("/")[0] or "."
    return ProjectDescriptor(name=name, version=version, path=path, location=location)


class TestSelectRootProject:
    def test_shallowest_manifest_wins(self) -> None:
        projects = [
            make_project("a", "src/A/pyproject.toml"),
            make_project("b", "pyproject.toml"),
            make_project("c", "src/C/pyproject.toml"),
        ]
        root = select_root_project(projects, ROOT)
        assert root is not None
        assert root.name == "b"

    def test_tie_goes_to_first_discovered(self) -> None:
        projects = [
            make_project("late", "libs/late/pyproject.toml"),
            make_project("early", "apps/early/pyproject.toml"),
        ]
        root = select_root_project(projects, ROOT)
        assert root is not None
        assert root.name == "late"

    def test_no_projects(self) -> None:
        assert select_root_project([], ROOT) is None


class TestGetProjectChange:
    @patch("release_flow.changes.get_commits")
    def test_bump_and_changelog(self, mock_commits: MagicMock) -> None:
        """Commits are ordered by date before rendering."""
        mock_commits.return_value = [
            make_commit("fix(core): handle empty input", 3, "c3"),
            make_commit("feat: add export", 1, "c1"),
            make_commit("docs: typo", 2, "c2"),
        ]
        project = make_project("web", "apps/web/pyproject.toml")

        change = get_project_change(ROOT, project, True, "v1.0.0")

        mock_commits.assert_called_once_with("/repo/apps/web", "refs/tags/v1.0.0")
        assert change.version_type is VersionType.MINOR
        assert change.version == "1.0.0"
        assert change.next_version == "1.1.0"
        assert change.location == "apps/web"
        assert [c.sha for c in change.commits] == ["c1", "c2", "c3"]
        assert change.changelog == (
            "## web: v1.1.0\n\n"
            "### Features\n\n- Add export\n\n"
            "### Bug Fixes\n\n- **core**: Handle empty input\n\n"
            "### Documentation\n\n- Typo\n"
        )

    @patch("release_flow.changes.get_commits")
    def test_bump_disabled_keeps_version(self, mock_commits: MagicMock) -> None:
        mock_commits.return_value = [make_commit("feat!: new api", 1)]

        change = get_project_change(ROOT, make_project("web", "apps/web/pyproject.toml"), False, None)

        assert change.version_type is VersionType.MAJOR
        assert change.next_version == "1.0.0"
        assert change.changelog is not None
        assert change.changelog.startswith("## web: v1.0.0\n\n")
        assert "**BREAKING CHANGE** New api" in change.changelog

    @patch("release_flow.changes.get_commits")
    def test_full_history_without_release(self, mock_commits: MagicMock) -> None:
        mock_commits.return_value = []

        change = get_project_change(ROOT, make_project("app", "pyproject.toml"), True, None)

        mock_commits.assert_called_once_with(ROOT, "")
        assert change.location == "."
        assert change.version_type is VersionType.NONE
        assert change.next_version == "1.0.0"
        assert change.changelog is None

    @patch("release_flow.changes.get_commits")
    def test_unknown_type_policy(self, mock_commits: MagicMock) -> None:
        mock_commits.return_value = [make_commit("wip: something", 1)]
        project = make_project("app", "pyproject.toml")

        assert get_project_change(ROOT, project, True, None).next_version == "1.0.1"
        ignored = get_project_change(ROOT, project, True, None, unknown=VersionType.NONE)
        assert ignored.version_type is VersionType.NONE


def test_build_changelog() -> None:
    changes = [
        ProjectChangeInformation(
            name="a", location=".", version="1.0.0", next_version="1.1.0", changelog="## a: v1.1.0\n\nA\n"
        ),
        ProjectChangeInformation(
            name="b", location="b", version="1.0.0", next_version="1.0.1", changelog="## b: v1.0.1\n\nB\n"
        ),
    ]
    assert build_changelog(changes) == (
        "# Changes\n\n## a: v1.1.0\n\nA\n\n\n## b: v1.0.1\n\nB\n\n"
    )


ROOT_PROJECT = make_project("root-app", "pyproject.toml", "2.0.0")
LIB_PROJECT = make_project("lib", "libs/lib/pyproject.toml", "0.4.0")
TOOL_PROJECT = make_project("tool", "tools/tool/pyproject.toml", "1.2.3")


def commits_by_dir(mapping: dict[str, list[Commit] | Exception]):
    def fake_get_commits(path: str, from_ref: str = "") -> list[Commit]:
        result = mapping[path]
        if isinstance(result, Exception):
            raise result
        return result

    return fake_get_commits


class TestGetChangeDetails:
    @patch("release_flow.changes.get_latest_release")
    @patch("release_flow.changes.get_commits")
    @patch("release_flow.changes.discover_projects")
    @patch("release_flow.changes.get_repo_path")
    def test_root_first_and_unchanged_filtered(
        self,
        mock_repo: MagicMock,
        mock_discover: MagicMock,
        mock_commits: MagicMock,
        mock_latest: MagicMock,
    ) -> None:
        mock_repo.return_value = ROOT
        mock_discover.return_value = [LIB_PROJECT, ROOT_PROJECT, TOOL_PROJECT]
        mock_latest.return_value = "v2.0.0"
        mock_commits.side_effect = commits_by_dir(
            {
                ROOT: [make_commit("feat: root feature", 1)],
                "/repo/libs/lib": [make_commit("fix: lib fix", 2)],
                "/repo/tools/tool": [],
            }
        )

        details = get_change_details(True)

        assert details is not None
        mock_latest.assert_called_once_with()
        assert details.root_path == ROOT
        assert details.repository.change.name == "root-app"
        assert [c.name for c in details.changes] == ["root-app", "lib"]
        assert [c.next_version for c in details.changes] == ["2.1.0", "0.4.1"]
        assert details.changelog == build_changelog(details.changes)
        assert details.changelog.startswith("# Changes\n\n## root-app: v2.1.0\n\n")

    @patch("release_flow.changes.get_latest_release")
    @patch("release_flow.changes.get_commits")
    @patch("release_flow.changes.discover_projects")
    @patch("release_flow.changes.get_repo_path")
    def test_unchanged_root_is_still_reported(
        self,
        mock_repo: MagicMock,
        mock_discover: MagicMock,
        mock_commits: MagicMock,
        mock_latest: MagicMock,
    ) -> None:
        mock_repo.return_value = ROOT
        mock_discover.return_value = [ROOT_PROJECT, LIB_PROJECT]
        mock_latest.return_value = None
        mock_commits.side_effect = commits_by_dir(
            {ROOT: [], "/repo/libs/lib": [make_commit("perf: faster", 1)]}
        )

        details = get_change_details(True)

        assert details is not None
        assert details.repository.change.version_type is VersionType.NONE
        assert details.repository.change.next_version == "2.0.0"
        assert [c.name for c in details.changes] == ["lib"]

    @patch("release_flow.changes.get_latest_release")
    @patch("release_flow.changes.get_commits")
    @patch("release_flow.changes.discover_projects")
    @patch("release_flow.changes.get_repo_path")
    def test_nothing_to_release(
        self,
        mock_repo: MagicMock,
        mock_discover: MagicMock,
        mock_commits: MagicMock,
        mock_latest: MagicMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        mock_repo.return_value = ROOT
        mock_discover.return_value = [ROOT_PROJECT, LIB_PROJECT]
        mock_latest.return_value = "v2.0.0"
        mock_commits.return_value = []

        assert get_change_details(True) is None
        assert "No changes found" in capsys.readouterr().out

    @patch("release_flow.changes.get_latest_release")
    @patch("release_flow.changes.discover_projects")
    @patch("release_flow.changes.get_repo_path")
    def test_no_projects(
        self,
        mock_repo: MagicMock,
        mock_discover: MagicMock,
        mock_latest: MagicMock,
    ) -> None:
        mock_repo.return_value = ROOT
        mock_discover.return_value = []

        assert get_change_details(True) is None
        mock_latest.assert_not_called()

    @patch("release_flow.changes.get_latest_release")
    @patch("release_flow.changes.get_commits")
    @patch("release_flow.changes.discover_projects")
    @patch("release_flow.changes.get_repo_path")
    def test_failed_project_skipped(
        self,
        mock_repo: MagicMock,
        mock_discover: MagicMock,
        mock_commits: MagicMock,
        mock_latest: MagicMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        mock_repo.return_value = ROOT
        mock_discover.return_value = [ROOT_PROJECT, LIB_PROJECT, TOOL_PROJECT]
        mock_latest.return_value = "v2.0.0"
        mock_commits.side_effect = commits_by_dir(
            {
                ROOT: [make_commit("fix: root", 1)],
                "/repo/libs/lib": CommandError(["git", "log"], 128, "bad object"),
                "/repo/tools/tool": [make_commit("feat: tool", 1)],
            }
        )

        details = get_change_details(True)

        assert details is not None
        assert [c.name for c in details.changes] == ["root-app", "tool"]
        assert "Skipping lib" in capsys.readouterr().err

    @patch("release_flow.changes.get_latest_release")
    @patch("release_flow.changes.get_commits")
    @patch("release_flow.changes.discover_projects")
    @patch("release_flow.changes.get_repo_path")
    def test_failed_project_under_fail_policy(
        self,
        mock_repo: MagicMock,
        mock_discover: MagicMock,
        mock_commits: MagicMock,
        mock_latest: MagicMock,
    ) -> None:
        mock_repo.return_value = ROOT
        mock_discover.return_value = [ROOT_PROJECT, LIB_PROJECT]
        mock_latest.return_value = "v2.0.0"
        mock_commits.side_effect = commits_by_dir(
            {
                ROOT: [make_commit("fix: root", 1)],
                "/repo/libs/lib": CommandError(["git", "log"], 128, "bad object"),
            }
        )

        with pytest.raises(ChangeResolutionError) as excinfo:
            get_change_details(True, ReleaseFlowConfig(on_project_error="fail"))
        assert excinfo.value.project == "lib"

    @patch("release_flow.changes.get_latest_release")
    @patch("release_flow.changes.get_commits")
    @patch("release_flow.changes.discover_projects")
    @patch("release_flow.changes.get_repo_path")
    def test_failed_root_is_fatal(
        self,
        mock_repo: MagicMock,
        mock_discover: MagicMock,
        mock_commits: MagicMock,
        mock_latest: MagicMock,
    ) -> None:
        mock_repo.return_value = ROOT
        mock_discover.return_value = [ROOT_PROJECT, LIB_PROJECT]
        mock_latest.return_value = "v2.0.0"
        mock_commits.side_effect = commits_by_dir(
            {
                ROOT: CommandError(["git", "log"], 128, "bad object"),
                "/repo/libs/lib": [make_commit("fix: lib", 1)],
            }
        )

        with pytest.raises(ChangeResolutionError) as excinfo:
            get_change_details(True)
        assert excinfo.value.project == "root-app"

    @patch("release_flow.changes.get_latest_release")
    @patch("release_flow.changes.get_commits")
    @patch("release_flow.changes.get_repo_path")
    def test_pre_release_member_is_bumped(
        self,
        mock_repo: MagicMock,
        mock_commits: MagicMock,
        mock_latest: MagicMock,
        workspace: Path,
    ) -> None:
        """A PEP 440 pre-release in a member manifest bumps from its release."""
        (workspace / "packages" / "pkg-b" / "pyproject.toml").write_text(
            '[project]\nname = "pkg-b"\nversion = "0.4.0rc1"\n'
        )
        mock_repo.return_value = str(workspace)
        mock_latest.return_value = "v2.0.0"
        mock_commits.side_effect = commits_by_dir(
            {
                str(workspace): [],
                str(workspace / "packages" / "pkg-a"): [],
                str(workspace / "packages" / "pkg-b"): [make_commit("feat: x", 1)],
            }
        )

        details = get_change_details(True, ReleaseFlowConfig())

        assert details is not None
        (change,) = details.changes
        assert (change.name, change.version, change.next_version) == (
            "pkg-b",
            "0.4.0rc1",
            "0.5.0",
        )

    @patch("release_flow.changes.get_latest_release")
    @patch("release_flow.changes.get_commits")
    @patch("release_flow.changes.discover_projects")
    @patch("release_flow.changes.get_repo_path")
    def test_invalid_member_version_skipped(
        self,
        mock_repo: MagicMock,
        mock_discover: MagicMock,
        mock_commits: MagicMock,
        mock_latest: MagicMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        mock_repo.return_value = ROOT
        mock_discover.return_value = [
            ROOT_PROJECT,
            make_project("lib", "libs/lib/pyproject.toml", "banana"),
        ]
        mock_latest.return_value = "v2.0.0"
        mock_commits.return_value = [make_commit("fix: y", 1)]

        details = get_change_details(True)

        assert details is not None
        assert [c.name for c in details.changes] == ["root-app"]
        assert "Skipping lib" in capsys.readouterr().err

    @patch("release_flow.changes.get_latest_release")
    @patch("release_flow.changes.get_commits")
    @patch("release_flow.changes.discover_projects")
    @patch("release_flow.changes.get_repo_path")
    def test_invalid_member_version_under_fail_policy(
        self,
        mock_repo: MagicMock,
        mock_discover: MagicMock,
        mock_commits: MagicMock,
        mock_latest: MagicMock,
    ) -> None:
        mock_repo.return_value = ROOT
        mock_discover.return_value = [
            ROOT_PROJECT,
            make_project("lib", "libs/lib/pyproject.toml", "banana"),
        ]
        mock_latest.return_value = "v2.0.0"
        mock_commits.return_value = [make_commit("fix: y", 1)]

        with pytest.raises(ChangeResolutionError) as excinfo:
            get_change_details(True, ReleaseFlowConfig(on_project_error="fail"))
        assert excinfo.value.project == "lib"
        assert "banana" in str(excinfo.value)
