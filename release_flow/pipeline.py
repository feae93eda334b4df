"""Release workflows: release candidate → update → create release.

This module strings the collaborators together for each CI entry point:
- release candidate: bump versions, write changelogs, push a branch and
  open or refresh its pull request
- update: bump versions in place with an optional suffix/build number
- create release: publish the current root version with its changelog
  and tag it
- check rc: refuse to release while stale release candidates are open

Every workflow treats "no changes" as a clean, successful no-op.
"""

from __future__ import annotations

import json
import uuid
from pathlib import Path

from .changes import get_change_details
from .config import ReleaseFlowConfig, load_config
from .git import create_and_push_tags, get_repo_path
from .github import (
    close_release_pull_requests,
    create_or_update_pull_request,
    create_or_update_release,
    dispatch_workflow,
    find_blocking_release_candidates,
    get_latest_published_tag,
    list_release_candidate_branches,
    promote_release,
)
from .models import ChangeDetails
from .shell import fatal, step
from .versions import parse_version
from .workspace import discover_projects, update_all_projects


def write_output(github_output: str | None, name: str, value: str) -> None:
    """Append a step output in GitHub Actions format.

    Multi-line values use the ``name<<delimiter`` form. Without an output
    file the pair is printed instead.
    """
    if not github_output:
        print(f"{name}={value}")
        return
    with open(github_output, "a") as fh:
        if "\n" in value:
            delimiter = f"ghadelimiter_{uuid.uuid4().hex}"
            fh.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
        else:
            fh.write(f"{name}={value}\n")


def load_repo_config() -> ReleaseFlowConfig:
    return load_config(Path(get_repo_path()))


def run_release_candidate(
    config: ReleaseFlowConfig,
    github_output: str | None = None,
    dispatch: str | None = None,
) -> ChangeDetails | None:
    """Prepare a release-candidate pull request for the next versions."""
    change_details = get_change_details(True, config)
    if not change_details:
        print("\nNothing to release.")
        return None

    update_all_projects(change_details, config)

    root_change = change_details.repository.change
    next_version = root_change.next_version
    step(f"Publishing release candidate {next_version}")
    create_or_update_pull_request(
        f"{config.branch_prefix}{next_version}",
        f"chore: release {next_version}",
        change_details.changelog,
        label=config.label,
        remote=config.remote,
    )

    close_release_pull_requests(
        parse_version(next_version).major,
        label=config.label,
        branch_prefix=config.branch_prefix,
    )

    if dispatch:
        print(f"  Dispatching workflow {dispatch}")
        dispatch_workflow(dispatch)

    if root_change.version != next_version:
        write_output(github_output, "next-version", next_version)
    write_output(github_output, "changelog", change_details.changelog)
    write_output(
        github_output,
        "updated-projects",
        json.dumps(
            [
                {"name": c.name, "location": c.location, "version": c.version}
                for c in change_details.changes
            ]
        ),
    )
    return change_details


def run_update(
    config: ReleaseFlowConfig,
    version_suffix: str = "",
    build_number: str | None = None,
    github_output: str | None = None,
) -> ChangeDetails | None:
    """Bump versions in place and report every project's resulting version."""
    change_details = get_change_details(True, config)
    if not change_details:
        print("\nNothing to update.")
        return None

    update_all_projects(change_details, config, version_suffix, build_number)

    # Discovery re-reads every manifest, so versions reflect the update
    for project in discover_projects(Path(change_details.root_path), config):
        write_output(github_output, f"{project.name}-version".lower(), project.version)
    return change_details


def run_create_release(
    config: ReleaseFlowConfig,
    draft: bool = False,
    github_output: str | None = None,
) -> str | None:
    """Publish a release for the root project's current version.

    Returns:
        The released version, or None when there was nothing to release.
    """
    change_details = get_change_details(False, config)
    if not change_details:
        print("\nNothing to release.")
        return None

    version = change_details.repository.change.version
    step(f"Creating release v{version}")
    create_or_update_release(version, change_details.changelog, draft)
    create_and_push_tags([f"v{version}"], config.remote).raise_for_failure()

    write_output(github_output, "version", version)
    write_output(github_output, "changelog", change_details.changelog)
    return version


def run_promote(version: str) -> None:
    step(f"Promoting release v{version}")
    promote_release(version)


def run_check_rc(config: ReleaseFlowConfig) -> None:
    """Exit with an error while an already-released RC pull request is open."""
    step("Checking release candidates")
    latest = get_latest_published_tag()
    print(f"  Latest official release: {latest}")

    blocking = find_blocking_release_candidates(
        latest, list_release_candidate_branches(config.label), config.branch_prefix
    )
    if blocking:
        fatal(f"Blocking RC PR(s) found for current release: {', '.join(blocking)}")

    print("  No blocking RC PRs found. Proceeding with release creation.")
