"""GitHub release and pull request operations via the gh CLI."""

from __future__ import annotations

import json
import re

import semver

from .git import commit_and_push_changes
from .shell import CommandError, gh, warn
from .versions import coerce_version, parse_version

RELEASE_BRANCH_VERSION = re.compile(r"(\d+\.\d+\.\d+)")


def get_repo_name() -> str:
    """Return ``owner/name`` of the current repository."""
    return json.loads(gh("repo", "view", "--json", "nameWithOwner"))["nameWithOwner"]


def get_latest_release() -> str | None:
    """Find the tag of the highest published (non-draft) release.

    Tags are compared as versions, so v10.0.0 sorts above v9.9.9. Tags
    that contain no version number are ignored. Returns None when the
    repository has no published release yet.
    """
    releases = json.loads(gh("api", f"/repos/{get_repo_name()}/releases"))
    candidates: list[tuple[semver.Version, str]] = []
    for release in releases:
        if release.get("draft"):
            continue
        tag = release.get("tag_name", "")
        version = coerce_version(tag)
        if version is not None:
            candidates.append((version, tag))
    if not candidates:
        return None
    return max(candidates, key=lambda c: c[0])[1]


def get_existing_release_pull_request(head_ref: str) -> int | None:
    """Return the number of the pull request whose head is ``head_ref``."""
    output = gh("pr", "list", "--head", head_ref, "--json", "number,headRefName")
    for pr in json.loads(output or "[]"):
        if pr.get("headRefName") == head_ref:
            return int(pr["number"])
    return None


def create_or_update_label(name: str, color: str, description: str) -> None:
    """Ensure a label exists. Failures are reported but not raised."""
    try:
        gh(
            "label",
            "create",
            name,
            "--color",
            color,
            "--description",
            description,
            "--force",
        )
    except CommandError as exc:
        warn(f"Could not create/update label {name}: {exc.stderr or exc}")


def create_or_update_pull_request(
    head_ref: str,
    title: str,
    body: str,
    *,
    label: str = "release-candidate",
    remote: str = "origin",
) -> int | None:
    """Push the working tree to ``head_ref`` and open or refresh its PR.

    Returns:
        The number of the updated pull request, or None for a new one.

    Raises:
        CommandError: If any git step or gh call fails.
    """
    commit_and_push_changes(head_ref, title, remote).raise_for_failure()

    pr_number = get_existing_release_pull_request(head_ref)
    create_or_update_label(label, "cccccc", "Release candidate pull requests")

    if pr_number:
        print(f"  Updating pull request #{pr_number}")
        gh(
            "pr",
            "edit",
            str(pr_number),
            "--title",
            title,
            "--body",
            body,
            "--add-label",
            label,
        )
        return pr_number

    print(f"  Creating pull request for {head_ref}")
    gh(
        "pr",
        "create",
        "--head",
        head_ref,
        "--title",
        title,
        "--body",
        body,
        "--label",
        label,
    )
    return None


def release_exists(version: str) -> bool:
    return bool(gh("release", "view", f"v{version}", "--json", "name", check=False))


def create_or_update_release(version: str, changelog: str, draft: bool = True) -> None:
    """Create release ``v<version>``, or edit it when it already exists."""
    release_name = f"v{version}"
    action = "edit" if release_exists(version) else "create"
    print(f"  {'Updating' if action == 'edit' else 'Creating'} release {release_name}")
    gh(
        "release",
        action,
        release_name,
        "--title",
        release_name,
        "--notes",
        changelog,
        f"--draft={str(draft).lower()}",
    )


def promote_release(version: str) -> None:
    """Publish a draft release."""
    gh("release", "edit", f"v{version}", "--draft=false")


def dispatch_workflow(workflow_name: str) -> None:
    gh("workflow", "run", workflow_name)


def list_release_candidate_branches(label: str = "release-candidate") -> list[str]:
    """Head branch names of open pull requests carrying ``label``."""
    output = gh(
        "pr", "list", "--state", "open", "--label", label, "--json", "headRefName"
    )
    return [pr["headRefName"] for pr in json.loads(output or "[]")]


def branch_version(branch: str, branch_prefix: str) -> semver.Version | None:
    """Version encoded in a release branch name, e.g. versioning/release/1.2.0."""
    if not branch.startswith(branch_prefix):
        return None
    match = RELEASE_BRANCH_VERSION.match(branch[len(branch_prefix) :])
    return parse_version(match.group(1)) if match else None


def find_blocking_release_candidates(
    latest_release: str, branches: list[str], branch_prefix: str
) -> list[str]:
    """Release-candidate branches whose version is already released.

    A branch is blocking when its version is less than or equal to the
    latest published release.
    """
    latest = coerce_version(latest_release)
    if latest is None:
        return []
    blocking = []
    for branch in branches:
        version = branch_version(branch, branch_prefix)
        if version is not None and version <= latest:
            blocking.append(branch)
    return blocking


def get_latest_published_tag() -> str:
    return gh("release", "view", "--json", "tagName", "--jq", ".tagName")


def close_release_pull_requests(
    below_major: int,
    *,
    label: str = "release-candidate",
    branch_prefix: str = "versioning/release/",
) -> list[int]:
    """Close open release-candidate PRs for a major version below a threshold.

    Closing is best effort: a PR that cannot be closed is reported and
    the remaining ones are still processed.

    Returns:
        Numbers of the pull requests that were closed.
    """
    output = gh(
        "pr",
        "list",
        "--state",
        "open",
        "--label",
        label,
        "--json",
        "number,headRefName",
    )
    closed: list[int] = []
    for pr in json.loads(output or "[]"):
        version = branch_version(pr["headRefName"], branch_prefix)
        if version is None or version.major >= below_major:
            continue
        try:
            gh(
                "pr",
                "close",
                str(pr["number"]),
                "--comment",
                f"Superseded by a release candidate for v{below_major}.",
                "--delete-branch",
            )
        except CommandError as exc:
            warn(f"Could not close pull request #{pr['number']}: {exc.stderr or exc}")
            continue
        print(f"  Closed #{pr['number']} ({pr['headRefName']})")
        closed.append(int(pr["number"]))
    return closed
