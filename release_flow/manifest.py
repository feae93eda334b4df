"""pyproject.toml reading and writing utilities.

Uses tomlkit to preserve formatting and comments when modifying manifests.
This is important for maintaining readable, diff-friendly files.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, cast

import tomlkit
from packaging.utils import canonicalize_name
from tomlkit.exceptions import ParseError

from .models import ProjectDescriptor
from .shell import warn

MANIFEST_NAME = "pyproject.toml"
DEFAULT_VERSION = "1.0.0"
TOOL_TABLE = "release-flow"


def load_pyproject(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a pyproject.toml file.

    Returns a TOMLDocument that preserves formatting when modified and saved.
    """
    return tomlkit.parse(path.read_text())


def save_pyproject(path: Path, doc: tomlkit.TOMLDocument) -> None:
    """Save a TOMLDocument back to disk, preserving original formatting."""
    path.write_text(tomlkit.dumps(doc))


def get_project_name(doc: tomlkit.TOMLDocument, fallback: str) -> str:
    """Extract the canonical project name from [project].name.

    Names are normalized per PEP 503 (lowercase, hyphens instead of
    underscores) for consistent comparison.

    Args:
        doc: Parsed pyproject.toml document.
        fallback: Value to use if name is not specified.
    """
    return canonicalize_name(doc.get("project", {}).get("name", fallback))


def get_project_version(doc: tomlkit.TOMLDocument) -> str:
    """Extract version from [project].version, defaulting to '1.0.0'."""
    return str(doc.get("project", {}).get("version", DEFAULT_VERSION))


def has_project_table(doc: tomlkit.TOMLDocument) -> bool:
    return "project" in doc


def get_workspace_member_globs(doc: tomlkit.TOMLDocument) -> list[str]:
    """Extract workspace member glob patterns from [tool.uv.workspace].

    Returns an empty list when the repository is not a uv workspace.
    """
    members = doc.get("tool", {}).get("uv", {}).get("workspace", {}).get("members")
    return [str(m) for m in members] if members else []


def get_tool_table(doc: tomlkit.TOMLDocument) -> dict[str, Any]:
    """Return the [tool.release-flow] table as a plain dict."""
    table = doc.get("tool", {}).get(TOOL_TABLE, {})
    return cast(dict[str, Any], table.unwrap() if hasattr(table, "unwrap") else table)


def read_project(manifest_path: Path, root_path: Path) -> ProjectDescriptor | None:
    """Read one project's name and version from its manifest.

    A missing or unparseable manifest is not fatal: a warning is printed
    and None is returned so the caller can skip the project.
    """
    if not manifest_path.exists():
        warn(f"Project file not found at {manifest_path}")
        return None

    try:
        doc = load_pyproject(manifest_path)
    except (OSError, ParseError) as exc:
        warn(f"Error reading project file {manifest_path}: {exc}")
        return None

    project_dir = manifest_path.parent
    return ProjectDescriptor(
        name=get_project_name(doc, project_dir.resolve().name),
        version=get_project_version(doc),
        path=str(manifest_path),
        location=os.path.relpath(project_dir, root_path),
    )


def update_project_version(
    manifest_path: Path,
    new_version: str,
    version_suffix: str = "",
    build_number: str | None = None,
) -> str:
    """Write a new version into a manifest.

    This function:
    1. Sets [project].version to new_version, or new_version-suffix
    2. Creates the [project] table or version key when missing
    3. Records <new_version>.<build_number> under [tool.release-flow]
       when a build number is given

    Returns:
        The version string written to [project].version.
    """
    doc = load_pyproject(manifest_path)
    if "project" not in doc:
        doc["project"] = tomlkit.table()
    project = cast(dict[str, Any], doc["project"])

    version = f"{new_version}-{version_suffix}" if version_suffix else new_version
    project["version"] = version

    if build_number is not None:
        if "tool" not in doc:
            doc["tool"] = tomlkit.table(is_super_table=True)
        tool = cast(dict[str, Any], doc["tool"])
        if TOOL_TABLE not in tool:
            tool[TOOL_TABLE] = tomlkit.table()
        tool[TOOL_TABLE]["build-version"] = f"{new_version}.{build_number}"

    save_pyproject(manifest_path, doc)
    return version
