"""CLI entry point for release-flow."""

from __future__ import annotations

import contextlib
import functools
import sys
from collections.abc import Callable
from typing import Any

import click
from pydantic import ValidationError

from release_flow.changes import ChangeResolutionError, get_change_details
from release_flow.pipeline import (
    load_repo_config,
    run_check_rc,
    run_create_release,
    run_promote,
    run_release_candidate,
    run_update,
)
from release_flow.shell import CommandError
from release_flow.versions import InvalidVersionError

github_output_option = click.option(
    "--github-output",
    envvar="GITHUB_OUTPUT",
    type=click.Path(dir_okay=False),
    default=None,
    help="File that step outputs are appended to.",
)


def _handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Turn expected failures into a clean CLI error (exit code 1)."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (CommandError, ChangeResolutionError, InvalidVersionError) as exc:
            raise click.ClickException(str(exc)) from exc
        except ValidationError as exc:
            raise click.ClickException(
                f"Invalid [tool.release-flow] configuration:\n{exc}"
            ) from exc

    return wrapper


@click.group()
@click.version_option(package_name="release-flow")
def cli() -> None:
    """Conventional-commit versioning and release automation for multi-project repos."""


@cli.command()
@click.option(
    "--bump/--no-bump",
    default=True,
    show_default=True,
    help="Compute next versions from the commits.",
)
@_handle_errors
def changes(bump: bool) -> None:
    """Show what each project would release next, as JSON.

    Progress goes to stderr; stdout carries only the JSON document or the
    "No changes found" line.
    """
    with contextlib.redirect_stdout(sys.stderr):
        details = get_change_details(bump, load_repo_config())
    if details is None:
        click.echo("No changes found")
        return
    click.echo(details.model_dump_json(indent=2))


@cli.command("release-candidate")
@click.option("--dispatch", default=None, help="Workflow to run after the PR is updated.")
@github_output_option
@_handle_errors
def release_candidate(dispatch: str | None, github_output: str | None) -> None:
    """Bump versions and open or refresh the release-candidate PR."""
    run_release_candidate(load_repo_config(), github_output, dispatch)


@cli.command()
@click.option("--suffix", default="", help="Pre-release suffix, e.g. rc.1.")
@click.option("--build-number", default=None, help="CI build number.")
@github_output_option
@_handle_errors
def update(suffix: str, build_number: str | None, github_output: str | None) -> None:
    """Bump versions in place and output each project's version."""
    run_update(load_repo_config(), suffix, build_number, github_output)


@cli.command("create-release")
@click.option("--draft/--no-draft", default=False, show_default=True)
@github_output_option
@_handle_errors
def create_release(draft: bool, github_output: str | None) -> None:
    """Publish the root project's current version as a release and tag it."""
    run_create_release(load_repo_config(), draft, github_output)


@cli.command()
@click.argument("version")
@_handle_errors
def promote(version: str) -> None:
    """Publish the draft release for VERSION."""
    run_promote(version)


@cli.command("check-rc")
@_handle_errors
def check_rc() -> None:
    """Fail while a release-candidate PR for a released version is open."""
    run_check_rc(load_repo_config())
