"""Git reads and ordered git mutations.

Mutating operations are expressed as explicit step sequences: each step
runs only after the previous one succeeded, every transition is recorded
as a StepResult, and the first failure stops the sequence. Completed
steps are never rolled back.
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel, Field

from .models import Commit
from .shell import CommandError, git, run

# Fields are NUL-separated, records end with a literal "%%" line.
LOG_FORMAT = "%H%x00%an <%ae>%x00%ad%x00%B%x00%%%%"
RECORD_SEPARATOR = "%%\n"


class StepResult(BaseModel):
    """Outcome of one step in a git sequence."""

    name: str
    command: list[str]
    ok: bool
    returncode: int = 0
    detail: str = ""


class SequenceResult(BaseModel):
    """Outcome of a git sequence.

    Attributes:
        steps: Results of the steps that ran, in order. Steps after the
               first failure are absent.
    """

    steps: list[StepResult] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(s.ok for s in self.steps)

    @property
    def failed_step(self) -> StepResult | None:
        return next((s for s in self.steps if not s.ok), None)

    def raise_for_failure(self) -> None:
        """Raise a CommandError for the failed step, if any."""
        failed = self.failed_step
        if failed is not None:
            raise CommandError(failed.command, failed.returncode, failed.detail)


def parse_log(output: str) -> list[Commit]:
    """Parse ``git log`` output produced with LOG_FORMAT."""
    commits: list[Commit] = []
    # The final record has no trailing newline after its "%%".
    for record in (output + "\n").split(RECORD_SEPARATOR):
        if not record.strip():
            continue
        sha, author, date, message = record.lstrip("\n").split("\0")[:4]
        commits.append(
            Commit(sha=sha, author=author, date=date, message=message.strip())
        )
    return commits


def get_commits(path: str, from_ref: str = "", to_ref: str = "HEAD") -> list[Commit]:
    """List commits touching ``path`` in ``from_ref..to_ref``.

    An empty from_ref means the full history up to to_ref.

    Raises:
        CommandError: If git log fails.
    """
    rev_range = "..".join(ref for ref in (from_ref, to_ref) if ref)
    output = git(
        "log",
        rev_range,
        "--date=iso8601-strict",
        f"--pretty=format:{LOG_FORMAT}",
        "--",
        path,
    )
    return parse_log(output)


def get_repo_path() -> str:
    """Return the absolute path of the repository root."""
    return git("rev-parse", "--show-toplevel")


def run_sequence(steps: Sequence[tuple[str, list[str]]]) -> SequenceResult:
    """Run named commands in order, stopping at the first failure.

    Args:
        steps: (name, argv) pairs; argv includes the executable.
    """
    result = SequenceResult()
    for name, argv in steps:
        completed = run(*argv, check=False)
        ok = completed.returncode == 0
        result.steps.append(
            StepResult(
                name=name,
                command=argv,
                ok=ok,
                returncode=completed.returncode,
                detail="" if ok else (completed.stderr or "").strip(),
            )
        )
        if not ok:
            break
    return result


def commit_and_push_changes(
    branch_name: str, message: str, remote: str = "origin"
) -> SequenceResult:
    """Commit the working tree onto ``branch_name`` and force-push it.

    checkout → stage → commit → push; each step depends on the working
    tree left by the previous one.
    """
    return run_sequence(
        [
            ("checkout", ["git", "checkout", "-B", branch_name]),
            ("stage", ["git", "add", "-A"]),
            ("commit", ["git", "commit", "-am", message]),
            ("push", ["git", "push", remote, branch_name, "-f"]),
        ]
    )


def create_and_push_tags(tag_names: Sequence[str], remote: str = "origin") -> SequenceResult:
    """Create every tag locally, then push every tag.

    Pushing starts only after all tags were created, so a failed creation
    never leaves some tags published and others missing.
    """
    created = run_sequence(
        [(f"tag {t}", ["git", "tag", t, "--force"]) for t in tag_names]
    )
    if not created.ok:
        return created

    pushed = run_sequence(
        [
            (f"push {t}", ["git", "push", remote, f"refs/tags/{t}", "--force"])
            for t in tag_names
        ]
    )
    return SequenceResult(steps=created.steps + pushed.steps)
