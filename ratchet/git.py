"""Git helpers: repository checks, branch lookup and temporary worktrees."""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
import tempfile
import time
from dataclasses import dataclass

WORKTREE_PREFIX = "ratchet-worktree-"


class GitError(Exception):
    """Raised when a git operation fails."""


def _status(returncode: int) -> str:
    if returncode < 0:
        return f"signal {-returncode}"
    return f"exit status {returncode}"


def _git(*args: str, combined: bool = False) -> subprocess.CompletedProcess:
    """Run git with the given arguments, capturing its output."""
    return subprocess.run(
        ["git", *args],
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT if combined else subprocess.PIPE,
        encoding="utf-8",
        errors="replace",
        check=False,
    )


def _succeeds(*args: str) -> bool:
    try:
        return _git(*args).returncode == 0
    except OSError:
        return False


def _combined(*args: str) -> tuple[bool, str, str]:
    """Run git and return (success, status text, combined output)."""
    try:
        proc = _git(*args, combined=True)
    except OSError as exc:
        return False, str(exc), ""
    return proc.returncode == 0, _status(proc.returncode), proc.stdout or ""


def temp_root() -> str:
    """Directory that holds temporary worktrees (RUNNER_TEMP if set)."""
    return os.environ.get("RUNNER_TEMP") or tempfile.gettempdir()


def is_git_repository() -> bool:
    """Whether the current directory is inside a git repository."""
    return _succeeds("rev-parse", "--git-dir")


def get_current_branch() -> str:
    """Name of the branch checked out in the current directory."""
    try:
        proc = _git("rev-parse", "--abbrev-ref", "HEAD")
    except OSError as exc:
        raise GitError(f"failed to get current branch: {exc}") from exc
    if proc.returncode != 0:
        raise GitError(f"failed to get current branch: {_status(proc.returncode)}")
    return proc.stdout.strip()


def ensure_branch_exists(branch: str) -> None:
    """Make sure branch is available locally, fetching it from origin if needed."""
    if _succeeds("rev-parse", "--verify", branch):
        return

    github_ref = os.environ.get("GITHUB_BASE_REF", "")
    if github_ref and branch == "main":
        branch = github_ref

    remote_branch = branch if branch.startswith("origin/") else f"origin/{branch}"

    ok, status, output = _combined(
        "fetch", "origin", remote_branch.removeprefix("origin/")
    )
    if not ok:
        raise GitError(f"failed to fetch branch {branch}: {status}\nOutput: {output}")

    if not _succeeds("rev-parse", "--verify", remote_branch):
        raise GitError(f"branch {branch} not found locally or on remote")


@dataclass(frozen=True)
class Worktree:
    """A temporary git worktree; usable as a context manager that removes it."""

    path: str

    def remove(self) -> None:
        """Remove the worktree from git and delete its directory."""
        ok, status, _ = _combined("worktree", "remove", self.path, "--force")
        if not ok:
            print(
                f"Warning: failed to remove git worktree {self.path}: {status}",
                file=sys.stderr,
            )
        try:
            shutil.rmtree(self.path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            print(
                f"Warning: failed to remove worktree directory {self.path}: {exc}",
                file=sys.stderr,
            )

    def __enter__(self) -> Worktree:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.remove()


def create_worktree(branch: str) -> Worktree:
    """Check branch out into a fresh temporary worktree."""
    worktree_dir = os.path.join(
        temp_root(), f"{WORKTREE_PREFIX}{os.getpid()}-{time.time_ns()}"
    )

    branch_ref = branch
    if not branch.startswith("origin/") and not _succeeds("rev-parse", "--verify", branch):
        branch_ref = f"origin/{branch}"

    ok, status, output = _combined("worktree", "add", worktree_dir, branch_ref)
    if not ok:
        if "is already used by worktree" in output or "is already checked out" in output:
            ok, status, output = _combined(
                "worktree", "add", "--detach", worktree_dir, branch_ref
            )
            if not ok:
                raise GitError(f"failed to create worktree: {status}\nOutput: {output}")
        else:
            raise GitError(f"failed to create worktree: {status}\nOutput: {output}")

    return Worktree(worktree_dir)