"""Removal of worktrees left behind by interrupted runs."""

from __future__ import annotations

import glob
import os
import shutil
import subprocess

from ratchet.git import WORKTREE_PREFIX, temp_root


class CleanupError(Exception):
    """Raised when some orphaned worktrees could not be removed."""

    def __init__(self, message: str, cleaned: list[str] | None = None) -> None:
        super().__init__(message)
        self.cleaned = cleaned or []


def _git_remove(path: str) -> bool:
    try:
        proc = subprocess.run(
            ["git", "worktree", "remove", path, "--force"],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError:
        return False
    return proc.returncode == 0


def _remove_path(path: str) -> None:
    try:
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.remove(path)
    except FileNotFoundError:
        pass


def cleanup_orphaned_worktrees() -> list[str]:
    """Remove ratchet worktrees from the temp directory; return the removed paths."""
    pattern = os.path.join(glob.escape(temp_root()), f"{WORKTREE_PREFIX}*")

    cleaned: list[str] = []
    errors: list[str] = []
    for path in sorted(glob.glob(pattern)):
        if not _git_remove(path):
            try:
                _remove_path(path)
            except OSError as exc:
                errors.append(f"failed to remove {path}: {exc}")
                continue
        cleaned.append(path)

    if cleaned:
        print(f"Cleaned up {len(cleaned)} orphaned worktrees:")
        for path in cleaned:
            print(f"  - {path}")

    if errors:
        raise CleanupError("cleanup errors:\n" + "\n".join(errors), cleaned)

    return cleaned