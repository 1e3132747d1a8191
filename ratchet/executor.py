"""Running shell commands and capturing their output."""

from __future__ import annotations

import os
import signal
import subprocess
import sys
import threading
import time
from contextlib import contextmanager
from typing import Iterator

_IS_WINDOWS = os.name == "nt"


class CommandError(Exception):
    """Raised when a command cannot start, fails or is interrupted."""

    def __init__(self, message: str, *, returncode: int | None = None,
                 stderr: str = "", interrupted: bool = False) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr
        self.interrupted = interrupted


@contextmanager
def _terminate_as_interrupt() -> Iterator[None]:
    """Turn SIGTERM into KeyboardInterrupt while a command runs."""
    if _IS_WINDOWS or threading.current_thread() is not threading.main_thread():
        yield
        return

    previous = signal.signal(signal.SIGTERM, signal.default_int_handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous if previous is not None else signal.SIG_DFL)


def _warn(message: str) -> None:
    print(f"Warning: {message}", file=sys.stderr)


def _kill(proc: subprocess.Popen) -> None:
    if _IS_WINDOWS:
        try:
            proc.kill()
        except OSError as exc:
            _warn(f"failed to kill process: {exc}")
        return

    try:
        pgid = os.getpgid(proc.pid)
    except OSError:
        try:
            proc.kill()
        except OSError as exc:
            _warn(f"failed to kill process: {exc}")
        return

    try:
        os.killpg(pgid, signal.SIGTERM)
    except OSError as exc:
        _warn(f"failed to send SIGTERM to process group: {exc}")
    time.sleep(0.1)
    try:
        os.killpg(pgid, signal.SIGKILL)
    except OSError as exc:
        _warn(f"failed to send SIGKILL to process group: {exc}")


def _describe_exit(returncode: int) -> str:
    if returncode >= 0:
        return f"exit status {returncode}"
    try:
        name = signal.strsignal(-returncode) or f"signal {-returncode}"
    except ValueError:
        name = f"signal {-returncode}"
    return f"signal: {name.lower()}"


def execute(command: str, working_dir=None) -> str:
    """Run command in the system shell and return its trimmed stdout.

    Raises CommandError if the command cannot start, exits unsuccessfully,
    or is interrupted.
    """
    argv = ["cmd", "/C", command] if _IS_WINDOWS else ["sh", "-c", command]
    cwd = os.fspath(working_dir) if working_dir else None

    try:
        proc = subprocess.Popen(
            argv,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            start_new_session=not _IS_WINDOWS,
        )
    except OSError as exc:
        raise CommandError(f"failed to start command: {exc}") from exc

    with proc:
        try:
            with _terminate_as_interrupt():
                stdout, stderr = proc.communicate()
        except KeyboardInterrupt:
            _kill(proc)
            proc.wait()
            raise CommandError("command interrupted", interrupted=True) from None

    out_text = stdout.decode("utf-8", errors="replace")
    err_text = stderr.decode("utf-8", errors="replace").strip()

    if proc.returncode != 0:
        message = f"command failed: {_describe_exit(proc.returncode)}"
        if err_text:
            message += f"\nstderr: {err_text}"
        raise CommandError(message, returncode=proc.returncode, stderr=err_text)

    return out_text.strip()