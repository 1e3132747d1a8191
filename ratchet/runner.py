"""Measuring a metric on HEAD and a base branch, and comparing the two."""

from __future__ import annotations

import math
import operator
import signal
import sys
import threading
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable, Iterator

from ratchet.executor import CommandError, execute
from ratchet.git import (
    GitError,
    create_worktree,
    ensure_branch_exists,
    get_current_branch,
    is_git_repository,
)
from ratchet.parser import parse_number

HEAD = "HEAD"


class ComparisonType(Enum):
    """How the HEAD metric must relate to the base branch metric.

    Values are the short operator names used in configuration.
    """

    NO_COMPARISON = ""
    LESS_THAN = "lt"
    LESS_EQUAL = "le"
    EQUAL = "eq"
    GREATER_EQUAL = "ge"
    GREATER_THAN = "gt"

    def __str__(self) -> str:
        return _FLAG_NAMES.get(self, "unknown")

    @property
    def description(self) -> str:
        """Phrase used when reporting the result of the comparison."""
        return _RULES[self][1] if self in _RULES else ""

    def holds(self, current: float, base: float) -> bool:
        """Whether current relates to base as this comparison requires."""
        if self not in _RULES:
            raise ValueError(f"{self!r} does not compare values")
        return _RULES[self][0](current, base)


_FLAG_NAMES = {
    ComparisonType.LESS_THAN: "less-than",
    ComparisonType.LESS_EQUAL: "less-equal",
    ComparisonType.EQUAL: "equal-to",
    ComparisonType.GREATER_EQUAL: "greater-equal",
    ComparisonType.GREATER_THAN: "greater-than",
}

_RULES: dict[ComparisonType, tuple[Callable[[float, float], bool], str]] = {
    ComparisonType.LESS_THAN: (operator.lt, "less than"),
    ComparisonType.LESS_EQUAL: (operator.le, "less than or equal to"),
    ComparisonType.EQUAL: (operator.eq, "equal to"),
    ComparisonType.GREATER_EQUAL: (operator.ge, "greater than or equal to"),
    ComparisonType.GREATER_THAN: (operator.gt, "greater than"),
}


@dataclass
class Options:
    """What to measure, where to compare it and how."""

    metric: str
    base_ref: str = ""
    comparison_type: ComparisonType = ComparisonType.NO_COMPARISON
    pre: str = ""
    post: str = ""
    verbose: bool = False


class RatchetError(Exception):
    """Raised when a ratchet run cannot be carried out."""


class MetricTestFailed(RatchetError):
    """Raised when a command fails or the metric comparison does not hold."""

    def __init__(self, message: str = "metric test failed") -> None:
        super().__init__(message)


def build_progress_line(branch_name, base_ref, pre_cmd, has_metric, post_cmd,
                        pre_complete, metric_complete, post_complete) -> str:
    """Progress line with a checkbox for each step run on branch_name."""
    parts = []
    if pre_cmd:
        parts.append("pre [x]" if pre_complete else "pre [ ]")
    if has_metric:
        parts.append("metric [x]" if metric_complete else "metric [ ]")
    if post_cmd:
        parts.append("post [x]" if post_complete else "post [ ]")

    width = max(len(base_ref), len(HEAD))
    spacing = " " * max(width - len(branch_name) + 1, 0)
    body = " ; ".join(parts) if parts else "metric [ ]"
    return f"{branch_name}:{spacing}{body}"


def _format_number(value: float) -> str:
    """Shortest representation, switching to exponent form as %g does."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"

    sign, digits, exponent = Decimal(repr(value)).as_tuple()
    prefix = "-" if sign else ""
    if value == 0:
        return f"{prefix}0"

    digits = list(digits)
    while len(digits) > 1 and digits[-1] == 0:
        digits.pop()
        exponent += 1
    text = "".join(map(str, digits))
    point = len(text) + exponent
    exp = point - 1

    if exp < -4 or exp >= 6:
        mantissa = text[0] + (f".{text[1:]}" if len(text) > 1 else "")
        return f"{prefix}{mantissa}e{'-' if exp < 0 else '+'}{abs(exp):02d}"
    if point <= 0:
        return f"{prefix}0.{'0' * -point}{text}"
    if point >= len(text):
        return f"{prefix}{text}{'0' * (point - len(text))}"
    return f"{prefix}{text[:point]}.{text[point:]}"


def _out(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


def _err(text: str) -> None:
    print(text, file=sys.stderr, flush=True)


@contextmanager
def _terminate_as_interrupt() -> Iterator[None]:
    """Treat SIGTERM like Ctrl-C so that cleanup still runs."""
    if not hasattr(signal, "SIGTERM") or threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum, frame):
        raise KeyboardInterrupt

    previous = signal.signal(signal.SIGTERM, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous if previous is not None else signal.SIG_DFL)


def _measure(opts: Options, *, label: str, location: str, working_dir,
             show: bool, failure_tail: str) -> str:
    """Run pre, metric and post commands; return the metric's output."""
    state = {"pre": False, "metric": False, "post": False}

    def render() -> str:
        return build_progress_line(label, opts.base_ref, opts.pre, True, opts.post,
                                   state["pre"], state["metric"], state["post"])

    steps = (
        ("pre", opts.pre, "Command"),
        ("metric", opts.metric, "Metric command"),
        ("post", opts.post, "Command"),
    )

    if show:
        _out(render())

    output = ""
    for step, command, noun in steps:
        if step != "metric" and not command:
            continue
        try:
            result = execute(command, working_dir)
        except CommandError as exc:
            if exc.interrupted:
                raise KeyboardInterrupt from None
            if show:
                _out("\r" + render() + failure_tail)
            _err(f"{noun} '{command}' failed in {location}")
            _err("Failed")
            raise MetricTestFailed() from None
        if step == "metric":
            output = result
        state[step] = True
        if show:
            _out("\r" + render())

    if show:
        _out("\n")
    return output


def _parse(output: str, location: str) -> float:
    try:
        return parse_number(output)
    except ValueError:
        raise RatchetError(
            f"command output from {location} is not a number: '{output}'"
        ) from None


def run(opts: Options) -> None:
    """Measure the metric and apply the comparison described by opts.

    Prints the metric when there is no comparison, otherwise the outcome.
    Raises MetricTestFailed when a command fails or the comparison does not
    hold, and RatchetError for other problems.
    """
    if not is_git_repository():
        raise RatchetError("not a git repository")

    try:
        current_branch = get_current_branch()
    except GitError:
        current_branch = HEAD

    comparing = opts.comparison_type is not ComparisonType.NO_COMPARISON
    show = comparing and opts.verbose

    with _terminate_as_interrupt(), ExitStack() as stack:
        base_value = 0.0
        if comparing:
            try:
                ensure_branch_exists(opts.base_ref)
            except GitError:
                raise RatchetError(f"base branch '{opts.base_ref}' not found") from None
            try:
                worktree = create_worktree(opts.base_ref)
            except GitError:
                raise RatchetError(
                    f"failed to create worktree for branch '{opts.base_ref}'"
                ) from None
            stack.enter_context(worktree)

            head_line = build_progress_line(HEAD, opts.base_ref, opts.pre, True,
                                            opts.post, False, False, False)
            base_output = _measure(
                opts,
                label=opts.base_ref,
                location=opts.base_ref,
                working_dir=worktree.path,
                show=show,
                failure_tail=f"\n{head_line}\n\n",
            )
            base_value = _parse(base_output, opts.base_ref)

        current_output = _measure(
            opts,
            label=HEAD,
            location=current_branch,
            working_dir=None,
            show=show,
            failure_tail="\n\n",
        )
        current_value = _parse(current_output, current_branch)

    if not comparing:
        _out(f"{_format_number(current_value)}\n")
        return

    kind = opts.comparison_type
    current_text = _format_number(current_value)
    base_text = _format_number(base_value)
    if kind.holds(current_value, base_value):
        if opts.verbose:
            _out("\n")
            _out(f"{current_branch} metric ({current_text}) is {kind.description} "
                 f"{opts.base_ref} ({base_text})\n")
        _out("Succeeded\n")
        return

    if opts.verbose:
        _out("\n")
    _err(f"{current_branch} metric ({current_text}) is NOT {kind.description} "
         f"{opts.base_ref} ({base_text})")
    _err("Failed")
    raise MetricTestFailed()