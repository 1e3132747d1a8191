"""Command-line entry point for ratchet."""

from __future__ import annotations

import argparse
import sys

from ratchet.config import (
    ConfigError,
    load_default,
    load_from_config_string,
    load_from_file,
)
from ratchet.runner import (
    ComparisonType,
    MetricTestFailed,
    Options,
    RatchetError,
    run,
)

VERSION = "0.1.0"

_COMPARISON_DESTS = ("lt", "le", "eq", "ge", "gt")

_LONG = (
    "Ratchet compares a metric output between your current branch/HEAD and a "
    "base branch and applies the test that you specify"
)

_USAGE = """Usage:
  ratchet [flags] <metric command>

Comparison operators (choose one):
      --less-than, --lt <base>       test that HEAD metric < base branch metric
      --less-equal, --le <base>      test that HEAD metric <= base branch metric
      --equal-to, --eq <base>        test that HEAD metric == base branch metric
      --greater-equal, --ge <base>   test that HEAD metric >= base branch metric
      --greater-than, --gt <base>    test that HEAD metric > base branch metric

Other flags:
  -h, --help                   help for ratchet
      --pre <command>          Command to run before metric command
      --post <command>         Command to run after metric command
      --config-file string     Path to config file (YAML or JSON)
      --config string          Config string (YAML or JSON)
  -v, --verbose                Show detailed output including both values
      --version                Show version information
"""


class UsageError(Exception):
    """Raised when the command line or configuration is used incorrectly."""


class _ArgumentError(Exception):
    """Raised when the command line cannot be parsed."""


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        raise _ArgumentError(message)

    def format_usage(self) -> str:
        return _USAGE

    def format_help(self) -> str:
        return f"{_LONG}\n\n{_USAGE}"


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the ratchet command."""
    parser = _Parser(prog="ratchet", add_help=False, allow_abbrev=False)
    parser.add_argument("metric", nargs="?", default="")

    comparisons = (
        ("--less-than", "--lt", "lt"),
        ("--less-equal", "--le", "le"),
        ("--equal-to", "--eq", "eq"),
        ("--greater-equal", "--ge", "ge"),
        ("--greater-than", "--gt", "gt"),
    )
    for long_name, short_name, dest in comparisons:
        parser.add_argument(long_name, short_name, dest=dest, default="", metavar="BASE")

    parser.add_argument("--pre", default="", metavar="COMMAND")
    parser.add_argument("--post", default="", metavar="COMMAND")
    parser.add_argument("--config-file", dest="config_file", default="")
    parser.add_argument("--config", dest="config_str", default="")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--version", action="store_true")
    parser.add_argument("-h", "--help", action="store_true")
    return parser


def run_ratchet(args: argparse.Namespace) -> None:
    """Carry out a ratchet run described by parsed command-line arguments.

    Raises UsageError for misuse, ConfigError for unreadable configuration,
    MetricTestFailed when the metric test fails and RatchetError otherwise.
    """
    if args.version:
        print(f"ratchet v{VERSION}")
        return

    if sum(1 for dest in _COMPARISON_DESTS if getattr(args, dest)) > 1:
        raise UsageError("only one comparison operator can be specified")

    if args.config_str:
        cfg = load_from_config_string(args.config_str)
    elif args.config_file:
        cfg = load_from_file(args.config_file)
    else:
        cfg = load_default()

    cfg.merge_with_flags(
        args.metric, args.pre, args.post,
        args.lt, args.le, args.eq, args.ge, args.gt,
        args.verbose,
    )

    try:
        cfg.validate()
    except ConfigError as exc:
        raise UsageError(str(exc)) from None

    comp_type, base_ref = cfg.comparison_info()
    opts = Options(
        metric=cfg.metric,
        base_ref=base_ref,
        comparison_type=ComparisonType(comp_type),
        pre=cfg.pre,
        post=cfg.post,
        verbose=cfg.verbose,
    )
    run(opts)


def main(argv=None) -> int:
    """Run the ratchet command and return its exit status."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        if args.help:
            sys.stdout.write(parser.format_help())
            return 0
        run_ratchet(args)
    except UsageError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.stderr.write(parser.format_usage())
        return 2
    except MetricTestFailed:
        return 1
    except (_ArgumentError, ConfigError, RatchetError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())