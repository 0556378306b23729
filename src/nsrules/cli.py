"""
CLI entry point for nsrules.

Usage:
    nsrules                          Check sources using ./ns-rules.yaml
    nsrules -c path/to/rules.yaml    Use another configuration file
    nsrules -n 0                     No context lines around violations
    nsrules --json                   JSON lines instead of annotated text

Exit status:
    0  no violations
    1  at least one rule violation
    2  the configuration or rules could not be loaded
"""

import argparse
import logging
import sys
from typing import List, Optional

from . import __version__
from .config import ConfigError, load_config
from .report import Report
from .reporting import render_report, to_jsonl
from .rules.patterns import RuleConfigError
from .runner import run

EXIT_OK = 0
EXIT_VIOLATIONS = 1
EXIT_CONFIG_ERROR = 2


def exit_status(report: Report) -> int:
    return EXIT_OK if report.passed else EXIT_VIOLATIONS


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {value!r}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {value!r}")
    return number


def _positive_int(value: str) -> int:
    number = _non_negative_int(value)
    if number == 0:
        raise argparse.ArgumentTypeError("expected at least 1 job")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nsrules",
        description="Applies namespace referencing rules to Clojure source code.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="The path to the configuration file (default: $NSRULES_CONFIG or ns-rules.yaml)",
    )
    parser.add_argument(
        "-n", "--context-lines",
        type=_non_negative_int,
        default=None,
        help="The number of lines of context to print around each violation",
    )
    parser.add_argument(
        "-j", "--jobs",
        type=_positive_int,
        default=None,
        help="Number of files to check in parallel (default: automatic)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output violations, warnings and the summary as JSON lines",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log progress to stderr (-vv for debug output)",
    )
    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%H:%M:%S',
        stream=sys.stderr,
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        config = load_config(args.config)
        report = run(config, jobs=args.jobs)
    except (ConfigError, RuleConfigError) as e:
        print(f"error[configuration-error]: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    if args.json_output:
        print(to_jsonl(report))
    else:
        context_lines = args.context_lines
        if context_lines is None:
            context_lines = config.context_lines
        print(render_report(report, context_lines), end="")

    return exit_status(report)


if __name__ == "__main__":
    raise SystemExit(main())
