# apiexpect/cli.py
"""
Run scenario files from the command line.

Usage:
    # Run one file
    apiexpect scenarios/counter.yaml

    # Run every .yaml/.yml/.json under a directory, JSON report on stdout
    apiexpect scenarios/ --json

    # Verbose step logging
    apiexpect scenarios/ --log-level DEBUG

Exit codes: 0 all passed, 1 test failures, 2 scenario files could not be loaded.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from apiexpect.config import ExpectSettings
from apiexpect.loader import load_paths
from apiexpect.types import LoaderError, SuiteResult

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_LOAD_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="apiexpect",
        description="Run HTTP/gRPC integration scenarios with partial response expectations.",
    )
    parser.add_argument("paths", nargs="+", help="Scenario files or directories")
    parser.add_argument("--log-level", default=None, help="Override APIEXPECT_LOG_LEVEL")
    parser.add_argument("--json", action="store_true", help="Print the JSON report instead of a table")
    return parser


def render_summary(result: SuiteResult, console: Console) -> None:
    table = Table(title="Scenario results")
    table.add_column("Scenario")
    table.add_column("Status")
    table.add_column("Steps", justify="right")
    table.add_column("Duration (s)", justify="right")

    for sc in result.scenarios:
        status = "[green]PASS[/green]" if sc.ok else f"[red]FAIL ({len(sc.failures)})[/red]"
        table.add_row(escape(sc.name), status, str(sc.steps_run), f"{sc.duration_s:.3f}")
    console.print(table)

    for failure in result.failures:
        console.print(f"[red]✗[/red] {escape(str(failure))}", highlight=False, soft_wrap=True)


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    settings = ExpectSettings()

    logging.basicConfig(
        level=(args.log_level or settings.log_level).upper(),
        format=settings.log_format,
    )
    logger = logging.getLogger("apiexpect.cli")
    console = Console()

    try:
        suite = load_paths(args.paths, settings)
    except LoaderError as e:
        logger.error(f"❌ {e}")
        return EXIT_LOAD_ERROR

    with suite:
        result = suite.run()

    if args.json:
        console.print_json(result.to_json())
    else:
        render_summary(result, console)

    return EXIT_OK if result.ok else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
