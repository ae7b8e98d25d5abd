"""
ams2xacml command line interface.

Usage:
    ams2xacml MPI12345# [MPI67890# ...]
    ams2xacml --db corpusstructure.db --policies-dir ./generatedPolicies MPI12345#
    ams2xacml --max-users-per-group 100 --username-format strip MPI12345#
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional
import argparse
import logging
import sqlite3
import sys

from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from ams2xacml import __version__
from ams2xacml.config import ConversionConfig, validate_node_id
from ams2xacml.conversion.converter import ConversionReport, ConversionStatus, PolicyConverter
from ams2xacml.exceptions import ConfigurationError, TemplateError
from ams2xacml.policy.expander import UsernameFormat
from ams2xacml.policy.template import load_template
from ams2xacml.storage.corpus_store import SQLiteCorpusStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_CONFIG_ERROR = 2


def setup_logging(level: str = "INFO"):
    """Set up logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ams2xacml",
        description=(
            "Generate XACML policies from corpus structure access rights. "
            "Policies are generated for the start nodes and all their descendants."
        ),
    )
    parser.add_argument(
        "start_node_ids",
        nargs="+",
        metavar="NODE_ID",
        help="Node IDs where to start the conversion (example: MPI12345#)",
    )
    parser.add_argument(
        "-c", "--db",
        dest="db_path",
        help="Corpus structure SQLite database (default: from AMS2XACML_DB_PATH or corpusstructure.db)",
    )
    parser.add_argument(
        "--db-timeout",
        type=float,
        help="Seconds to wait on a locked database (default: 30)",
    )
    parser.add_argument(
        "-d", "--policies-dir",
        help="Directory to write policy files to (default: ./generatedPolicies/)",
    )
    parser.add_argument(
        "-m", "--max-users-per-group",
        type=int,
        help="Collapse user lists of this size or larger to 'authenticated' (default: unlimited)",
    )
    parser.add_argument(
        "-f", "--username-format",
        choices=[f.value for f in UsernameFormat],
        help="Render user names as stored, without @domain, or both (default: keep)",
    )
    parser.add_argument(
        "-w", "--workers",
        type=int,
        help="Number of nodes converted in parallel (default: 1)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Build policies without writing files",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ConversionConfig:
    """Merge command line options over the environment defaults."""
    for node_id in args.start_node_ids:
        validate_node_id(node_id)

    overrides = {
        "start_node_ids": args.start_node_ids,
        "dry_run": args.dry_run,
    }
    for name in (
        "db_path",
        "db_timeout",
        "policies_dir",
        "max_users_per_group",
        "username_format",
        "workers",
        "log_level",
    ):
        value = getattr(args, name)
        if value is not None:
            overrides[name] = value
    return ConversionConfig(**overrides)


def print_summary(console: Console, report: ConversionReport):
    table = Table(title="Policy Conversion")
    table.add_column("Node", style="cyan")
    table.add_column("Status")
    table.add_column("Subjects", justify="right")
    table.add_column("Output / Reason")

    styles = {
        ConversionStatus.GENERATED: "green",
        ConversionStatus.SKIPPED: "yellow",
        ConversionStatus.FAILED: "red",
    }
    for result in report.results:
        style = styles[result.status]
        table.add_row(
            result.node_id,
            f"[{style}]{result.status.value}[/{style}]",
            str(result.subject_count) if result.status is ConversionStatus.GENERATED else "",
            str(result.path) if result.path else result.reason,
        )

    console.print(table)
    console.print(
        f"[green]{report.generated} generated[/green], "
        f"[yellow]{report.skipped} skipped[/yellow], "
        f"[red]{report.failed} failed[/red]"
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    console = Console(stderr=True)

    try:
        config = config_from_args(args)
    except ConfigurationError as e:
        console.print(f"[red]ERR: {e}[/red]")
        return EXIT_CONFIG_ERROR
    except (ValidationError, ValueError) as e:
        console.print(f"[red]ERR: invalid configuration[/red]\n{e}")
        return EXIT_CONFIG_ERROR

    setup_logging(config.log_level)

    try:
        template = load_template()
    except TemplateError as e:
        logger.error(f"Cannot load policy template: {e}")
        return EXIT_CONFIG_ERROR

    if not Path(config.db_path).is_file():
        logger.error(f"Corpus structure database not found: {config.db_path}")
        return EXIT_CONFIG_ERROR

    try:
        store = SQLiteCorpusStore(config.db_path, timeout=config.db_timeout)
    except sqlite3.Error as e:
        logger.error(f"Cannot open corpus structure database {config.db_path}: {e}")
        return EXIT_CONFIG_ERROR

    with store:
        converter = PolicyConverter(store, template, config)
        report = converter.run()

    print_summary(console, report)
    return EXIT_OK if report.ok else EXIT_FAILURES


if __name__ == "__main__":
    sys.exit(main())
