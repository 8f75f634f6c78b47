"""
CLI entry point: ties together repository client → detector → reporter.

Usage:
  # Scan a repository checkout:
  gha-taint scan path/to/repo

  # Output as JSON:
  gha-taint scan path/to/repo --format json

  # Only report critical findings, analyze files in parallel:
  gha-taint scan path/to/repo --severity critical --workers 4

Exit codes:
  0: no findings
  1: findings detected
  2: error (bad input, unreadable repository, invalid config)
"""

import logging
import os
import sys

import click

from gha_taint.clients import LocalRepoClient
from gha_taint.config import load_config
from gha_taint.detector import dangerous_workflow
from gha_taint.exceptions import ConfigError, RepoAccessError
from gha_taint.reporter import report_console, report_json
from gha_taint.rules.engine import SEVERITY_ORDER, Severity

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FINDINGS = 1
EXIT_ERROR = 2


def _setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity flag."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging.")
def cli(verbose: bool):
    """gha-taint: find GitHub Actions workflows that let pull requests run code with secrets."""
    _setup_logging(verbose)


@cli.command()
@click.argument("path")
@click.option("--format", "output_format", type=click.Choice(["console", "json"]), default="console", help="Output format.")
@click.option("--severity", "min_severity", type=click.Choice(["critical", "high", "medium", "low"]), default=None, help="Minimum severity to report (overrides config file).")
@click.option("--config", "config_path", default=None, help="Path to .gha-taint.yml config file.")
@click.option("--workers", type=click.IntRange(min=1), default=None, help="Number of files analyzed in parallel (overrides config file).")
def scan(path: str, output_format: str, min_severity: str, config_path: str, workers: int):
    """Scan the workflows of the repository at PATH for dangerous patterns.

    Exits with code 0 if no issues found, 1 if issues found, 2 on error.
    """
    path = os.path.abspath(path)
    if not os.path.isdir(path):
        click.echo(f"Error: '{path}' is not a directory.", err=True)
        sys.exit(EXIT_ERROR)

    # Load config file (CLI flags override config values)
    try:
        config = load_config(config_path=config_path, scan_path=path)
    except ConfigError as e:
        click.echo(f"Error in config: {e}", err=True)
        sys.exit(EXIT_ERROR)
    if workers:
        config.max_workers = workers
    min_sev = Severity(min_severity or config.severity)

    try:
        result = dangerous_workflow(LocalRepoClient(path), config)
    except RepoAccessError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_ERROR)

    if not result.files_scanned:
        if output_format == "json":
            click.echo(report_json([]))
        else:
            click.echo("No workflow files found.")
        sys.exit(EXIT_OK)

    findings = [
        f for f in result.findings
        if SEVERITY_ORDER[f.severity] >= SEVERITY_ORDER[min_sev]
    ]

    if output_format == "json":
        click.echo(report_json(findings))
    elif findings:
        report_console(findings, file_path=path)
    else:
        click.echo("\n✅ No dangerous workflow patterns found!")

    sys.exit(EXIT_FINDINGS if findings else EXIT_OK)


if __name__ == "__main__":
    cli()
