"""CLI interface for the repository traffic report."""

import json
import sys
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from shared.cli import create_table, error, handle_errors, info, print_table, success, warning
from shared.logger import setup_logger

from .config import resolve_config
from .fetcher import ListError, RepoTrafficFetcher
from .models import RepositoryRecord, TrafficReport

console = Console()


def display_records(records: List[RepositoryRecord], account: str) -> None:
    """
    Display traffic records as a table.

    Args:
        records: Joined records, in display order
        account: Account the records belong to
    """
    table = create_table(title=f"Traffic for {account} (last 14 days)")
    table.add_column("Name", style="bold cyan")
    table.add_column("Views", justify="right", style="yellow")
    table.add_column("Unique Views", justify="right")
    table.add_column("Clones", justify="right", style="yellow")
    table.add_column("Unique Clones", justify="right")

    for record in records:
        table.add_row(
            record.name,
            f"{record.views.count:,}",
            f"{record.views.uniques:,}",
            f"{record.clones.count:,}",
            f"{record.clones.uniques:,}",
        )

    print_table(table)


def display_summary(report: TrafficReport) -> None:
    """Display totals and anything that was left out."""
    views = report.total_views
    clones = report.total_clones

    console.print(
        f"\n[bold yellow]Total:[/bold yellow] {views.count:,} views ({views.uniques:,} unique), "
        f"{clones.count:,} clones ({clones.uniques:,} unique) "
        f"across {len(report.records)} repositories"
    )

    if report.skipped:
        warning(f"Left out {len(report.skipped)} repositories: {', '.join(report.skipped)}")


def report_to_dict(report: TrafficReport) -> dict:
    return {
        "account": report.account,
        "repositories": [r.to_dict() for r in report.records],
        "failures": [f.to_dict() for f in report.failures],
        "skipped": report.skipped,
    }


@click.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Config file with account and token (JSON, YAML or TOML)",
)
@click.option("--account", "-a", help="GitHub user whose repositories to report (or set GITHUB_USERNAME)")
@click.option("--token", help="GitHub personal access token (or set GITHUB_TOKEN env var)")
@click.option("--base-url", help="GitHub API root URL")
@click.option("--timeout", "-t", type=float, help="Per-request timeout in seconds")
@click.option(
    "--max-concurrency",
    type=click.IntRange(min=1),
    help="Limit on concurrent traffic requests (unlimited by default)",
)
@click.option(
    "--output",
    "-o",
    type=click.Choice(["rich", "json"], case_sensitive=False),
    default="rich",
    help="Output format",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@handle_errors
def main(
    config_path: Optional[Path],
    account: Optional[str],
    token: Optional[str],
    base_url: Optional[str],
    timeout: Optional[float],
    max_concurrency: Optional[int],
    output: str,
    verbose: bool,
):
    """
    Repo Traffic - Views and clones for an account's public repositories.

    Forks are left out. GitHub only keeps the last 14 days of traffic, and
    reading it needs a token with push access to the repositories.

    Examples:

        \b
        # Credentials from repo-traffic.yaml in the current directory
        repo-traffic

        \b
        # Explicit account, token from GITHUB_TOKEN
        repo-traffic --account octocat

        \b
        # Config file and JSON output
        repo-traffic --config ~/.config/repo-traffic.toml --output json
    """
    output = output.lower()

    # JSON carries the failures itself; keep stderr quiet unless asked
    if verbose:
        log_level = "DEBUG"
    elif output == "json":
        log_level = "ERROR"
    else:
        log_level = "INFO"
    setup_logger(__package__, level=log_level)

    config = resolve_config(
        config_path,
        account=account,
        token=token,
        base_url=base_url,
        timeout=timeout,
    )
    fetcher = RepoTrafficFetcher.from_config(config, max_concurrency=max_concurrency)

    try:
        if output == "rich":
            info(f"Collecting traffic for {config.account}")
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                transient=True,
            ) as progress:
                progress.add_task("Fetching traffic...", total=None)
                report = fetcher.collect(config.account, config.token)
        else:
            report = fetcher.collect(config.account, config.token)
    except ListError as e:
        error(str(e))
        sys.exit(1)

    if output == "json":
        click.echo(json.dumps(report_to_dict(report), indent=2))
        sys.exit(0)

    if not report.records:
        warning("No repositories with complete traffic data")
        sys.exit(0)

    display_records(report.records, config.account)
    display_summary(report)

    success("Traffic report completed!")
    sys.exit(0)


if __name__ == "__main__":
    main()
