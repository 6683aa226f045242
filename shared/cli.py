"""Console helpers shared by the tool CLIs."""

import functools
import sys
from typing import Callable, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


def info(message: str) -> None:
    """Print an informational message."""
    err_console.print(f"[cyan]ℹ[/cyan] {escape(message)}")


def success(message: str) -> None:
    """Print a success message."""
    err_console.print(f"[green]✓[/green] {escape(message)}")


def warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[yellow]⚠[/yellow] {escape(message)}")


def error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[bold red]✗[/bold red] {escape(message)}")


def create_table(title: Optional[str] = None, **kwargs) -> Table:
    """Create a table with the common tool style."""
    kwargs.setdefault("show_header", True)
    kwargs.setdefault("header_style", "bold magenta")
    return Table(title=title, **kwargs)


def print_table(table: Table) -> None:
    """Print a table to stdout."""
    console.print(table)


def handle_errors(func: Callable) -> Callable:
    """
    Turn uncaught exceptions in a CLI command into an error message and exit code.

    click's own exits pass through untouched.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (click.exceptions.Exit, click.ClickException, SystemExit):
            raise
        except KeyboardInterrupt:
            warning("Interrupted by user")
            sys.exit(130)
        except Exception as e:
            error(str(e))
            sys.exit(1)

    return wrapper
