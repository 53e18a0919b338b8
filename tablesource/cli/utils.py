"""
Utility functions for CLI operations.
"""

import click
from typing import List, Optional
from pathlib import Path
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TimeRemainingColumn
from rich.table import Table

console = Console()


def create_progress_bar(description: str = "Processing") -> Progress:
    """
    Create a rich progress bar.

    Args:
        description: Description for the progress bar

    Returns:
        Progress bar instance
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total} splits"),
        TimeRemainingColumn(),
        console=console
    )


def display_table(data: List[dict], title: Optional[str] = None, columns: Optional[List[str]] = None) -> None:
    """
    Display data in a table format.

    Args:
        data: List of dictionaries to display
        title: Optional table title
        columns: Optional list of column names to display
    """
    if not data:
        console.print("[yellow]No data to display[/yellow]")
        return

    if columns is None:
        columns = list(data[0].keys())

    table = Table(title=title)
    for col in columns:
        table.add_column(col.replace('_', ' ').title(), style="cyan")
    for row in data:
        table.add_row(*[str(row.get(col, '')) for col in columns])

    console.print(table)


def format_error(error: Exception, show_traceback: bool = False) -> str:
    """
    Format error message for display.

    Args:
        error: Exception to format
        show_traceback: Whether to include traceback

    Returns:
        Formatted error message
    """
    message = f"[red]Error: {escape(str(error))}[/red]"
    cause = error.__cause__
    if cause is not None:
        message += f"\n[red]Caused by {type(cause).__name__}: {escape(str(cause))}[/red]"

    if show_traceback:
        import traceback
        tb = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        message += f"\n[dim]{escape(tb)}[/dim]"

    return message


def validate_output_path(path: str) -> Path:
    """
    Validate an output file path, creating its parent directory.

    Raises:
        click.BadParameter: If the path is an existing directory
    """
    path_obj = Path(path)
    if path_obj.is_dir():
        raise click.BadParameter(f"Path is a directory: {path}")
    path_obj.parent.mkdir(parents=True, exist_ok=True)
    return path_obj


def mask_secret(value: Optional[str]) -> str:
    """Mask a sensitive value for display."""
    return '*' * 8 if value else 'Not set'
