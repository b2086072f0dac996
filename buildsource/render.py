"""
Rendering functions for buildsource output.

This module handles all pretty-printing and table formatting.
Core functions return data, this module makes it human-readable.
"""

from rich.table import Table
from rich.console import Console
from rich import box
from typing import List, Dict, Any, Optional

console = Console()


def render_table(headers: List[str], rows: List[List[str]], title: Optional[str] = None) -> None:
    """
    Render a generic table with the given headers and rows.

    Args:
        headers: List of column headers
        rows: List of rows, where each row is a list of values
        title: Optional table title
    """
    if not rows:
        console.print("[yellow]No data to display.[/yellow]")
        return

    table = Table(
        title=title,
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )

    for header in headers:
        table.add_column(header)

    for row in rows:
        table.add_row(*[str(val) for val in row])

    console.print(table)


def render_history_table(updates: List[Dict[str, Any]], title: Optional[str] = None) -> None:
    """
    Render mined changelog entries, newest release first.

    Args:
        updates: PackageUpdate dictionaries
        title: Optional table title
    """
    if not updates:
        console.print("[yellow]No usable history.[/yellow]")
        return

    table = Table(
        title=title,
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )
    table.add_column("Release", justify="right", style="cyan")
    table.add_column("Version")
    table.add_column("Date")
    table.add_column("Tag")
    table.add_column("Author")
    table.add_column("Type")

    for update in updates:
        kind = "[red]security[/red]" if update.get('security') else ""
        table.add_row(
            str(update.get('release', '')),
            update.get('version', ''),
            update.get('date', ''),
            update.get('tag', ''),
            update.get('author', ''),
            kind,
        )

    console.print(table)


def render_source_table(source: Dict[str, Any]) -> None:
    """Render a fetched source as a two-column key/value table."""
    rows = [[key, value] for key, value in source.items()]
    render_table(["Field", "Value"], rows, title=source.get('identifier'))
