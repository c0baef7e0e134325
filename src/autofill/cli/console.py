"""Console output helpers shared by the CLI commands."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

console = Console()


def error(msg: str) -> None:
    console.print(f"[red]{msg}[/red]")


def warning(msg: str) -> None:
    console.print(f"[yellow]{msg}[/yellow]")


def success(msg: str) -> None:
    console.print(f"[green]{msg}[/green]")


def raw(text: str) -> None:
    """Print upstream or result text exactly as received."""
    console.print(text, markup=False, highlight=False, soft_wrap=True)


def create_table(title: str, columns: list[tuple[str, str]]) -> Table:
    """Build a table from ``(header, style)`` pairs."""
    table = Table(title=title)
    for header, style in columns:
        table.add_column(header, style=style)
    return table
