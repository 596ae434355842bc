from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table


def _format_cell(value: Any) -> str:
    if value is None:
        return "[dim]NULL[/dim]"
    return str(value)


def build_rows_table(
    rows: Sequence[Dict[str, Any]],
    title: Optional[str] = None,
    columns: Optional[List[str]] = None,
) -> Table:
    """
    Build a rich table for a list of row mappings.

    Column order follows the first row unless ``columns`` is given; keys
    missing from later rows render as empty cells.
    """
    headers = columns or (list(rows[0].keys()) if rows else [])
    table = Table(
        title=title,
        box=box.ROUNDED,
        caption=f"{len(rows)} row(s)",
    )
    for index, header in enumerate(headers):
        style = "cyan" if index == 0 else None
        table.add_column(header, style=style, no_wrap=index == 0)

    for row in rows:
        table.add_row(*(_format_cell(row[h]) if h in row else "" for h in headers))
    return table


def print_rows(
    rows: Sequence[Dict[str, Any]],
    title: Optional[str] = None,
    console: Optional[Console] = None,
) -> None:
    """
    Render query results as a rich table.
    """
    console = console or Console()

    if not rows:
        console.print("[yellow]No rows to display.[/yellow]")
        return

    console.print(build_rows_table(rows, title=title))


__all__ = ["build_rows_table", "print_rows"]
