"""
CLI utility helpers: consoles, settings lookup and output formatting.
"""

from __future__ import annotations

import json
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from jobspine.core.errors import JobSpineError
from jobspine.core.settings import JobSpineSettings, get_settings

console = Console()
err_console = Console(stderr=True)


def settings_from(ctx: typer.Context) -> JobSpineSettings:
    """Settings built by the root callback (or the process defaults)."""
    if isinstance(ctx.obj, JobSpineSettings):
        return ctx.obj
    return get_settings()


def fail(message: str, *, code: int = 1) -> None:
    """Print an error and exit with ``code``."""
    err_console.print(f"[bold red]Error:[/bold red] {message}", highlight=False)
    raise typer.Exit(code=code)


def fail_on_error(error: Exception) -> None:
    """Exit with a one-line message for a framework or job error."""
    if isinstance(error, JobSpineError):
        fail(error.message)
    fail(f"{type(error).__name__}: {error}")


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_table(rows: list[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of dicts as a Rich table (columns from the first row)."""
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(str(v) for v in row.values()))
    console.print(table)
