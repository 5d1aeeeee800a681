"""
CLI utility helpers — output formatting and context construction.
"""

from __future__ import annotations

import json
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from stockroom.core.errors import StockroomError
from stockroom.core.logging import configure_logging
from stockroom.core.paths import resolve_document_path
from stockroom.core.settings import StockroomSettings, get_settings
from stockroom.ops.context import OperationContext
from stockroom.ops.result import OperationResult

console = Console()
err_console = Console(stderr=True)


def data_path_option() -> Any:
    return typer.Option(None, "--data-path", "-p", help="Inventory document path")


def make_context(data_path: str | None, *, caller: str = "cli") -> tuple[OperationContext, StockroomSettings]:
    """Build an ``OperationContext`` for a one-shot CLI command."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.json_logs, service="stockroom-cli")
    try:
        path = resolve_document_path(data_path, settings)
    except StockroomError as exc:
        err_console.print(f"[bold red]Error[/bold red] ({exc.code}): {exc.message}")
        raise typer.Exit(code=1) from exc
    ctx = OperationContext.for_path(
        path,
        caller=caller,
        parse_failure_policy=settings.parse_failure_policy,
        keep_backup=settings.keep_backup,
        lock_timeout=settings.lock_timeout_seconds,
    )
    return ctx, settings


def output_result(
    result: OperationResult,
    *,
    as_json: bool = False,
    title: str = "",
) -> None:
    """Render an ``OperationResult`` to the terminal."""
    if not result.success:
        err = result.error
        msg = err.message if err else "Unknown error"
        code = err.code if err else "ERROR"
        err_console.print(f"[bold red]Error[/bold red] ({code}): {msg}")
        raise typer.Exit(code=1)

    data = result.data
    if as_json or not isinstance(data, dict):
        console.print_json(json.dumps(data, default=str, ensure_ascii=False))
        return

    table = Table(title=title or None, show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in data.items():
        rendered = json.dumps(value, ensure_ascii=False) if isinstance(value, dict | list) else str(value)
        table.add_row(str(key), rendered)
    console.print(table)


def render_rows(rows: list[dict[str, Any]], columns: list[str], *, title: str = "") -> None:
    """Render a list of records as a table."""
    if not rows:
        console.print("[dim]No records.[/dim]")
        return
    table = Table(title=title or None, show_header=True)
    for col in columns:
        table.add_column(col)
    for row in rows:
        table.add_row(*("" if row.get(col) is None else str(row[col]) for col in columns))
    console.print(table)
