"""
CLI: ``stockroom worker`` — the supervised worker process.
"""

from __future__ import annotations

import sys

import typer

from stockroom.core.logging import configure_logging
from stockroom.core.settings import get_settings

app = typer.Typer(no_args_is_help=True)


@app.command("serve")
def serve(
    data_path: str = typer.Option(..., "--data-path", "-p", help="Inventory document path"),
) -> None:
    """Open the inventory document and serve until SIGINT/SIGTERM.

    Normally launched by ``stockroom host run``; the path is always passed
    explicitly.
    """
    from stockroom.worker import WorkerLoop

    settings = get_settings()
    configure_logging(
        level=settings.log_level,
        json_format=settings.json_logs,
        service="stockroom-worker",
        stream=sys.stdout,
        error_stream=sys.stderr,
    )
    loop = WorkerLoop(data_path, settings=settings)
    raise typer.Exit(code=loop.start())
