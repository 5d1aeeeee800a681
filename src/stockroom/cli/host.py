"""
CLI: ``stockroom host`` — launch and supervise the worker.
"""

from __future__ import annotations

import asyncio

import typer

from stockroom.cli.utils import err_console
from stockroom.core.errors import ProcessSpawnError
from stockroom.core.logging import configure_logging, get_logger
from stockroom.core.settings import get_settings

app = typer.Typer(no_args_is_help=True)
logger = get_logger(__name__)


@app.command("run")
def run(
    data_path: str | None = typer.Option(None, "--data-path", "-p", help="Inventory document path"),  # noqa: UP007
    kill_timeout: float | None = typer.Option(  # noqa: UP007
        None, "--kill-timeout", help="Seconds between terminate and kill"
    ),
) -> None:
    """Start the worker and keep it running until interrupted.

    Example::

        stockroom host run --data-path ~/.stockroom/inventory.json
    """
    from stockroom.supervisor import run_host

    settings = get_settings(kill_timeout_seconds=kill_timeout)
    configure_logging(level=settings.log_level, json_format=settings.json_logs, service="stockroom-host")

    try:
        code = asyncio.run(run_host(settings, data_path=data_path))
    except ProcessSpawnError as exc:
        logger.critical("host_startup_aborted", **exc.to_dict())
        err_console.print(f"[bold red]Worker failed to start:[/bold red] {exc.message}")
        raise typer.Exit(code=2)
    except KeyboardInterrupt:
        code = 0

    raise typer.Exit(code=code)
