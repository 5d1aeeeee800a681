"""
Root Typer application for the stockroom CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="stockroom",
    help="stockroom — inventory document store and worker supervisor.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("stockroom")
        except PackageNotFoundError:
            from stockroom import __version__ as v
        typer.echo(f"stockroom {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """stockroom CLI — run the host, the worker, or one-shot stock operations."""


from stockroom.cli.host import app as host_app  # noqa: E402
from stockroom.cli.stock import app as stock_app  # noqa: E402
from stockroom.cli.worker import app as worker_app  # noqa: E402

app.add_typer(host_app, name="host", help="Launch and supervise the worker.")
app.add_typer(worker_app, name="worker", help="Worker process (launched by the host).")
app.add_typer(stock_app, name="stock", help="Inventory operations.")
