"""
CLI: ``stockroom stock`` — one-shot inventory operations.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer

from stockroom.cli.utils import console, data_path_option, make_context, output_result, render_rows
from stockroom.ops import (
    ImportRequest,
    StockOutRequest,
    UpdateLotRequest,
    get_data,
    get_stock_levels,
    import_data,
    receive_stock,
    save_stock_out,
    undo_stock_out,
    update_lot,
)

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show(
    data_path: str | None = data_path_option(),  # noqa: UP007
    as_json: bool = typer.Option(False, "--json", help="Print the raw document"),
) -> None:
    """Show stock-in lots and recent allocations."""
    ctx, _ = make_context(data_path)
    result = get_data(ctx)
    if as_json or not result.success:
        output_result(result, as_json=True)
        return

    render_rows(result.data["stockIn"], ["PO", "stock", "client"], title="Stock in")
    render_rows(
        result.data["stockOut"][:20],
        ["id", "date", "PO", "client", "recipient", "type"],
        title="Stock out (latest 20)",
    )


@app.command("out")
def stock_out(
    po: str = typer.Argument(..., help="Purchase order to allocate against"),
    recipient: str = typer.Option("", "--recipient", "-r"),
    type_: str = typer.Option("out", "--type", "-t"),
    note: str = typer.Option("", "--note", "-n"),
    client: str | None = typer.Option(None, "--client", "-c", help="Override the lot's client"),  # noqa: UP007
    data_path: str | None = data_path_option(),  # noqa: UP007
    as_json: bool = typer.Option(False, "--json"),
) -> None:
    """Allocate one unit of stock against a PO."""
    ctx, _ = make_context(data_path)
    result = save_stock_out(
        ctx,
        StockOutRequest(po=po, recipient=recipient, type=type_, note=note, client=client),
    )
    output_result(result, as_json=as_json, title="Stock out")


@app.command("import")
def import_collection(
    collection: str = typer.Argument(..., help="stockIn, stockOut or systemList"),
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON file with a list of records"),
    data_path: str | None = data_path_option(),  # noqa: UP007
) -> None:
    """Replace a whole collection with the records in a JSON file."""
    ctx, _ = make_context(data_path)
    try:
        items = json.loads(source.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        console.print(f"[red]Cannot read {source}: {exc}[/red]")
        raise typer.Exit(code=1)

    result = import_data(ctx, ImportRequest(collection=collection, items=items))
    output_result(result, title=f"Imported {collection}")


@app.command("receive")
def receive(
    po: str = typer.Argument(...),
    stock: float = typer.Argument(..., min=0),
    client: str = typer.Option("", "--client", "-c"),
    data_path: str | None = data_path_option(),  # noqa: UP007
) -> None:
    """Record a new stock-in lot."""
    ctx, _ = make_context(data_path)
    lot = {"PO": po, "stock": int(stock) if stock.is_integer() else stock}
    if client:
        lot["client"] = client
    output_result(receive_stock(ctx, lot), title="Lot received")


@app.command("levels")
def levels(
    data_path: str | None = data_path_option(),  # noqa: UP007
    as_json: bool = typer.Option(False, "--json"),
) -> None:
    """Remaining stock per PO."""
    ctx, _ = make_context(data_path)
    output_result(get_stock_levels(ctx), as_json=as_json, title="Stock levels")


@app.command("undo")
def undo(
    record_id: str = typer.Argument(..., help="Id of the stock-out record"),
    data_path: str | None = data_path_option(),  # noqa: UP007
    as_json: bool = typer.Option(False, "--json"),
) -> None:
    """Reverse a stock-out and return its unit to stock."""
    ctx, _ = make_context(data_path)
    output_result(undo_stock_out(ctx, record_id), as_json=as_json, title="Stock out undone")


@app.command("edit")
def edit(
    index: int = typer.Argument(..., min=0, help="Position of the lot in stockIn"),
    stock: float | None = typer.Option(None, "--stock", "-s", min=0),  # noqa: UP007
    note: str | None = typer.Option(None, "--note", "-n"),  # noqa: UP007
    client: str | None = typer.Option(None, "--client", "-c"),  # noqa: UP007
    data_path: str | None = data_path_option(),  # noqa: UP007
) -> None:
    """Change the stock, note or client of one lot."""
    ctx, _ = make_context(data_path)
    if stock is not None and stock.is_integer():
        stock = int(stock)
    request = UpdateLotRequest(index=index, stock=stock, note=note, client=client)
    output_result(update_lot(ctx, request), title="Lot updated")
