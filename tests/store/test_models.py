"""Tests for stockroom.store.models."""

import pytest

from stockroom.store.models import Document, StockLot, StockOutRecord, as_text


def test_stock_lot_keeps_unknown_fields():
    lot = StockLot.model_validate({"PO": "PO1", "stock": 1, "batch": "B1", "size": "L"})
    assert lot.po == "PO1"
    assert lot.extras == {"batch": "B1", "size": "L"}
    assert lot.to_dict() == {"PO": "PO1", "stock": 1, "batch": "B1", "size": "L"}


def test_assigned_fields_are_serialised():
    lot = StockLot.model_validate({"PO": "PO1"})
    lot.stock = 4
    assert lot.to_dict() == {"PO": "PO1", "stock": 4}


def test_numeric_po_keeps_its_stored_type():
    lot = StockLot.model_validate({"PO": 12345, "stock": 1, "client": 7})
    assert lot.po == 12345
    assert as_text(lot.po) == "12345"
    assert lot.to_dict() == {"PO": 12345, "stock": 1, "client": 7}


@pytest.mark.parametrize("stock", [True, [], {}, [3], {"qty": 2}, None, "n/a"])
def test_any_stock_value_loads_verbatim(stock):
    lot = StockLot.model_validate({"PO": "PO1", "stock": stock})
    assert lot.stock == stock
    assert type(lot.stock) is type(stock)
    assert lot.to_dict()["stock"] == stock


def test_stock_out_record_accepts_null_and_numeric_fields():
    raw = {"id": 17, "date": None, "PO": 1001, "client": None, "recipient": 7, "type": None, "note": None}
    record = StockOutRecord.model_validate(raw)
    assert record.client is None
    assert record.to_dict() == raw


@pytest.mark.parametrize(
    ("value", "text"),
    [(None, ""), ("PO1", "PO1"), (1001, "1001"), (1001.0, "1001"), (2.5, "2.5"), (True, "True")],
)
def test_as_text(value, text):
    assert as_text(value) == text


def test_stock_out_record_uses_on_disk_names():
    record = StockOutRecord(
        id="1", date="2026-10-18", po="PO1", client="Acme", recipient="Bob", type="out", note=""
    )
    assert record.to_dict() == {
        "id": "1",
        "date": "2026-10-18",
        "PO": "PO1",
        "client": "Acme",
        "recipient": "Bob",
        "type": "out",
        "note": "",
    }


def test_document_replace_each_collection():
    document = Document.empty()
    document.replace("stockIn", [{"PO": "A"}])
    document.replace("stockOut", [{"id": "1", "PO": "A"}])
    document.replace("systemList", [{"opaque": True}])
    assert document.to_dict() == {
        "stockIn": [{"PO": "A"}],
        "stockOut": [{"id": "1", "PO": "A"}],
        "systemList": [{"opaque": True}],
    }
