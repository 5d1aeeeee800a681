"""
Document data model.

The inventory document is one JSON object with three ordered collections.
Records are semi-structured: the fields the allocator relies on are typed,
everything else a caller stored rides along in pydantic's extra map
(``model_extra``) and is written back untouched.

Architecture:
    ::

        Document
        ├── stockIn     list[StockLot]        PO, stock, client  + extras
        ├── stockOut    list[StockOutRecord]  id, date, PO, client,
        │                                     recipient, type, note + extras
        └── systemList  list[dict]            opaque, passed through

Serialisation rules:
    - Keys use the on-disk names (``PO``, ``stockIn``...) via aliases.
    - Record fields that were absent on load stay absent on save
      (``exclude_unset``), so a lot without ``client`` does not grow a
      ``"client": null`` entry.
    - The three collections are always written, even when empty.
    - Known fields keep the JSON type they were stored with (``"PO": 1001``
      stays a number, ``null`` stays ``null``). Compare them via ``as_text``.

Tags:
    models, pydantic, document, stockroom-store
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

COLLECTIONS: tuple[str, ...] = ("stockIn", "stockOut", "systemList")

# Any JSON scalar, kept with its stored type (``1001`` stays a number).
Scalar = str | int | float | bool | None


class _Record(BaseModel):
    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        validate_assignment=False,
    )

    @property
    def extras(self) -> dict[str, Any]:
        """Fields not modelled explicitly, preserved verbatim."""
        return dict(self.model_extra or {})

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True, mode="json")


def as_text(value: Any) -> str:
    """Render a stored scalar for comparison and display; ``None`` is ``""``."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class StockLot(_Record):
    """A ``stockIn`` entry: a quantity received under one PO.

    ``stock`` is stored exactly as found. Only
    :func:`stockroom.inventory.allocator.parse_quantity` interprets it.
    """

    po: Scalar = Field(default="", alias="PO")
    stock: Any = None
    client: Scalar = None


class StockOutRecord(_Record):
    """A ``stockOut`` entry: one unit allocated against a lot."""

    id: Scalar = ""
    date: Scalar = ""
    po: Scalar = Field(default="", alias="PO")
    client: Scalar = ""
    recipient: Scalar = ""
    type: Scalar = ""
    note: Scalar = ""


class Document(BaseModel):
    """The single persisted aggregate."""

    model_config = ConfigDict(populate_by_name=True)

    stock_in: list[StockLot] = Field(default_factory=list, alias="stockIn")
    stock_out: list[StockOutRecord] = Field(default_factory=list, alias="stockOut")
    system_list: list[dict[str, Any]] = Field(default_factory=list, alias="systemList")

    @field_validator("stock_in", "stock_out", "system_list", mode="before")
    @classmethod
    def _null_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @classmethod
    def empty(cls) -> Document:
        return cls()

    def to_dict(self) -> dict[str, Any]:
        return {
            "stockIn": [lot.to_dict() for lot in self.stock_in],
            "stockOut": [record.to_dict() for record in self.stock_out],
            "systemList": [dict(item) for item in self.system_list],
        }

    def replace(self, name: str, items: list[dict[str, Any]]) -> None:
        """Swap one collection wholesale (``name`` uses on-disk spelling)."""
        if name == "stockIn":
            self.stock_in = [StockLot.model_validate(item) for item in items]
        elif name == "stockOut":
            self.stock_out = [StockOutRecord.model_validate(item) for item in items]
        elif name == "systemList":
            self.system_list = [dict(item) for item in items]
        else:
            raise KeyError(name)
