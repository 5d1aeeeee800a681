"""Document persistence: atomic file writer, typed models, store."""

from stockroom.store.document import DocumentStore, decode_document, encode_document
from stockroom.store.models import COLLECTIONS, Document, StockLot, StockOutRecord
from stockroom.store.writer import PersistenceWriter

__all__ = [
    "COLLECTIONS",
    "Document",
    "DocumentStore",
    "PersistenceWriter",
    "StockLot",
    "StockOutRecord",
    "decode_document",
    "encode_document",
]
