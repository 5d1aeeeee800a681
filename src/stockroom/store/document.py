"""
Typed access to the inventory document.

``DocumentStore`` turns the bytes kept by ``PersistenceWriter`` into a
``Document`` and back. There is no cache: every operation reads the file,
and every mutation writes the whole document before it returns.

Manifesto:
    Atomicity of a single write does not make a read-modify-write atomic.
    Two allocations that both read ``stock = 1`` would both succeed. Every
    store on the same resolved path therefore shares one thread lock, and
    mutations also hold ``<document>.lock`` so separate processes (the
    worker and one-shot CLI calls) serialise too. ``transaction()`` holds
    both across load, mutate and save.

    - **Load-mutate-save:** No state survives between operations
    - **One writer at a time:** Per-path thread lock plus an OS file lock
    - **All-or-nothing:** A failed block leaves the file untouched
    - **Loud on corruption:** Parse failures raise unless recovery is enabled

Architecture:
    ::

        with store.transaction() as doc:          ┐
            lot = doc.stock_in[0]                 │  path lock + file lock held
            lot.stock = 0                         │
        # saved here, on clean exit only          ┘

        get_or_init ──► exists? ──no──► save(Document.empty())
                           │
                          yes──► load ──► json ──► Document.model_validate
                                            │
                                       ParseError ──► policy "backup"?
                                                        └─► restore <doc>.bak

Examples:
    >>> store = DocumentStore(Path("/tmp/stockroom/inventory.json"))
    >>> doc = store.get_or_init()
    >>> store.replace_collection("systemList", [{"code": "A"}])
    1

Tags:
    document-store, transaction, json, persistence, stockroom-store

Doc-Types:
    - API Reference
    - Architecture Documentation
"""

from __future__ import annotations

import json
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Literal

from filelock import FileLock, Timeout
from pydantic import ValidationError as PydanticValidationError

from stockroom.core.errors import (
    DocumentNotFoundError,
    ParseError,
    StorageError,
    UnknownCollectionError,
    ValidationError,
)
from stockroom.core.logging import get_logger
from stockroom.core.paths import ensure_parent_dir
from stockroom.store.models import COLLECTIONS, Document
from stockroom.store.writer import PersistenceWriter

logger = get_logger(__name__)

ParseFailurePolicy = Literal["fail", "backup"]

DEFAULT_LOCK_TIMEOUT = 10.0

_registry_lock = threading.Lock()
_path_locks: dict[str, tuple[threading.RLock, FileLock]] = {}


def _locks_for(path: Path) -> tuple[threading.RLock, FileLock]:
    """Return the thread lock and file lock shared by every store on *path*."""
    key = str(path.resolve())
    with _registry_lock:
        locks = _path_locks.get(key)
        if locks is None:
            # flock conflicts between descriptors of one process: one instance per path.
            locks = (threading.RLock(), FileLock(key + ".lock", thread_local=False))
            _path_locks[key] = locks
        return locks


def encode_document(document: Document) -> bytes:
    """Serialise *document* to pretty, UTF-8 JSON."""
    text = json.dumps(document.to_dict(), indent=2, ensure_ascii=False)
    return (text + "\n").encode("utf-8")


def decode_document(data: bytes) -> Document:
    """Parse raw bytes into a ``Document``.

    Raises:
        ParseError: not JSON, not an object, or a collection of the wrong shape.
    """
    try:
        raw = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ParseError(f"Document is not valid JSON: {exc}", cause=exc) from exc

    if not isinstance(raw, dict):
        raise ParseError(f"Document must be a JSON object, got {type(raw).__name__}")

    try:
        return Document.model_validate(raw)
    except PydanticValidationError as exc:
        raise ParseError(f"Document has an invalid structure: {exc}", cause=exc) from exc


class DocumentStore:
    """Load/save the inventory document at *path*.

    Args:
        path: Document file location. Its directory is created on first save.
        writer: Persistence backend (defaults to an fsyncing ``PersistenceWriter``).
        parse_failure_policy: ``"fail"`` raises ``ParseError`` on a corrupt
            document; ``"backup"`` restores the last good copy instead.
        keep_backup: Write ``<path>.bak`` with the previous good bytes
            before every save.
        lock_timeout: Seconds to wait for another writer before giving up
            with a retryable ``StorageError``.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        writer: PersistenceWriter | None = None,
        parse_failure_policy: ParseFailurePolicy = "fail",
        keep_backup: bool = True,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
    ) -> None:
        self.path = Path(path)
        self._writer = writer or PersistenceWriter()
        self._policy = parse_failure_policy
        self._keep_backup = keep_backup
        self._lock_timeout = lock_timeout
        self._lock, self._file_lock = _locks_for(self.path)
        self._last_good: bytes | None = None

    @property
    def backup_path(self) -> Path:
        return self.path.with_name(self.path.name + ".bak")

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_or_init(self) -> Document:
        """Return the current document, creating and persisting the default."""
        with self._lock:
            if self._writer.exists(self.path):
                return self.load()
            with self._exclusive():
                if self._writer.exists(self.path):
                    return self.load()
                document = Document.empty()
                self.save(document)
                logger.info("document_initialised", path=str(self.path))
                return document

    def load(self) -> Document:
        """Parse the persisted document.

        Raises:
            DocumentNotFoundError: the file does not exist.
            ParseError: the content is not a document (policy ``"fail"``, or
                no usable backup under policy ``"backup"``).
            StorageError: the file could not be read.
        """
        with self._lock:
            data = self._writer.read(self.path)
            try:
                document = decode_document(data)
            except ParseError as exc:
                exc.with_context(operation="load", path=str(self.path))
                if self._policy != "backup":
                    logger.error("document_parse_failed", path=str(self.path), error=exc.message)
                    raise
                return self._recover_from_backup(data, exc)

            self._last_good = data
            return document

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def save(self, document: Document) -> None:
        """Serialise and atomically persist the whole *document*."""
        data = encode_document(document)
        with self._exclusive():
            if self._keep_backup and self._last_good is not None and self._last_good != data:
                self._writer.write(self.backup_path, self._last_good)
            self._writer.write(self.path, data)
            self._last_good = data

    def replace_collection(self, name: str, items: list[dict[str, Any]]) -> int:
        """Replace one named collection wholesale and save. Returns the item count."""
        if name not in COLLECTIONS:
            raise UnknownCollectionError(name)
        if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
            raise ValidationError(
                f"{name} must be a list of objects", field=name
            ).with_context(collection=name)

        try:
            with self.transaction() as document:
                document.replace(name, items)
        except PydanticValidationError as exc:
            raise ValidationError(
                f"Malformed {name} record: {exc}", field=name, cause=exc
            ).with_context(collection=name) from exc

        logger.info("collection_replaced", collection=name, count=len(items))
        return len(items)

    @contextmanager
    def transaction(self) -> Iterator[Document]:
        """Hold the path lock and file lock across load, mutate and save.

        The yielded document is saved when the block exits normally. If the
        block raises, nothing is written and the exception propagates.
        """
        with self._exclusive():
            document = self.get_or_init()
            yield document
            self.save(document)

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise self._busy()
        try:
            ensure_parent_dir(self.path)
            try:
                self._file_lock.acquire(timeout=self._lock_timeout)
            except Timeout as exc:
                raise self._busy() from exc
            except OSError as exc:
                raise StorageError(
                    f"Cannot lock {self.path}: {exc}", cause=exc
                ).with_context(operation="lock", path=str(self.path)) from exc
            try:
                yield
            finally:
                self._file_lock.release()
        finally:
            self._lock.release()

    def _busy(self) -> StorageError:
        logger.warning("document_lock_timeout", path=str(self.path), timeout=self._lock_timeout)
        return StorageError(
            f"Timed out after {self._lock_timeout}s waiting for {self._file_lock.lock_file}"
        ).with_context(operation="lock", path=str(self.path))

    # ------------------------------------------------------------------
    # Recovery
    # ------------------------------------------------------------------

    def _recover_from_backup(self, corrupt: bytes, error: ParseError) -> Document:
        try:
            backup = self._writer.read(self.backup_path)
        except DocumentNotFoundError:
            logger.error("document_parse_failed_no_backup", path=str(self.path), error=error.message)
            raise error from None

        try:
            document = decode_document(backup)
        except ParseError as backup_error:
            logger.error("document_backup_unusable", path=str(self.backup_path))
            raise error from backup_error

        stamp = datetime.now().strftime("%Y%m%d%H%M%S")
        quarantine = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        with self._exclusive():
            self._writer.write(quarantine, corrupt)
            self._writer.write(self.path, backup)
        self._last_good = backup

        logger.warning(
            "document_restored_from_backup",
            path=str(self.path),
            quarantined=str(quarantine),
            error=error.message,
        )
        return document
