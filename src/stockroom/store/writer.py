"""
Atomic whole-file persistence.

``PersistenceWriter`` is the only code that touches the document file.
Writes go to a temporary file in the same directory, are flushed and
fsynced, then renamed over the target with ``os.replace``; a reader sees
either the old bytes or the new bytes, never a torn file.

Architecture:
    ::

        write(path, data)
        ┌───────────────────────────────────────────────────────────┐
        │ mkstemp(dir=path.parent)  →  write + flush + fsync        │
        │        ↓                                                  │
        │ os.replace(tmp, path)     →  atomic on POSIX and Windows  │
        │        ↓ (on error)                                       │
        │ unlink(tmp), raise StorageError                           │
        └───────────────────────────────────────────────────────────┘

Guardrails:
    ❌ DON'T: open(path, "w") the document directly
    ✅ DO: go through PersistenceWriter.write

Tags:
    storage, atomic-write, persistence, stockroom-store
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from stockroom.core.errors import DocumentNotFoundError, StorageError
from stockroom.core.logging import get_logger

logger = get_logger(__name__)


class PersistenceWriter:
    """Durable, atomic read/replace of a single file."""

    def __init__(self, *, fsync: bool = True) -> None:
        self._fsync = fsync

    def exists(self, path: Path) -> bool:
        return Path(path).is_file()

    def read(self, path: Path) -> bytes:
        """Return the raw bytes of *path*.

        Raises:
            DocumentNotFoundError: the file does not exist.
            StorageError: any other I/O failure.
        """
        path = Path(path)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise DocumentNotFoundError(str(path), cause=exc) from exc
        except OSError as exc:
            raise StorageError(
                f"Failed to read {path}: {exc}", cause=exc
            ).with_context(operation="read", path=str(path)) from exc

    def write(self, path: Path, data: bytes) -> None:
        """Replace the contents of *path* with *data* atomically."""
        path = Path(path)
        tmp_name: str | None = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
            )
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                if self._fsync:
                    os.fsync(fh.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as exc:
            raise StorageError(
                f"Failed to write {path}: {exc}", cause=exc
            ).with_context(operation="write", path=str(path)) from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("temp_file_cleanup_failed", path=tmp_name)

        logger.debug("document_written", path=str(path), size=len(data))
