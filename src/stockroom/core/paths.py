"""
Storage location resolution.

The worker never guesses where the document lives: the host resolves the
path once and passes it on the command line. Working directory and
environment differ between a dev checkout and a packaged install, so
neither is consulted here beyond what ``StockroomSettings`` reads.
"""

from __future__ import annotations

from pathlib import Path

from stockroom.core.errors import ConfigError, StorageError
from stockroom.core.settings import StockroomSettings


def resolve_document_path(
    explicit: str | Path | None = None,
    settings: StockroomSettings | None = None,
) -> Path:
    """Return the absolute document path.

    An explicit path wins; otherwise ``settings.data_dir / settings.document_name``.
    """
    if explicit is not None and str(explicit).strip():
        path = Path(explicit).expanduser()
    else:
        settings = settings or StockroomSettings()
        path = settings.document_path.expanduser()

    if path.exists() and path.is_dir():
        raise ConfigError(f"Document path is a directory: {path}").with_context(path=str(path))
    return path.resolve()


def ensure_parent_dir(path: Path) -> Path:
    """Create the parent directory of *path* if needed."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise StorageError(
            f"Cannot create data directory {path.parent}: {exc}", cause=exc
        ).with_context(operation="ensure_parent_dir", path=str(path.parent)) from exc
    return path
