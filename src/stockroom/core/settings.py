"""Environment-driven settings for host and worker.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked at startup, not mid-allocation
    - **Environment-driven:** ``STOCKROOM_*`` env vars and a ``.env`` file
    - **Sensible defaults:** Works out of the box on a developer machine

Examples:
    >>> from stockroom.core.settings import StockroomSettings
    >>> settings = StockroomSettings(data_dir="/tmp/stockroom")
    >>> settings.document_path.name
    'inventory.json'

Tags:
    settings, configuration, pydantic, environment, stockroom-core

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_worker_command() -> list[str]:
    return [sys.executable, "-m", "stockroom", "worker", "serve"]


class StockroomSettings(BaseSettings):
    """Settings shared by the host and the worker.

    Fields
    ──────
    data_dir              : Directory holding the inventory document
    document_name         : File name of the document inside ``data_dir``
    log_level             : Structlog log level
    json_logs             : Force JSON (True) / console (False) / auto (None)
    worker_command        : argv used by the host to launch the worker
    kill_timeout_seconds  : Grace period between terminate and kill
    parse_failure_policy  : ``fail`` or ``backup`` on a corrupt document
    keep_backup           : Keep ``<document>.bak`` with the last good bytes
    lock_timeout_seconds  : How long a writer waits for the document lock
    """

    model_config = SettingsConfigDict(
        env_prefix="STOCKROOM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────────────
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".stockroom",
        description="Directory holding the inventory document",
    )
    document_name: str = "inventory.json"
    parse_failure_policy: Literal["fail", "backup"] = "fail"
    keep_backup: bool = True
    lock_timeout_seconds: float = 10.0

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    # ── Worker supervision ───────────────────────────────────────
    worker_command: list[str] = Field(default_factory=_default_worker_command)
    kill_timeout_seconds: float = 5.0

    @property
    def document_path(self) -> Path:
        return self.data_dir / self.document_name


def get_settings(**overrides) -> StockroomSettings:
    """Build settings from the environment, applying explicit overrides."""
    return StockroomSettings(**{k: v for k, v in overrides.items() if v is not None})
