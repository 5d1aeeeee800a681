"""
Worker process entry point.

The worker is the only process that opens the inventory document. It is
started by the host's ``ProcessSupervisor`` with ``--data-path`` and talks
back only through log lines on stdout/stderr and its exit code:

    0   stopped on SIGINT/SIGTERM or ``stop()``
    1   the document could not be opened at startup

Operations are served in-process through :mod:`stockroom.ops`, which shares
the loop's ``OperationContext`` (one store, one lock).
"""

from __future__ import annotations

import os
import signal
import threading
from pathlib import Path

from stockroom.core.errors import StockroomError
from stockroom.core.logging import get_logger
from stockroom.core.settings import StockroomSettings
from stockroom.ops.context import OperationContext

logger = get_logger(__name__)


class WorkerLoop:
    """Hold the document open until asked to stop."""

    def __init__(
        self,
        data_path: str | Path,
        *,
        settings: StockroomSettings | None = None,
    ) -> None:
        self._settings = settings or StockroomSettings()
        self.context = OperationContext.for_path(
            data_path,
            caller="worker",
            parse_failure_policy=self._settings.parse_failure_policy,
            keep_backup=self._settings.keep_backup,
            lock_timeout=self._settings.lock_timeout_seconds,
        )
        self._shutdown = threading.Event()

    @property
    def data_path(self) -> Path:
        return self.context.store.path

    def start(self) -> int:
        """Run until stopped (blocking). Returns the process exit code."""
        try:
            document = self.context.store.get_or_init()
        except StockroomError as exc:
            logger.error("worker_startup_failed", **exc.to_dict())
            return 1

        try:
            signal.signal(signal.SIGINT, self._handle_signal)
            signal.signal(signal.SIGTERM, self._handle_signal)
        except (ValueError, OSError):
            pass  # not in main thread

        logger.info(
            "worker_ready",
            pid=os.getpid(),
            data_path=str(self.data_path),
            lots=len(document.stock_in),
            allocations=len(document.stock_out),
        )

        self._shutdown.wait()
        logger.info("worker_stopped", pid=os.getpid())
        return 0

    def start_background(self) -> threading.Thread:
        """Start the worker in a daemon thread. Returns the thread."""
        t = threading.Thread(target=self.start, name="stockroom-worker", daemon=True)
        t.start()
        return t

    def stop(self) -> None:
        """Request shutdown."""
        self._shutdown.set()

    def _handle_signal(self, signum, frame):
        logger.info("worker_signal_received", signal=signal.Signals(signum).name)
        self.stop()
