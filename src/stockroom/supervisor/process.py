"""
Worker process supervisor.

The host never touches the document itself: it launches a worker process
that does, forwards the worker's output into its own logs, and makes sure
the worker is gone when the host goes away.

Architecture:

    .. code-block:: text

        ProcessSupervisor — Worker Lifetime
        ┌──────────────────────────────────────────────────────────────┐
        │                                                              │
        │  start(executable, args)                                     │
        │    resolve document path → mkdir parent                      │
        │    spawn argv + ["--data-path", path]  (never cwd / env)     │
        │    spawn failure → ProcessSpawnError (fatal, no retry)       │
        │                                                              │
        │  background tasks (started once, at spawn)                   │
        │    stdout lines → logger.info("worker_output", ...)          │
        │    stderr lines → logger.error("worker_output", ...)         │
        │    wait()       → Exited(code), handle slot cleared          │
        │                                                              │
        │  shutdown()  (idempotent)                                    │
        │    take handle out of slot under lock                        │
        │    terminate → wait kill_timeout → kill                      │
        │    errors logged, never raised                               │
        │                                                              │
        └──────────────────────────────────────────────────────────────┘

    State machine::

        NOT_STARTED ──► SPAWNING ──► RUNNING ──► EXITED(code)   (observed)
                           │            └──────► KILLED         (shutdown)
                           └──► FAILED                           (spawn error)

    The handle slot is the only shared reference to the child. Both the
    exit watcher and ``shutdown()`` take the handle out of the slot while
    holding ``_lock``; whichever gets there first owns the handle, so a
    natural exit racing a shutdown can never produce a second signal.

Example:
    >>> async with ProcessSupervisor(settings) as supervisor:
    ...     await supervisor.start()
    ...     code = await supervisor.wait()

Tags:
    supervisor, subprocess, asyncio, lifecycle, stockroom-supervisor

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import signal
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from stockroom.core.errors import ProcessSpawnError, StockroomError
from stockroom.core.logging import get_logger
from stockroom.core.paths import ensure_parent_dir, resolve_document_path
from stockroom.core.settings import StockroomSettings

logger = get_logger(__name__)

_STREAM_LIMIT = 1024 * 1024


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ProcessState(str, Enum):
    NOT_STARTED = "not_started"
    SPAWNING = "spawning"
    RUNNING = "running"
    EXITED = "exited"
    KILLED = "killed"
    FAILED = "failed"


@dataclass
class ProcessHandle:
    """A spawned worker. Owned by ``ProcessSupervisor``."""

    process: asyncio.subprocess.Process
    argv: list[str]
    data_path: Path
    state: ProcessState = ProcessState.RUNNING
    exit_code: int | None = None
    started_at: datetime = field(default_factory=_utcnow)
    finished_at: datetime | None = None

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def stdout(self) -> asyncio.StreamReader | None:
        return self.process.stdout

    @property
    def stderr(self) -> asyncio.StreamReader | None:
        return self.process.stderr

    @property
    def alive(self) -> bool:
        return self.process.returncode is None


class ProcessSupervisor:
    """Spawn, drain and terminate the worker process.

    Args:
        settings: Source of the worker command, data path and kill timeout.
        data_path: Explicit document path; overrides ``settings``.
        kill_timeout_seconds: Seconds between terminate and kill on shutdown.
        log: Structured logger receiving forwarded worker output.
    """

    def __init__(
        self,
        settings: StockroomSettings | None = None,
        *,
        data_path: str | Path | None = None,
        kill_timeout_seconds: float | None = None,
        log: Any = None,
    ) -> None:
        self._settings = settings or StockroomSettings()
        self._data_path = data_path
        self._kill_timeout = (
            kill_timeout_seconds
            if kill_timeout_seconds is not None
            else self._settings.kill_timeout_seconds
        )
        self._log = log or logger
        self._lock = asyncio.Lock()
        self._handle: ProcessHandle | None = None
        self._last: ProcessHandle | None = None
        self._state = ProcessState.NOT_STARTED
        self._tasks: list[asyncio.Task] = []
        self._exit_watcher: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> ProcessState:
        return self._state

    @property
    def pid(self) -> int | None:
        return self._last.pid if self._last else None

    @property
    def exit_code(self) -> int | None:
        return self._last.exit_code if self._last else None

    @property
    def data_path(self) -> Path | None:
        return self._last.data_path if self._last else None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(
        self,
        executable: str | Sequence[str] | None = None,
        args: Sequence[str] = (),
    ) -> ProcessHandle:
        """Launch the worker with an explicit ``--data-path`` argument.

        Raises:
            ProcessSpawnError: the supervisor was already started, the data
                directory could not be created, or the spawn failed.
        """
        async with self._lock:
            if self._state is not ProcessState.NOT_STARTED:
                raise ProcessSpawnError(f"Supervisor already {self._state.value}")

            self._state = ProcessState.SPAWNING
            try:
                path = ensure_parent_dir(resolve_document_path(self._data_path, self._settings))
            except StockroomError as exc:
                self._state = ProcessState.FAILED
                raise ProcessSpawnError(
                    f"Cannot prepare storage location: {exc.message}", cause=exc
                ) from exc

            try:
                argv = [*self._command(executable), *args, "--data-path", str(path)]
            except ProcessSpawnError:
                self._state = ProcessState.FAILED
                raise

            try:
                process = await asyncio.create_subprocess_exec(
                    *argv,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    limit=_STREAM_LIMIT,
                )
            except (OSError, ValueError) as exc:
                self._state = ProcessState.FAILED
                self._log.error("worker_spawn_failed", argv=argv, error=str(exc))
                raise ProcessSpawnError(
                    f"Failed to start worker {argv[0]!r}: {exc}", cause=exc
                ).with_context(operation="start", path=str(path)) from exc

            handle = ProcessHandle(process=process, argv=argv, data_path=path)
            self._handle = handle
            self._last = handle
            self._state = ProcessState.RUNNING

            self._tasks = [
                asyncio.create_task(self._drain(handle, "stdout", handle.stdout)),
                asyncio.create_task(self._drain(handle, "stderr", handle.stderr)),
            ]
            self._exit_watcher = asyncio.create_task(self._watch_exit(handle))

        self._log.info("worker_started", pid=handle.pid, data_path=str(path))
        return handle

    async def wait(self) -> int | None:
        """Wait for the worker to finish (naturally or after shutdown)."""
        if self._exit_watcher is None:
            return None
        await asyncio.shield(self._exit_watcher)
        if self._tasks:
            # output still buffered in the pipes is forwarded before returning
            await asyncio.wait(self._tasks)
        return self.exit_code

    async def shutdown(self) -> None:
        """Terminate the worker if it is still owned. Safe to call repeatedly."""
        async with self._lock:
            handle, self._handle = self._handle, None
            if handle is not None:
                if handle.alive:
                    handle.state = ProcessState.KILLED
                else:
                    handle.state = ProcessState.EXITED
                self._state = handle.state

        if handle is None:
            self._log.debug("worker_shutdown_noop", state=self._state.value)
            return

        try:
            await self._terminate(handle)
        except Exception as exc:
            self._log.error("worker_terminate_failed", pid=handle.pid, error=str(exc))

        await self._finish_tasks()
        self._log.info("worker_stopped", pid=handle.pid, exit_code=handle.exit_code)

    async def __aenter__(self) -> ProcessSupervisor:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.shutdown()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _command(self, executable: str | Sequence[str] | None) -> list[str]:
        if executable is None:
            command = list(self._settings.worker_command)
        elif isinstance(executable, str):
            command = [executable]
        else:
            command = list(executable)
        if not command:
            raise ProcessSpawnError("No worker command configured")
        return command

    async def _terminate(self, handle: ProcessHandle) -> None:
        process = handle.process
        if process.returncode is None:
            try:
                process.terminate()
            except ProcessLookupError:
                pass  # exited between the check and the signal
            try:
                await asyncio.wait_for(process.wait(), timeout=self._kill_timeout)
            except TimeoutError:
                self._log.warning(
                    "worker_kill_escalated", pid=handle.pid, timeout=self._kill_timeout
                )
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()

        handle.exit_code = process.returncode
        handle.finished_at = handle.finished_at or _utcnow()

    async def _watch_exit(self, handle: ProcessHandle) -> None:
        code = await handle.process.wait()
        async with self._lock:
            handle.exit_code = code
            handle.finished_at = handle.finished_at or _utcnow()
            if self._handle is handle:
                self._handle = None
                handle.state = ProcessState.EXITED
                self._state = ProcessState.EXITED
                observed = True
            else:
                observed = False

        if observed:
            level = self._log.info if code == 0 else self._log.warning
            level("worker_exited", pid=handle.pid, exit_code=code, signal=_signal_name(code))

    async def _drain(
        self,
        handle: ProcessHandle,
        stream_name: str,
        stream: asyncio.StreamReader | None,
    ) -> None:
        if stream is None:
            return
        emit = self._log.info if stream_name == "stdout" else self._log.error
        while True:
            try:
                raw = await stream.readline()
            except ValueError:
                # line longer than the stream limit; take what is buffered
                raw = await stream.read(_STREAM_LIMIT)
            if not raw:
                break
            line = raw.decode(errors="replace").rstrip("\r\n")
            if line:
                emit("worker_output", stream=stream_name, pid=handle.pid, line=line)

    async def _finish_tasks(self) -> None:
        tasks = [*self._tasks, *([self._exit_watcher] if self._exit_watcher else [])]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                self._log.error("worker_listener_failed", error=str(result))


def _signal_name(code: int | None) -> str | None:
    if code is None or code >= 0:
        return None
    try:
        return signal.Signals(-code).name
    except ValueError:
        return None


async def run_host(
    settings: StockroomSettings | None = None,
    *,
    data_path: str | Path | None = None,
    executable: str | Sequence[str] | None = None,
    log: Any = None,
) -> int:
    """Run the worker until it exits or the host receives SIGINT/SIGTERM.

    Returns the worker's exit code, or 0 when the host stopped it.
    """
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            pass  # platform without loop signal support

    try:
        async with ProcessSupervisor(settings, data_path=data_path, log=log) as supervisor:
            await supervisor.start(executable)
            exited = asyncio.create_task(supervisor.wait())
            stopped = asyncio.create_task(stop.wait())
            done, pending = await asyncio.wait(
                {exited, stopped}, return_when=asyncio.FIRST_COMPLETED
            )
            for task in pending:
                task.cancel()

            if exited in done:
                return supervisor.exit_code or 0
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)

    return 0
