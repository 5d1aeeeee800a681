"""Tests for ProcessSupervisor — spawns, drains and terminates the worker."""

from __future__ import annotations

import asyncio
import json
import signal
import sys
from pathlib import Path

import pytest

from stockroom.core.errors import ProcessSpawnError
from stockroom.core.settings import StockroomSettings
from stockroom.supervisor.process import ProcessState, ProcessSupervisor, run_host

SRC_DIR = Path(__file__).resolve().parents[2] / "src"


# ── Helpers ──────────────────────────────────────────────────────────────


def _python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


def _supervisor(tmp_path: Path, log, **kwargs) -> ProcessSupervisor:
    settings = StockroomSettings(data_dir=tmp_path / "data")
    return ProcessSupervisor(settings, log=log, **kwargs)


async def _until(predicate, timeout: float = 20.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.05)


# ── Start ────────────────────────────────────────────────────────────────


class TestStart:
    @pytest.mark.asyncio
    async def test_passes_data_path_as_last_arguments(self, tmp_path, recording_log):
        supervisor = _supervisor(tmp_path, recording_log)
        handle = await supervisor.start(_python("import sys; print(sys.argv[-2]); print(sys.argv[-1])"))
        await supervisor.wait()

        expected = str((tmp_path / "data" / "inventory.json").resolve())
        assert handle.argv[-2:] == ["--data-path", expected]
        assert recording_log.output_lines("stdout") == ["--data-path", expected]
        assert (tmp_path / "data").is_dir()
        assert supervisor.data_path == Path(expected)

    @pytest.mark.asyncio
    async def test_explicit_data_path_overrides_settings(self, tmp_path, recording_log):
        target = tmp_path / "elsewhere" / "stock.json"
        supervisor = ProcessSupervisor(
            StockroomSettings(data_dir=tmp_path / "data"), data_path=target, log=recording_log
        )
        handle = await supervisor.start(_python("pass"))
        await supervisor.wait()
        assert handle.data_path == target.resolve()
        assert target.parent.is_dir()

    @pytest.mark.asyncio
    async def test_extra_args_come_before_data_path(self, tmp_path, recording_log):
        supervisor = _supervisor(tmp_path, recording_log)
        handle = await supervisor.start(_python("pass"), args=["--flag"])
        await supervisor.wait()
        assert handle.argv[-3] == "--flag"

    @pytest.mark.asyncio
    async def test_spawn_failure_is_fatal(self, tmp_path, recording_log):
        supervisor = _supervisor(tmp_path, recording_log)
        with pytest.raises(ProcessSpawnError):
            await supervisor.start(str(tmp_path / "no-such-worker"))

        assert supervisor.state is ProcessState.FAILED
        assert recording_log.named("worker_spawn_failed")
        await supervisor.shutdown()
        assert supervisor.state is ProcessState.FAILED

    @pytest.mark.asyncio
    async def test_unusable_data_path_fails_before_spawn(self, tmp_path, recording_log):
        supervisor = ProcessSupervisor(
            StockroomSettings(data_dir=tmp_path), data_path=tmp_path, log=recording_log
        )
        with pytest.raises(ProcessSpawnError):
            await supervisor.start(_python("pass"))
        assert supervisor.state is ProcessState.FAILED
        assert supervisor.pid is None

    @pytest.mark.asyncio
    async def test_start_twice_is_rejected(self, tmp_path, recording_log):
        supervisor = _supervisor(tmp_path, recording_log)
        await supervisor.start(_python("import time; time.sleep(30)"))
        try:
            with pytest.raises(ProcessSpawnError):
                await supervisor.start(_python("pass"))
        finally:
            await supervisor.shutdown()


# ── Output forwarding ────────────────────────────────────────────────────


class TestOutput:
    @pytest.mark.asyncio
    async def test_stdout_info_stderr_error(self, tmp_path, recording_log):
        supervisor = _supervisor(tmp_path, recording_log)
        await supervisor.start(
            _python("import sys; print('hello'); print('oops', file=sys.stderr); print('bye')")
        )
        await supervisor.wait()

        assert recording_log.output_lines("stdout") == ["hello", "bye"]
        assert recording_log.output_lines("stderr") == ["oops"]
        levels = {e["stream"]: e["level"] for e in recording_log.named("worker_output")}
        assert levels == {"stdout": "info", "stderr": "error"}

    @pytest.mark.asyncio
    async def test_blank_lines_are_dropped(self, tmp_path, recording_log):
        supervisor = _supervisor(tmp_path, recording_log)
        await supervisor.start(_python("print(''); print('x'); print()"))
        await supervisor.wait()
        assert recording_log.output_lines("stdout") == ["x"]

    @pytest.mark.asyncio
    async def test_invalid_utf8_is_replaced(self, tmp_path, recording_log):
        supervisor = _supervisor(tmp_path, recording_log)
        await supervisor.start(_python("import sys; sys.stdout.buffer.write(b'caf\\xe9\\n')"))
        await supervisor.wait()
        assert recording_log.output_lines("stdout") == ["caf\ufffd"]


# ── Natural exit ─────────────────────────────────────────────────────────


class TestExit:
    @pytest.mark.asyncio
    async def test_exit_code_is_observed(self, tmp_path, recording_log):
        supervisor = _supervisor(tmp_path, recording_log)
        await supervisor.start(_python("raise SystemExit(3)"))

        assert await supervisor.wait() == 3
        assert supervisor.state is ProcessState.EXITED
        exited = recording_log.named("worker_exited")
        assert len(exited) == 1
        assert exited[0]["level"] == "warning"
        assert exited[0]["exit_code"] == 3

    @pytest.mark.asyncio
    async def test_clean_exit_logs_info(self, tmp_path, recording_log):
        supervisor = _supervisor(tmp_path, recording_log)
        await supervisor.start(_python("pass"))
        assert await supervisor.wait() == 0
        assert recording_log.named("worker_exited")[0]["level"] == "info"

    @pytest.mark.asyncio
    async def test_shutdown_after_exit_sends_nothing(self, tmp_path, recording_log):
        supervisor = _supervisor(tmp_path, recording_log)
        await supervisor.start(_python("pass"))
        await supervisor.wait()

        await supervisor.shutdown()

        assert supervisor.state is ProcessState.EXITED
        assert recording_log.named("worker_shutdown_noop")
        assert not recording_log.named("worker_stopped")

    @pytest.mark.asyncio
    async def test_wait_before_start(self, tmp_path, recording_log):
        assert await _supervisor(tmp_path, recording_log).wait() is None


# ── Shutdown ─────────────────────────────────────────────────────────────


class TestShutdown:
    @pytest.mark.asyncio
    async def test_terminates_running_worker_once(self, tmp_path, recording_log):
        supervisor = _supervisor(tmp_path, recording_log)
        handle = await supervisor.start(_python("import time; time.sleep(30)"))

        calls: list[int] = []
        original = handle.process.terminate

        def counting_terminate() -> None:
            calls.append(1)
            original()

        handle.process.terminate = counting_terminate

        await supervisor.shutdown()
        await supervisor.shutdown()

        assert calls == [1]
        assert supervisor.state is ProcessState.KILLED
        assert handle.process.returncode is not None
        assert supervisor.exit_code == handle.process.returncode
        assert len(recording_log.named("worker_stopped")) == 1
        assert len(recording_log.named("worker_shutdown_noop")) == 1
        assert not recording_log.named("worker_exited")

    @pytest.mark.asyncio
    async def test_concurrent_shutdowns_signal_once(self, tmp_path, recording_log):
        supervisor = _supervisor(tmp_path, recording_log)
        handle = await supervisor.start(_python("import time; time.sleep(30)"))

        calls: list[int] = []
        original = handle.process.terminate

        def counting_terminate() -> None:
            calls.append(1)
            original()

        handle.process.terminate = counting_terminate

        await asyncio.gather(supervisor.shutdown(), supervisor.shutdown(), supervisor.shutdown())
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_context_manager_shuts_down(self, tmp_path, recording_log):
        async with _supervisor(tmp_path, recording_log) as supervisor:
            handle = await supervisor.start(_python("import time; time.sleep(30)"))
        assert handle.process.returncode is not None
        assert supervisor.state is ProcessState.KILLED

    @pytest.mark.asyncio
    async def test_shutdown_before_start_is_noop(self, tmp_path, recording_log):
        supervisor = _supervisor(tmp_path, recording_log)
        await supervisor.shutdown()
        assert supervisor.state is ProcessState.NOT_STARTED

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="SIGTERM cannot be ignored on Windows")
    async def test_escalates_to_kill(self, tmp_path, recording_log):
        supervisor = _supervisor(tmp_path, recording_log, kill_timeout_seconds=0.5)
        await supervisor.start(
            _python(
                "import signal, time\n"
                "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
                "print('ready', flush=True)\n"
                "time.sleep(30)\n"
            )
        )
        await _until(lambda: recording_log.output_lines("stdout") == ["ready"])

        await supervisor.shutdown()

        assert supervisor.exit_code == -signal.SIGKILL
        assert len(recording_log.named("worker_kill_escalated")) == 1


# ── run_host ─────────────────────────────────────────────────────────────


class TestRunHost:
    @pytest.mark.asyncio
    async def test_returns_worker_exit_code(self, tmp_path, recording_log):
        settings = StockroomSettings(data_dir=tmp_path / "data")
        code = await run_host(settings, executable=_python("raise SystemExit(4)"), log=recording_log)
        assert code == 4

    @pytest.mark.asyncio
    async def test_spawn_failure_propagates(self, tmp_path, recording_log):
        settings = StockroomSettings(data_dir=tmp_path / "data")
        with pytest.raises(ProcessSpawnError):
            await run_host(settings, executable=str(tmp_path / "missing"), log=recording_log)


# ── Real worker ──────────────────────────────────────────────────────────


@pytest.mark.integration
@pytest.mark.slow
class TestRealWorker:
    @pytest.mark.asyncio
    async def test_worker_materialises_document_and_stops_cleanly(
        self, tmp_path, recording_log, monkeypatch
    ):
        monkeypatch.setenv("PYTHONPATH", str(SRC_DIR))
        monkeypatch.setenv("STOCKROOM_LOG_LEVEL", "INFO")
        monkeypatch.setenv("STOCKROOM_JSON_LOGS", "true")

        supervisor = _supervisor(tmp_path, recording_log, kill_timeout_seconds=10)
        await supervisor.start()

        def ready() -> bool:
            return any("worker_ready" in line for line in recording_log.output_lines("stdout"))

        try:
            await _until(ready, timeout=60)
        finally:
            await supervisor.shutdown()

        assert supervisor.exit_code == 0
        ready_line = next(
            json.loads(line)
            for line in recording_log.output_lines("stdout")
            if "worker_ready" in line
        )
        assert ready_line["service"] == "stockroom-worker"
        assert ready_line["lots"] == 0

        document = json.loads((tmp_path / "data" / "inventory.json").read_text())
        assert document == {"stockIn": [], "stockOut": [], "systemList": []}
