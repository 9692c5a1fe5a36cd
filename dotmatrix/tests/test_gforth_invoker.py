"""Tests for the Gforth interpreter invoker.

``subprocess`` is mocked except for one throwaway shell script standing in
for a gforth build with an undecodable banner.  Covers:
    - Availability probe (missing binary, non-zero exit, success)
    - Command vector layout
    - Exit status mapping (0, non-zero, signal, spawn failure)
    - Timeout and cancellation terminate the child
"""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from dotmatrix.configs.loader import KernelConfig
from dotmatrix.errors import (
    InterpreterExecutionError,
    InterpreterTimeout,
    StrikeCancelled,
)
from dotmatrix.hardware.gforth_invoker import (
    CancelToken,
    InterpreterInvoker,
    InvocationResult,
)

RUN = "dotmatrix.hardware.gforth_invoker.subprocess.run"
POPEN = "dotmatrix.hardware.gforth_invoker.subprocess.Popen"


# ---------------------------------------------------------------------------
# Fake process
# ---------------------------------------------------------------------------


class FakeProc:
    """Stand-in for ``subprocess.Popen``.

    ``polls`` is how many ``communicate`` calls time out before the
    process "exits"; ``None`` means it never exits on its own.
    """

    def __init__(
        self,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        polls: int | None = 0,
    ) -> None:
        self._final_rc = returncode
        self.returncode: int | None = None
        self._stdout = stdout
        self._stderr = stderr
        self._polls = polls
        self.terminated = False
        self.killed = False
        self.communicate_calls = 0

    def communicate(self, timeout: float | None = None) -> tuple[str, str]:
        self.communicate_calls += 1
        if self.terminated or self.killed:
            self.returncode = -15
            return "", "terminated"
        if self._polls is None or self._polls > 0:
            if self._polls is not None:
                self._polls -= 1
            raise subprocess.TimeoutExpired("gforth", timeout)
        self.returncode = self._final_rc
        return self._stdout, self._stderr

    def terminate(self) -> None:
        self.terminated = True

    def kill(self) -> None:
        self.killed = True


@pytest.fixture()
def invoker() -> InterpreterInvoker:
    return InterpreterInvoker("kernel/striker.fth", poll_interval_s=0.001)


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------


class TestAvailability:
    def test_missing_binary(self, invoker: InterpreterInvoker) -> None:
        with patch(RUN, side_effect=FileNotFoundError("gforth")):
            assert invoker.is_available() is False

    def test_probe_timeout(self, invoker: InterpreterInvoker) -> None:
        with patch(RUN, side_effect=subprocess.TimeoutExpired("gforth", 10)):
            assert invoker.is_available() is False

    def test_nonzero_exit(self, invoker: InterpreterInvoker) -> None:
        done = subprocess.CompletedProcess(["gforth"], 1, "", "boom")
        with patch(RUN, return_value=done):
            assert invoker.is_available() is False

    def test_available(self, invoker: InterpreterInvoker) -> None:
        done = subprocess.CompletedProcess(["gforth"], 0, "gforth 0.7.3\n", "")
        with patch(RUN, return_value=done) as run:
            assert invoker.is_available() is True
        assert run.call_args.args[0] == ["gforth", "--version"]

    @pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell script")
    def test_undecodable_banner(self, tmp_path: Path) -> None:
        fake = tmp_path / "gforth"
        fake.write_text("#!/bin/sh\nprintf 'gforth \\377\\376 build\\n'\nexit 0\n")
        fake.chmod(0o755)
        inv = InterpreterInvoker("kernel/striker.fth", binary=str(fake))
        assert inv.is_available() is True

    def test_probe_decodes_leniently(self, invoker: InterpreterInvoker) -> None:
        done = subprocess.CompletedProcess(["gforth"], 0, "gforth \ufffd\n", "")
        with patch(RUN, return_value=done) as run:
            invoker.is_available()
        assert run.call_args.kwargs["errors"] == "replace"

    def test_from_config(self) -> None:
        kernel = KernelConfig(binary="gforth-fast", working_dir=Path("k"))
        inv = InterpreterInvoker.from_config(kernel)
        assert inv.binary == "gforth-fast"
        assert inv.program_path == Path("k") / "striker.fth"


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


class TestRun:
    def test_command_vector(self, invoker: InterpreterInvoker) -> None:
        cmd = invoker.build_command("kernel/data-abc.fth", "s\" x\" bye")
        assert cmd == [
            "gforth",
            str(Path("kernel/striker.fth")),
            "kernel/data-abc.fth",
            "-e",
            "s\" x\" bye",
        ]

    def test_success(self, invoker: InterpreterInvoker) -> None:
        proc = FakeProc(stdout="ok\n")
        with patch(POPEN, return_value=proc) as popen:
            result = invoker.run("kernel/data.fth", "bye")
        assert isinstance(result, InvocationResult)
        assert result.returncode == 0
        assert result.stdout == "ok\n"
        assert result.duration_s >= 0
        kwargs: dict[str, Any] = popen.call_args.kwargs
        assert kwargs["stdin"] is subprocess.DEVNULL

    def test_nonzero_exit(self, invoker: InterpreterInvoker) -> None:
        proc = FakeProc(returncode=3, stderr="undefined word")
        with patch(POPEN, return_value=proc):
            with pytest.raises(InterpreterExecutionError) as exc_info:
                invoker.run("kernel/data.fth", "bye")
        err = exc_info.value
        assert err.returncode == 3
        assert err.stderr == "undefined word"
        assert "non-zero exit code (3)" in str(err)

    def test_killed_by_signal(self, invoker: InterpreterInvoker) -> None:
        with patch(POPEN, return_value=FakeProc(returncode=-9)):
            with pytest.raises(InterpreterExecutionError, match="signal 9"):
                invoker.run("kernel/data.fth", "bye")

    def test_spawn_failure(self, invoker: InterpreterInvoker) -> None:
        with patch(POPEN, side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(InterpreterExecutionError, match="could not start"):
                invoker.run("kernel/data.fth", "bye")

    def test_stderr_tail_truncated(self, invoker: InterpreterInvoker) -> None:
        with patch(POPEN, return_value=FakeProc(returncode=1, stderr="x" * 10000)):
            with pytest.raises(InterpreterExecutionError) as exc_info:
                invoker.run("kernel/data.fth", "bye")
        assert len(exc_info.value.stderr) == 4000

    def test_slow_exit_within_deadline(self, invoker: InterpreterInvoker) -> None:
        proc = FakeProc(polls=3)
        with patch(POPEN, return_value=proc):
            invoker.run("kernel/data.fth", "bye", timeout_s=60.0)
        assert proc.communicate_calls == 4
        assert not proc.terminated


# ---------------------------------------------------------------------------
# Timeout / cancellation
# ---------------------------------------------------------------------------


class TestTimeoutAndCancel:
    def test_timeout_terminates(self, invoker: InterpreterInvoker) -> None:
        proc = FakeProc(polls=None)
        with patch(POPEN, return_value=proc):
            with pytest.raises(InterpreterTimeout) as exc_info:
                invoker.run("kernel/data.fth", "bye", timeout_s=0.01)
        assert proc.terminated
        assert exc_info.value.timeout_s == 0.01
        assert exc_info.value.stderr == "terminated"

    def test_timeout_is_execution_error(self) -> None:
        assert issubclass(InterpreterTimeout, InterpreterExecutionError)
        assert issubclass(StrikeCancelled, InterpreterExecutionError)

    def test_kill_after_grace(self, invoker: InterpreterInvoker) -> None:
        proc = MagicMock()
        proc.communicate.side_effect = [
            subprocess.TimeoutExpired("gforth", 2.0),
            ("", "killed"),
        ]
        assert invoker._terminate(proc) == "killed"
        proc.terminate.assert_called_once()
        proc.kill.assert_called_once()

    def test_cancel_before_launch(self, invoker: InterpreterInvoker) -> None:
        token = CancelToken()
        token.cancel()
        with patch(POPEN) as popen:
            with pytest.raises(StrikeCancelled):
                invoker.run("kernel/data.fth", "bye", cancel=token)
        popen.assert_not_called()

    def test_cancel_while_running(self, invoker: InterpreterInvoker) -> None:
        token = CancelToken()
        proc = FakeProc(polls=None)
        original = proc.communicate

        def communicate(timeout: float | None = None) -> tuple[str, str]:
            if proc.communicate_calls == 2:
                token.cancel()
            return original(timeout)

        proc.communicate = communicate  # type: ignore[method-assign]
        with patch(POPEN, return_value=proc):
            with pytest.raises(StrikeCancelled):
                invoker.run("kernel/data.fth", "bye", cancel=token)
        assert proc.terminated

    def test_token_state(self) -> None:
        token = CancelToken()
        assert not token.cancelled
        token.cancel()
        assert token.cancelled
