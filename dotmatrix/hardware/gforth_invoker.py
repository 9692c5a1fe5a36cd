"""Gforth interpreter invoker.

Launches the external Forth kernel as a child process:

    gforth <program> <fragment> -e '<directive>'

and maps its outcome onto the strike error taxonomy:

    exit 0                 -> InvocationResult
    exit != 0 / signal     -> InterpreterExecutionError (returncode, stderr tail)
    spawn failure          -> InterpreterExecutionError (OS diagnostic)
    timeout                -> InterpreterTimeout  (child terminated, then killed)
    CancelToken.cancel()   -> StrikeCancelled     (child terminated, then killed)

The call blocks until the child exits.  Output is drained with
``communicate(timeout=poll_interval_s)`` in a loop so that cancellation
and the deadline are checked between polls without risking a full pipe.

``is_available()`` runs ``gforth --version`` and never raises; the
banner is decoded with ``errors="replace"`` so odd builds still probe.
"""

from __future__ import annotations

import logging
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path

from dotmatrix.configs.loader import KernelConfig
from dotmatrix.errors import (
    InterpreterExecutionError,
    InterpreterTimeout,
    StrikeCancelled,
)

logger = logging.getLogger(__name__)

STDERR_TAIL_CHARS = 4000


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class CancelToken:
    """Thread-safe cancellation flag shared between caller and invoker."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()
        logger.info("Strike cancellation requested")

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InvocationResult:
    """Outcome of a successful kernel run."""

    returncode: int
    stdout: str
    stderr: str
    duration_s: float


# ---------------------------------------------------------------------------
# Invoker
# ---------------------------------------------------------------------------


class InterpreterInvoker:
    """Run the Gforth kernel as a controlled subprocess.

    Parameters
    ----------
    program_path : str | Path
        Static protocol program (``kernel/striker.fth``).
    binary : str
        Interpreter executable, looked up on ``PATH``.
    version_flag : str
        Argument used by ``is_available()``.
    poll_interval_s : float
        How often cancellation and the deadline are checked.
    kill_grace_s : float
        Time between ``terminate()`` and ``kill()``.
    """

    def __init__(
        self,
        program_path: str | Path,
        binary: str = "gforth",
        version_flag: str = "--version",
        poll_interval_s: float = 0.05,
        kill_grace_s: float = 2.0,
        probe_timeout_s: float = 10.0,
    ) -> None:
        self.program_path = Path(program_path)
        self.binary = binary
        self.version_flag = version_flag
        self.poll_interval_s = poll_interval_s
        self.kill_grace_s = kill_grace_s
        self.probe_timeout_s = probe_timeout_s

    @classmethod
    def from_config(cls, kernel: KernelConfig) -> InterpreterInvoker:
        return cls(
            program_path=kernel.program_path,
            binary=kernel.binary,
            version_flag=kernel.version_flag,
        )

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def is_available(self) -> bool:
        """``True`` only if ``<binary> --version`` starts and exits 0."""
        try:
            proc = subprocess.run(
                [self.binary, self.version_flag],
                check=False,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.probe_timeout_s,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug("%s probe failed: %s", self.binary, exc)
            return False

        if proc.returncode != 0:
            logger.debug("%s probe exited with %d", self.binary, proc.returncode)
            return False
        logger.debug("%s available: %s", self.binary, proc.stdout.strip())
        return True

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def build_command(self, fragment_path: str | Path, directive: str) -> list[str]:
        """Argument vector: program, fragment, then the ``-e`` directive."""
        return [
            self.binary,
            str(self.program_path),
            str(fragment_path),
            "-e",
            directive,
        ]

    def run(
        self,
        fragment_path: str | Path,
        directive: str,
        *,
        timeout_s: float | None = None,
        cancel: CancelToken | None = None,
    ) -> InvocationResult:
        """Run one strike and wait for the kernel to exit.

        Parameters
        ----------
        fragment_path : str | Path
            Data fragment written by the encoder for this request.
        directive : str
            One-line ``-e`` program.
        timeout_s : float | None
            Wall-clock limit; ``None`` waits indefinitely.
        cancel : CancelToken | None
            Checked every ``poll_interval_s``.

        Raises
        ------
        InterpreterExecutionError
            Spawn failure or non-zero / abnormal exit.
        InterpreterTimeout
            Deadline reached.
        StrikeCancelled
            *cancel* was triggered.
        """
        cmd = self.build_command(fragment_path, directive)
        logger.debug("Launching kernel: %s", cmd)

        if cancel is not None and cancel.cancelled:
            raise StrikeCancelled()

        start = time.monotonic()
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except OSError as exc:
            raise InterpreterExecutionError(
                f"could not start {self.binary}: {exc}"
            ) from exc

        deadline = None if timeout_s is None else start + timeout_s
        while True:
            try:
                stdout, stderr = proc.communicate(timeout=self.poll_interval_s)
                break
            except subprocess.TimeoutExpired:
                if cancel is not None and cancel.cancelled:
                    self._terminate(proc)
                    logger.warning("Kernel terminated after cancellation")
                    raise StrikeCancelled() from None
                if deadline is not None and time.monotonic() >= deadline:
                    tail = self._terminate(proc)
                    logger.error("Kernel timed out after %.1f s", timeout_s)
                    raise InterpreterTimeout(timeout_s, stderr=tail) from None

        duration = time.monotonic() - start
        stderr = stderr or ""
        tail = stderr[-STDERR_TAIL_CHARS:]

        if proc.returncode != 0:
            logger.error("Kernel exited with %d: %s", proc.returncode, tail.strip())
        if proc.returncode < 0:
            raise InterpreterExecutionError(
                f"Forth kernel terminated by signal {-proc.returncode}",
                returncode=proc.returncode,
                stderr=tail,
            )
        if proc.returncode != 0:
            raise InterpreterExecutionError(
                f"Forth kernel returned non-zero exit code ({proc.returncode})",
                returncode=proc.returncode,
                stderr=tail,
            )

        logger.info("Kernel finished in %.2f s", duration)
        return InvocationResult(
            returncode=proc.returncode,
            stdout=stdout or "",
            stderr=stderr,
            duration_s=duration,
        )

    def _terminate(self, proc: subprocess.Popen) -> str:
        """Terminate, escalate to kill after the grace period, return stderr tail."""
        proc.terminate()
        try:
            _, stderr = proc.communicate(timeout=self.kill_grace_s)
        except subprocess.TimeoutExpired:
            proc.kill()
            _, stderr = proc.communicate()
        return (stderr or "")[-STDERR_TAIL_CHARS:]
