"""Strike pipeline -- preview, execute and verify.

Composes the validator, hex renderer, protocol encoder and interpreter
invoker into the three operations the host exposes:

Preview (dry run)
    Exhaustive scan + hex dump of pending bytes.  Touches neither the
    filesystem nor the interpreter and never raises for contamination.

Execute
    Fail-fast validation -> destination check -> interpreter probe ->
    kernel directory check -> destination parent mkdir -> write fragment
    -> run kernel.  The first failing step raises and nothing after it
    happens.  The destination file itself is only ever written by the
    kernel, so a failed strike leaves no partial output of ours.

Verify
    Read a substrate file back, scan it and dump it.  Contamination is
    reported in the result, not raised.

Fragment handoff:
    With ``kernel.unique_fragments`` (default) every strike writes its
    own ``data-<request_id>.fth`` and passes that name to the kernel, so
    concurrent strikes cannot read each other's data.  With the legacy
    shared ``data.fth`` all executes in this process are serialized by a
    module lock.

The pipeline keeps no state between calls; it is safe to build one per
request or share one across threads.
"""

from __future__ import annotations

import contextlib
import logging
import threading
import uuid
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from dotmatrix.configs.loader import StrikerConfig
from dotmatrix.constraints.policy import ByteBuffer, ByteValidator, Contaminant
from dotmatrix.errors import (
    FileOperationError,
    InterpreterNotFound,
    UnsafeDestination,
)
from dotmatrix.forth.encoder import StrikeProtocolEncoder, check_destination
from dotmatrix.hardware.gforth_invoker import CancelToken, InterpreterInvoker
from dotmatrix.payload.parsing import has_traversal
from dotmatrix.render.hexdump import HexRenderer
from dotmatrix.utils import fs
from dotmatrix.utils.logging_config import context_scope

logger = logging.getLogger(__name__)

_SHARED_FRAGMENT_LOCK = threading.Lock()


def _new_request_id() -> str:
    return uuid.uuid4().hex[:12]


# ---------------------------------------------------------------------------
# Requests / results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StrikeRequest:
    """One user-initiated strike; consumed by a single execute call."""

    data: bytes
    destination: str
    request_id: str = field(default_factory=_new_request_id)


@dataclass(frozen=True, slots=True)
class PreviewResult:
    hex_preview: str
    would_contaminate: bool
    contaminants: tuple[Contaminant, ...]
    byte_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class VerifyResult:
    """Substrate read-back report; ``clean`` is ``not contaminants``."""

    clean: bool
    contaminants: tuple[Contaminant, ...]
    hexdump: str
    size: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class StrikeOutcome:
    """Success marker returned by ``execute``."""

    request_id: str
    destination: str
    byte_count: int
    duration_s: float


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class StrikePipeline:
    """Preview / execute / verify façade.

    Parameters
    ----------
    config : StrikerConfig | None
        Loaded configuration; ``None`` uses built-in defaults.
    validator, renderer, encoder, invoker
        Optional collaborators; built from *config* when omitted.
    """

    def __init__(
        self,
        config: StrikerConfig | None = None,
        *,
        validator: ByteValidator | None = None,
        renderer: HexRenderer | None = None,
        encoder: StrikeProtocolEncoder | None = None,
        invoker: InterpreterInvoker | None = None,
    ) -> None:
        self._cfg = config or StrikerConfig()
        kernel = self._cfg.kernel
        self._validator = validator or ByteValidator(self._cfg.constraints)
        self._renderer = renderer or HexRenderer()
        self._encoder = encoder or StrikeProtocolEncoder(
            array_name=kernel.array_name,
            init_word=kernel.init_word,
            sequence_word=kernel.sequence_word,
            close_word=kernel.close_word,
        )
        self._invoker = invoker or InterpreterInvoker.from_config(kernel)

    @property
    def config(self) -> StrikerConfig:
        return self._cfg

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def check_availability(self) -> bool:
        """``True`` if the interpreter answers its version probe."""
        return self._invoker.is_available()

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def preview(self, buffer: ByteBuffer) -> PreviewResult:
        """Dry run: everything wrong with *buffer* plus its hex dump."""
        contaminants = tuple(self._validator.scan_all(buffer))
        if contaminants:
            logger.warning(
                "Preview found %d contaminant(s) in %d bytes",
                len(contaminants), len(buffer),
            )
        return PreviewResult(
            hex_preview=self._renderer.render(buffer),
            would_contaminate=bool(contaminants),
            contaminants=contaminants,
            byte_count=len(buffer),
        )

    # ------------------------------------------------------------------
    # Execute
    # ------------------------------------------------------------------

    def execute(
        self,
        buffer: ByteBuffer,
        destination: str | Path,
        *,
        timeout_s: float | None = None,
        cancel: CancelToken | None = None,
    ) -> StrikeOutcome:
        """Validate *buffer* and strike it onto *destination*.

        Parameters
        ----------
        buffer : ByteBuffer
            Bytes to strike.
        destination : str | Path
            Substrate path handed to the kernel.
        timeout_s : float | None
            Overrides ``kernel.timeout_s`` for this call.
        cancel : CancelToken | None
            Terminates the kernel when triggered.

        Raises
        ------
        ForbiddenByte, ByteOutOfRange
            First invalid byte; nothing is written.
        UnsafeDestination
            Destination cannot be embedded or traverses upward.
        InterpreterNotFound
            Version probe failed; nothing is written.
        FileOperationError
            Kernel directory missing or a filesystem step failed.
        InterpreterExecutionError
            Kernel failed, timed out or was cancelled.
        """
        if timeout_s is None:
            timeout_s = self._cfg.kernel.timeout_s

        request_id = _new_request_id()
        with context_scope(request_id=request_id):
            logger.info(
                "Strike requested: %d bytes -> %s", len(buffer), destination,
            )
            self._validator.validate_strict(buffer)
            request = StrikeRequest(
                data=bytes(buffer),
                destination=str(destination),
                request_id=request_id,
            )
            self._check_destination(request.destination)

            if not self._invoker.is_available():
                raise InterpreterNotFound(self._invoker.binary)

            self._check_kernel_dir()
            self._ensure_destination_parent(request.destination)

            outcome = self._run_request(request, timeout_s, cancel)
            logger.info("Strike complete in %.2f s", outcome.duration_s)
            return outcome

    def _check_destination(self, destination: str) -> None:
        check_destination(destination)
        if not self._cfg.destination.allow_traversal and has_traversal(destination):
            raise UnsafeDestination(
                destination, "path traversal ('..' or '~') is not allowed"
            )

    def _check_kernel_dir(self) -> None:
        kernel = self._cfg.kernel
        if not kernel.working_dir.is_dir():
            raise FileOperationError(f"{kernel.working_dir}/ directory not found")
        if not kernel.program_path.is_file():
            raise FileOperationError(f"{kernel.program_path} not found")

    def _ensure_destination_parent(self, destination: str) -> None:
        parent = Path(destination).parent
        try:
            fs.ensure_dir(parent)
        except OSError as exc:
            raise FileOperationError.from_os_error(
                exc, f"cannot create {parent}"
            ) from exc

    def _run_request(
        self,
        request: StrikeRequest,
        timeout_s: float | None,
        cancel: CancelToken | None,
    ) -> StrikeOutcome:
        kernel = self._cfg.kernel
        program = self._encoder.encode(request.data, request.destination)
        fragment_path = kernel.fragment_path_for(request.request_id)

        lock = (
            contextlib.nullcontext()
            if kernel.unique_fragments
            else _SHARED_FRAGMENT_LOCK
        )
        with lock:
            try:
                self._encoder.write_fragment(program, fragment_path)
            except OSError as exc:
                raise FileOperationError.from_os_error(
                    exc, f"cannot write {fragment_path}"
                ) from exc

            try:
                result = self._invoker.run(
                    fragment_path,
                    program.directive,
                    timeout_s=timeout_s,
                    cancel=cancel,
                )
            finally:
                if kernel.unique_fragments and not kernel.keep_fragments:
                    fs.remove_quietly(fragment_path)

        return StrikeOutcome(
            request_id=request.request_id,
            destination=request.destination,
            byte_count=program.byte_count,
            duration_s=result.duration_s,
        )

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify(self, path: str | Path) -> VerifyResult:
        """Read *path* back and report contamination.

        Raises
        ------
        FileOperationError
            If the file cannot be read.
        """
        try:
            data = fs.read_bytes(path)
        except OSError as exc:
            raise FileOperationError.from_os_error(
                exc, f"Failed to read {path}"
            ) from exc

        contaminants = tuple(self._validator.scan_all(data))
        if contaminants:
            logger.warning(
                "Substrate %s contaminated: %d byte(s)", path, len(contaminants),
            )
        else:
            logger.info("Substrate %s clean (%d bytes)", path, len(data))

        return VerifyResult(
            clean=not contaminants,
            contaminants=contaminants,
            hexdump=self._renderer.render(data),
            size=len(data),
        )

    def read_substrate_hex(self, path: str | Path) -> VerifyResult:
        """Alias of ``verify`` used by the host for read-only display."""
        return self.verify(path)
