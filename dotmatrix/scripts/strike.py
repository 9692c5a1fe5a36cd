#!/usr/bin/env python3
"""
Strike CLI.

Preview, strike and verify byte sequences from the command line.

Usage:
    python -m dotmatrix.scripts.strike check
    python -m dotmatrix.scripts.strike preview "104,101,108,108,111"
    python -m dotmatrix.scripts.strike preview --text "hello"
    python -m dotmatrix.scripts.strike preview --hex 68656c6c6f
    python -m dotmatrix.scripts.strike strike "104,101,108,108,111" --out dist/substrate.bin
    python -m dotmatrix.scripts.strike verify dist/substrate.bin

Exit codes:
    0  success / substrate clean / interpreter available
    1  contamination found (preview, verify) / interpreter missing (check)
    2  error (bad input, config, strike failure, unreadable file)
"""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from typing import Sequence

from dotmatrix.configs.loader import ConfigError, StrikerConfig, load_config
from dotmatrix.constraints.policy import Contaminant
from dotmatrix.errors import StrikeError, to_display
from dotmatrix.hardware.gforth_invoker import CancelToken
from dotmatrix.payload.parsing import (
    PayloadParseError,
    bytes_to_hex,
    hex_to_bytes,
    parse_payload,
    string_to_bytes,
)
from dotmatrix.pipeline.strike_pipeline import StrikeOutcome, StrikePipeline
from dotmatrix.utils.logging_config import install_excepthook, setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ERROR = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dotmatrix-strike",
        description="Preview, strike and verify byte sequences",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        help="Configuration file path (default: packaged striker.yaml)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Override the configured log level",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("check", help="Check that the Gforth interpreter is available")

    for name, help_text in (
        ("preview", "Dry run: hex dump and contamination report"),
        ("strike", "Validate and strike bytes via the Forth kernel"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument(
            "payload",
            help="Comma-separated decimal bytes, or text when it has no comma",
        )
        form = p.add_mutually_exclusive_group()
        form.add_argument(
            "--text",
            action="store_true",
            help="Treat payload as ASCII text even if it contains commas",
        )
        form.add_argument(
            "--hex",
            action="store_true",
            help="Treat payload as a hex string (e.g. 48656c6c6f)",
        )

    strike = sub.choices["strike"]
    strike.add_argument("--out", "-o", type=str, help="Destination substrate path")
    strike.add_argument("--timeout", type=float, help="Kernel timeout in seconds")
    strike.add_argument(
        "--no-verify",
        action="store_true",
        help="Skip the read-back verification after a successful strike",
    )

    verify = sub.add_parser("verify", help="Verify a struck substrate file")
    verify.add_argument("path", nargs="?", help="Substrate path (default from config)")

    return parser


def _print_contaminants(contaminants: Sequence[Contaminant]) -> None:
    for c in contaminants:
        print(f"  position {c.position}: 0x{c.value:02X} - {c.description}")


def _payload(args: argparse.Namespace) -> bytes:
    if args.text:
        return string_to_bytes(args.payload)
    if args.hex:
        return hex_to_bytes(args.payload)
    return parse_payload(args.payload)


def _strike_with_cancel(
    pipeline: StrikePipeline,
    data: bytes,
    destination: str,
    timeout_s: float | None,
) -> StrikeOutcome:
    """Run ``execute`` on a worker so Ctrl+C can cancel the kernel cleanly."""
    token = CancelToken()
    box: dict[str, object] = {}

    def work() -> None:
        try:
            box["outcome"] = pipeline.execute(
                data, destination, timeout_s=timeout_s, cancel=token,
            )
        except BaseException as exc:  # noqa: BLE001 -- re-raised on the main thread
            box["error"] = exc

    worker = threading.Thread(target=work, name="strike", daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(timeout=0.1)
    except KeyboardInterrupt:
        print("\nCancelling strike...")
        token.cancel()
        worker.join()

    if "error" in box:
        raise box["error"]  # type: ignore[misc]
    return box["outcome"]  # type: ignore[return-value]


def _cmd_check(pipeline: StrikePipeline) -> int:
    binary = pipeline.config.kernel.binary
    if pipeline.check_availability():
        print(f"{binary}: available")
        return EXIT_OK
    print(f"{binary}: not found")
    return EXIT_FAILED


def _cmd_preview(pipeline: StrikePipeline, args: argparse.Namespace) -> int:
    data = _payload(args)
    result = pipeline.preview(data)
    print(f"hex: {bytes_to_hex(data)}")
    print(result.hex_preview)
    print(f"{result.byte_count} bytes")
    if result.would_contaminate:
        print("CONTAMINATED:")
        _print_contaminants(result.contaminants)
        return EXIT_FAILED
    print("CLEAN")
    return EXIT_OK


def _cmd_strike(
    pipeline: StrikePipeline, config: StrikerConfig, args: argparse.Namespace,
) -> int:
    data = _payload(args)
    destination = args.out or config.destination.default
    print(f"Striking {len(data)} bytes to {destination}...")
    outcome = _strike_with_cancel(pipeline, data, destination, args.timeout)
    print(f"Strike complete ({outcome.duration_s:.2f} s, request {outcome.request_id})")
    if args.no_verify:
        return EXIT_OK
    return _report_verify(pipeline, destination)


def _report_verify(pipeline: StrikePipeline, path: str) -> int:
    result = pipeline.verify(path)
    print(result.hexdump)
    print(f"{result.size} bytes")
    if not result.clean:
        print("FAIL: CONTAMINATION DETECTED")
        _print_contaminants(result.contaminants)
        return EXIT_FAILED
    print("PASS: Substrate is ASCII-pure.")
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except (ConfigError, FileNotFoundError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return EXIT_ERROR

    setup_logging(
        log_level=args.log_level or config.logging.level,
        log_file=config.logging.file,
        json=config.logging.json,
        context={"app": "strike"},
    )
    install_excepthook()

    pipeline = StrikePipeline(config)

    try:
        if args.command == "check":
            return _cmd_check(pipeline)
        if args.command == "preview":
            return _cmd_preview(pipeline, args)
        if args.command == "strike":
            return _cmd_strike(pipeline, config, args)
        return _report_verify(pipeline, args.path or config.destination.default)
    except PayloadParseError as e:
        print(f"Invalid payload: {e}", file=sys.stderr)
        return EXIT_ERROR
    except StrikeError as e:
        print(f"Error: {to_display(e)}", file=sys.stderr)
        logger.debug("Command %s failed", args.command, exc_info=True)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
