"""
Payload input helpers.

Turns editor input (comma-separated decimals or ASCII text) into byte
buffers and provides hex helpers for display.
"""

from dotmatrix.payload.parsing import (
    PayloadParseError,
    bytes_to_hex,
    has_traversal,
    hex_to_bytes,
    parse_byte_string,
    parse_payload,
    string_to_bytes,
)

__all__ = [
    "PayloadParseError",
    "bytes_to_hex",
    "has_traversal",
    "hex_to_bytes",
    "parse_byte_string",
    "parse_payload",
    "string_to_bytes",
]
