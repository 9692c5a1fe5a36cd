"""
DotMatrix Striker.

Validation and execution pipeline between the byte editor and the Gforth
strike kernel.  Guarantees only representable bytes reach the striker,
renders a hex preview before committing, hands validated data to the
kernel and verifies the struck substrate afterwards.

Subpackages:
    constraints: byte policy and validator
    render: canonical hex dump
    forth: Forth data fragment and directive encoding
    hardware: Gforth process invocation
    pipeline: preview / execute / verify façade
    payload: editor input parsing
    configs: striker.yaml loading and validation
    utils: filesystem gateway, logging, schema validators
"""

__version__ = "1.0.0"

__all__ = [
    "constraints",
    "render",
    "forth",
    "hardware",
    "pipeline",
    "payload",
    "configs",
    "utils",
]
