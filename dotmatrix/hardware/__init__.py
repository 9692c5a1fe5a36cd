"""
Interpreter process control.

Probes for and launches the Gforth strike kernel, with timeout and
cancellation.
"""

from dotmatrix.hardware.gforth_invoker import (
    CancelToken,
    InterpreterInvoker,
    InvocationResult,
)

__all__ = ["CancelToken", "InterpreterInvoker", "InvocationResult"]
