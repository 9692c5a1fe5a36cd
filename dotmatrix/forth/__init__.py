"""
Forth protocol encoding.

Converts validated byte buffers into the data fragment and execution
directive consumed by the Gforth strike kernel.
"""

from dotmatrix.forth.encoder import StrikeProgram, StrikeProtocolEncoder

__all__ = ["StrikeProgram", "StrikeProtocolEncoder"]
