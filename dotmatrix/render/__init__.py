"""
Hex dump rendering for preview and verification.
"""

from dotmatrix.render.hexdump import HexRenderer, render

__all__ = ["HexRenderer", "render"]
