"""
Strike pipeline.

Preview, execute and verify operations composed from the validator,
renderer, encoder and invoker.
"""

from dotmatrix.pipeline.strike_pipeline import (
    PreviewResult,
    StrikeOutcome,
    StrikePipeline,
    StrikeRequest,
    VerifyResult,
)

__all__ = [
    "PreviewResult",
    "StrikeOutcome",
    "StrikePipeline",
    "StrikeRequest",
    "VerifyResult",
]
