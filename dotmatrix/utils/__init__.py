"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Filesystem gateway: atomic writes, raw reads, YAML (fs)
    - Config schema validation (validators)
    - Unified logging (logging_config)

No module in utils/ may import from upper layers (pipeline, hardware, forth, ...).

Convenience imports:
    from dotmatrix.utils import fs, validators
    from dotmatrix.utils.logging_config import setup_logging, push_context
"""

from . import fs
from . import logging_config
from . import validators

from .logging_config import context_scope, push_context, setup_logging

__all__ = [
    # Modules
    'fs',
    'logging_config',
    'validators',
    # Direct exports
    'setup_logging',
    'push_context',
    'context_scope',
]
