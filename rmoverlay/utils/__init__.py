"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Atomic I/O, YAML and JSON loading (fs)
    - Colour parsing (color)
    - Unified logging (logging_config)

No module in utils/ may import from upper layers (lines, bundle, pens, render).

Convenience imports:
    from rmoverlay.utils import fs, color
    from rmoverlay.utils.logging_config import setup_logging, get_logger
"""

from . import color
from . import fs
from . import logging_config

from .logging_config import get_logger, pop_context, push_context, setup_logging

__all__ = [
    # Modules
    'color',
    'fs',
    'logging_config',
    # Direct exports
    'setup_logging',
    'get_logger',
    'push_context',
    'pop_context',
]
