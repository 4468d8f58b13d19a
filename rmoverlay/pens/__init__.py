"""
Pen kinds, base styles, YAML pen overrides and per-stroke style resolution.
"""

from rmoverlay.pens.config import (
    ALL_LAYERS,
    PenConfig,
    PenOverride,
    StyleConfigError,
    derive_override,
    load_pen_config,
    pen_config_from_mapping,
)
from rmoverlay.pens.resolver import PenStyle, StyleResolver, resolve_style
from rmoverlay.pens.styles import (
    BASE_STYLES,
    FALLBACK_KIND,
    PEN_CODES,
    PEN_KINDS,
    WEIGHTS,
    BaseStyle,
    UnknownPenTally,
    classify_width,
    is_eraser,
    lookup_kind,
    normalize_kind,
)

__all__ = [
    "ALL_LAYERS",
    "PenConfig",
    "PenOverride",
    "StyleConfigError",
    "derive_override",
    "load_pen_config",
    "pen_config_from_mapping",
    "PenStyle",
    "StyleResolver",
    "resolve_style",
    "BASE_STYLES",
    "FALLBACK_KIND",
    "PEN_CODES",
    "PEN_KINDS",
    "WEIGHTS",
    "BaseStyle",
    "UnknownPenTally",
    "classify_width",
    "is_eraser",
    "lookup_kind",
    "normalize_kind",
]
