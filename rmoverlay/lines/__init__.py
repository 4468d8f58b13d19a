"""
Lines file decoding.

Turns a version 5 ``.rm`` stroke capture into an immutable
``StrokeDocument`` of layers, strokes and points.
"""

from rmoverlay.lines.decoder import (
    HEADER,
    BadHeaderError,
    FormatError,
    NoLayersError,
    UnsupportedVersionError,
    decode_lines,
    decode_lines_bytes,
    load_lines_file,
)
from rmoverlay.lines.model import Layer, MaxCoordinates, Point, Stroke, StrokeDocument

__all__ = [
    "HEADER",
    "BadHeaderError",
    "FormatError",
    "NoLayersError",
    "UnsupportedVersionError",
    "decode_lines",
    "decode_lines_bytes",
    "load_lines_file",
    "Layer",
    "MaxCoordinates",
    "Point",
    "Stroke",
    "StrokeDocument",
]
