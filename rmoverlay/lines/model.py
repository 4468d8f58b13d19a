"""Decoded lines-file document: layers → strokes → points.

Every type is an immutable, slotted dataclass. Coordinates stay in tablet
units here; conversion to PDF points happens in the compositor.

Layer numbering
---------------
Layers are stored 0-indexed in ``StrokeDocument.layers`` but addressed
1-indexed everywhere else (``iter_layers``, pen configuration keys,
log messages), matching how the tablet presents them.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Point:
    """One sampled stylus position.

    Parameters
    ----------
    x, y : float
        Tablet coordinates (top-left origin, +Y down).
    pressure, tilt : float
        Carried through for completeness; not used for rendering.
    """

    x: float
    y: float
    pressure: float = 0.0
    tilt: float = 0.0


@dataclass(frozen=True, slots=True)
class Stroke:
    """One continuous pen path.

    Parameters
    ----------
    pen_code : int
        Raw pen tag from the file, mapped to a pen kind by ``pens.styles``.
    color_code : int
        Raw colour tag; kept but not used for rendering.
    base_width : float
        Raw encoded width, one of 1.875 / 2.000 / 2.125 in practice.
    points : tuple[Point, ...]
        Ordered samples; length equals the declared segment count.
    """

    pen_code: int
    color_code: int
    base_width: float
    points: tuple[Point, ...] = ()

    @property
    def segment_count(self) -> int:
        return len(self.points)


@dataclass(frozen=True, slots=True)
class Layer:
    """Ordered strokes of one tablet layer (possibly empty)."""

    strokes: tuple[Stroke, ...] = ()

    def __len__(self) -> int:
        return len(self.strokes)


@dataclass(frozen=True, slots=True)
class MaxCoordinates:
    """Largest x and y seen across every decoded segment."""

    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True, slots=True)
class StrokeDocument:
    """A decoded lines file.

    Parameters
    ----------
    layers : tuple[Layer, ...]
        Fully decoded layers in file order.
    declared_layer_count : int
        Layer count announced by the header (0 when the stream ends before it).
    max_coordinates : MaxCoordinates
        Diagnostics only; never used for geometry.
    truncated : bool
        True when the stream ended early. ``layers`` then holds only the
        layers and strokes that were read completely.
    """

    layers: tuple[Layer, ...]
    declared_layer_count: int
    max_coordinates: MaxCoordinates = MaxCoordinates()
    truncated: bool = False

    def iter_layers(self) -> Iterator[tuple[int, Layer]]:
        """Yield ``(layer_number, layer)`` with 1-indexed layer numbers."""
        for index, layer in enumerate(self.layers):
            yield index + 1, layer

    def iter_strokes(self) -> Iterator[tuple[int, Stroke]]:
        """Yield ``(layer_number, stroke)`` in encoded order."""
        for number, layer in self.iter_layers():
            for stroke in layer.strokes:
                yield number, stroke

    @property
    def stroke_count(self) -> int:
        return sum(len(layer) for layer in self.layers)
