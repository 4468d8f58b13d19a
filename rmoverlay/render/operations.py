"""Drawing operations -- the vocabulary between the compositor and a surface.

Every drawing action is an immutable, slotted dataclass. Coordinates and
widths are in **PDF points** with a top-left origin and +Y pointing down;
the surface never sees tablet units.

State model
-----------
``SetDrawColor``, ``SetLineWidth`` and ``SetAlpha`` change the current
graphics state. ``MoveTo`` starts a new path, ``LineTo`` extends it, and
``StrokePath`` draws the current path (outline only) with the current
state and then clears it. ``BeginLayer`` / ``EndLayer`` bracket content
belonging to a named layer; layers do not nest.
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass
from typing import Literal

# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------

PageOps = list["Operation"]
"""All operations producing one output page, starting with ``NewPage``."""

BACKGROUND_LAYER = "Background"

# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Operation(ABC):
    """Base class for all drawing operations."""

    pass


# ---------------------------------------------------------------------------
# Page and layer structure
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class NewPage(Operation):
    """Append a page to the output.

    Parameters
    ----------
    width, height : float
        Page size in points.
    """

    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"page size must be positive, got {self.width} x {self.height}")


@dataclass(frozen=True, slots=True)
class BeginLayer(Operation):
    """Start content of the named layer. Equal names share one layer."""

    name: str


@dataclass(frozen=True, slots=True)
class EndLayer(Operation):
    """End the currently open layer."""

    pass


@dataclass(frozen=True, slots=True)
class ImportBackground(Operation):
    """Draw one page of a background source, scaled into a rectangle.

    Parameters
    ----------
    source : ``"pdf"`` | ``"template"``
        The bundle's backing PDF or the single-page template.
    page_index : int
        0-indexed page of *source*.
    width, height : float
        Size of the target rectangle anchored at the page origin.
    """

    source: Literal["pdf", "template"]
    page_index: int
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.source not in ("pdf", "template"):
            raise ValueError(f"source must be 'pdf' or 'template', got {self.source!r}")
        if self.page_index < 0:
            raise ValueError(f"page_index must be >= 0, got {self.page_index}")


# ---------------------------------------------------------------------------
# Graphics state
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SetDrawColor(Operation):
    """Set the stroke colour.

    Parameters
    ----------
    r, g, b : int
        Components in [0, 255].
    """

    r: int
    g: int
    b: int

    def __post_init__(self) -> None:
        for ch, val in [("r", self.r), ("g", self.g), ("b", self.b)]:
            if not 0 <= val <= 255:
                raise ValueError(f"SetDrawColor {ch} must be in [0, 255], got {val}")


@dataclass(frozen=True, slots=True)
class SetLineWidth(Operation):
    """Set the stroke width in points."""

    width: float


@dataclass(frozen=True, slots=True)
class SetAlpha(Operation):
    """Set the stroke opacity (normal blending)."""

    alpha: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.alpha <= 1.0:
            raise ValueError(f"SetAlpha alpha must be in [0, 1], got {self.alpha}")


# ---------------------------------------------------------------------------
# Path construction
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class MoveTo(Operation):
    """Start a new path at ``(x, y)``."""

    x: float
    y: float


@dataclass(frozen=True, slots=True)
class LineTo(Operation):
    """Extend the current path to ``(x, y)``."""

    x: float
    y: float


@dataclass(frozen=True, slots=True)
class StrokePath(Operation):
    """Outline the current path; no fill."""

    pass
