"""Compositor -- decoded strokes + page plan entry to drawing operations.

Page geometry
-------------
Output pages are sized from the tablet's aspect ratio (``222.6264 x 297``
mm, portrait) while backgrounds are drawn into an A4 rectangle
(``210 x 297`` mm) at the origin, leaving a strip on the right. Landscape
bundles swap both sizes. Millimetres become points via ``MM_TO_POINTS``.

Tablet coordinates become points by dividing by ``TABLET_UNITS_PER_POINT``.
Landscape pages are rotated::

    x' = H - y / s
    y' = x / s          (H = page height in points at 297 mm, s = 2.222)

Per-page operation order::

    NewPage
    BeginLayer("Background"), ImportBackground, EndLayer
    for each decoded layer:
        BeginLayer(name)
        per visible stroke:
            SetDrawColor, SetLineWidth, [SetAlpha], MoveTo, LineTo..., StrokePath, [SetAlpha(1)]
        EndLayer
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from rmoverlay.bundle.composer import PagePlanEntry
from rmoverlay.lines.model import Stroke, StrokeDocument
from rmoverlay.pens.config import PenConfig
from rmoverlay.pens.resolver import StyleResolver
from rmoverlay.pens.styles import UnknownPenTally, is_eraser
from rmoverlay.render.operations import (
    BACKGROUND_LAYER,
    BeginLayer,
    EndLayer,
    ImportBackground,
    LineTo,
    MoveTo,
    NewPage,
    PageOps,
    SetAlpha,
    SetDrawColor,
    SetLineWidth,
    StrokePath,
)
from rmoverlay.utils.color import RGB

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

PAGE_WIDTH_MM = 222.6264
PAGE_HEIGHT_MM = 297.0
BACKGROUND_WIDTH_MM = 210.0
MM_TO_POINTS = 2.83465
TABLET_UNITS_PER_POINT = 2.222


@dataclass(frozen=True, slots=True)
class PageGeometry:
    """Page and background rectangle sizes in points."""

    width: float
    height: float
    background_width: float
    background_height: float
    landscape: bool = False


def page_geometry(landscape: bool = False) -> PageGeometry:
    width = PAGE_WIDTH_MM * MM_TO_POINTS
    height = PAGE_HEIGHT_MM * MM_TO_POINTS
    bg_width = BACKGROUND_WIDTH_MM * MM_TO_POINTS
    if landscape:
        return PageGeometry(height, width, height, bg_width, landscape=True)
    return PageGeometry(width, height, bg_width, height)


def to_page_points(xy: np.ndarray, landscape: bool = False) -> np.ndarray:
    """Convert an ``(n, 2)`` array of tablet coordinates to page points."""
    pts = np.asarray(xy, dtype=np.float64).reshape(-1, 2) / TABLET_UNITS_PER_POINT
    if landscape:
        basis = PAGE_HEIGHT_MM * MM_TO_POINTS
        return np.column_stack((basis - pts[:, 1], pts[:, 0]))
    return pts


# ---------------------------------------------------------------------------
# Run context
# ---------------------------------------------------------------------------


@dataclass
class RenderContext:
    """State shared by every page of one conversion run.

    Parameters
    ----------
    pen_config : PenConfig, optional
        Pen overrides.
    layer_colors : tuple[RGB | None, ...]
        Per-layer colours, index 0 for layer 1.
    unknown_pens : UnknownPenTally
        Unknown pen codes seen so far.
    layer_names : list[str]
        Every layer name opened so far, in first-use order.
    """

    pen_config: Optional[PenConfig] = None
    layer_colors: tuple[Optional[RGB], ...] = ()
    unknown_pens: UnknownPenTally = field(default_factory=UnknownPenTally)
    layer_names: list[str] = field(default_factory=list)

    def style_resolver(self) -> StyleResolver:
        """Fresh resolver for one page; shares the unknown-pen tally."""
        return StyleResolver(self.pen_config, self.layer_colors, self.unknown_pens)

    def register_layer(self, name: str) -> None:
        if name not in self.layer_names:
            self.layer_names.append(name)


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


def _layer_name(layer_names: Sequence[str], number: int) -> str:
    if 1 <= number <= len(layer_names) and layer_names[number - 1]:
        return layer_names[number - 1]
    return f"Layer {number}"


def stroke_operations(
    stroke: Stroke,
    layer_number: int,
    resolver: StyleResolver,
    landscape: bool = False,
) -> PageOps:
    """Operations drawing one stroke; empty for erasers and pointless strokes."""
    kind = resolver.kind_of(stroke.pen_code)
    if is_eraser(kind) or not stroke.points:
        return []

    style = resolver.resolve(kind, stroke.base_width, layer_number)
    xy = np.array([(p.x, p.y) for p in stroke.points], dtype=np.float64)
    pts = to_page_points(xy, landscape)

    ops: PageOps = [SetDrawColor(*style.color), SetLineWidth(style.width)]
    if style.opacity != 1.0:
        ops.append(SetAlpha(style.opacity))
    ops.append(MoveTo(float(pts[0, 0]), float(pts[0, 1])))
    ops.extend(LineTo(float(x), float(y)) for x, y in pts[1:].tolist())
    ops.append(StrokePath())
    if style.opacity != 1.0:
        ops.append(SetAlpha(1.0))
    return ops


def compose_page(
    document: Optional[StrokeDocument],
    entry: PagePlanEntry,
    layer_names: Sequence[str] = (),
    *,
    landscape: bool = False,
    context: Optional[RenderContext] = None,
) -> PageOps:
    """Build every drawing operation of one output page.

    Parameters
    ----------
    document : StrokeDocument or None
        Decoded strokes; None renders the background only.
    entry : PagePlanEntry
        Background decision for the page.
    layer_names : Sequence[str]
        Names of layers 1..N; missing names become ``"Layer N"``.
    landscape : bool
        Rotate strokes and swap page dimensions.
    context : RenderContext, optional
        Run state; a throwaway context is used when omitted.

    Returns
    -------
    PageOps
    """
    context = context if context is not None else RenderContext()
    geometry = page_geometry(landscape)

    ops: PageOps = [
        NewPage(geometry.width, geometry.height),
        BeginLayer(BACKGROUND_LAYER),
        ImportBackground(
            source="template" if entry.is_synthetic_background else "pdf",
            page_index=entry.background_index,
            width=geometry.background_width,
            height=geometry.background_height,
        ),
        EndLayer(),
    ]
    context.register_layer(BACKGROUND_LAYER)

    if document is None:
        return ops

    resolver = context.style_resolver()
    drawn = 0
    for number, layer in document.iter_layers():
        name = _layer_name(layer_names, number)
        context.register_layer(name)
        ops.append(BeginLayer(name))
        for stroke in layer.strokes:
            stroke_ops = stroke_operations(stroke, number, resolver, landscape)
            if stroke_ops:
                drawn += 1
                ops.extend(stroke_ops)
        ops.append(EndLayer())

    logger.debug(
        "Page %d: %d layer(s), %d of %d stroke(s) drawn, background %s[%d]",
        entry.output_index + 1, len(document.layers), drawn, document.stroke_count,
        "template" if entry.is_synthetic_background else "pdf", entry.background_index,
    )
    return ops
