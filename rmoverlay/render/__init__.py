"""
Rendering: drawing operations, the page compositor and the PDF surface.
"""

from rmoverlay.render.compositor import (
    MM_TO_POINTS,
    PAGE_HEIGHT_MM,
    PAGE_WIDTH_MM,
    TABLET_UNITS_PER_POINT,
    PageGeometry,
    RenderContext,
    compose_page,
    page_geometry,
    stroke_operations,
    to_page_points,
)
from rmoverlay.render.operations import (
    BACKGROUND_LAYER,
    BeginLayer,
    EndLayer,
    ImportBackground,
    LineTo,
    MoveTo,
    NewPage,
    Operation,
    PageOps,
    SetAlpha,
    SetDrawColor,
    SetLineWidth,
    StrokePath,
)
from rmoverlay.render.pdf_surface import PdfSurface, SurfaceError

__all__ = [
    "MM_TO_POINTS",
    "PAGE_HEIGHT_MM",
    "PAGE_WIDTH_MM",
    "TABLET_UNITS_PER_POINT",
    "PageGeometry",
    "RenderContext",
    "compose_page",
    "page_geometry",
    "stroke_operations",
    "to_page_points",
    "BACKGROUND_LAYER",
    "BeginLayer",
    "EndLayer",
    "ImportBackground",
    "LineTo",
    "MoveTo",
    "NewPage",
    "Operation",
    "PageOps",
    "SetAlpha",
    "SetDrawColor",
    "SetLineWidth",
    "StrokePath",
    "PdfSurface",
    "SurfaceError",
]
