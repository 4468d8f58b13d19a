"""PDF drawing surface -- drawing operations to a PDF via PyMuPDF.

Layers are PDF optional content groups, created once per distinct name and
visible by default, so viewers can toggle e.g. ``"Background"`` or a
tablet layer for the whole document. Backgrounds are placed as form
XObjects with ``Page.show_pdf_page`` and stay vector.

Strokes are queued on one ``fitz.Shape`` per page and written to the page
content when a layer ends, a new page starts or the document is saved.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import fitz  # PyMuPDF

from rmoverlay.render.operations import (
    BeginLayer,
    EndLayer,
    ImportBackground,
    LineTo,
    MoveTo,
    NewPage,
    Operation,
    SetAlpha,
    SetDrawColor,
    SetLineWidth,
    StrokePath,
)
from rmoverlay.utils import fs
from rmoverlay.utils.color import RGB, to_unit_rgb

logger = logging.getLogger(__name__)

# PDF line cap / join style 1 = round.
ROUND = 1


class SurfaceError(Exception):
    """Raised when an operation cannot be applied to the surface."""

    pass


class PdfSurface:
    """Apply drawing operations to a new PDF document.

    Parameters
    ----------
    background : bytes, optional
        The bundle's backing PDF.
    template : bytes, optional
        Single-page PDF used for synthetic backgrounds.

    Examples
    --------
    >>> with PdfSurface(template=template_bytes) as surface:
    ...     surface.draw(ops)
    ...     surface.save("out.pdf")
    """

    def __init__(self, background: Optional[bytes] = None, template: Optional[bytes] = None) -> None:
        self._sources: dict[str, fitz.Document] = {}
        if background is not None:
            self._sources["pdf"] = self._open_source(background, "background PDF")
        if template is not None:
            self._sources["template"] = self._open_source(template, "template")
        self._doc = fitz.open()
        self._layers: dict[str, int] = {}
        self._reset_page_state()

    @staticmethod
    def _open_source(data: bytes, label: str) -> fitz.Document:
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except (fitz.FileDataError, RuntimeError, ValueError) as e:
            raise SurfaceError(f"could not open {label}: {e}") from e
        if doc.page_count < 1:
            doc.close()
            raise SurfaceError(f"{label} has no pages")
        return doc

    def _reset_page_state(self) -> None:
        self._page: Optional[fitz.Page] = None
        self._shape: Optional[fitz.Shape] = None
        self._layer: Optional[str] = None
        self._color: RGB = (0, 0, 0)
        self._width: float = 1.0
        self._alpha: float = 1.0
        self._path: list[tuple[float, float]] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def __enter__(self) -> PdfSurface:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    @property
    def layer_names(self) -> list[str]:
        return list(self._layers)

    def source_page_count(self, source: str) -> int:
        """Pages in background *source* (0 when it is not loaded)."""
        doc = self._sources.get(source)
        return doc.page_count if doc is not None else 0

    def draw(self, operations: list[Operation]) -> None:
        """Apply *operations* in order.

        Raises
        ------
        SurfaceError
            If an operation is invalid in the current state.
        """
        for op in operations:
            self._apply_op(op)

    def to_bytes(self) -> bytes:
        """Finish the current page and serialise the document."""
        self._flush()
        if self._layer is not None:
            logger.warning("Layer '%s' left open at end of document", self._layer)
            self._layer = None
        return self._doc.tobytes(garbage=3, deflate=True)

    def save(self, path: Union[str, Path]) -> Path:
        """Write the document atomically to *path*."""
        if self.page_count == 0:
            raise SurfaceError("refusing to write a PDF without pages")
        path = Path(path)
        data = self.to_bytes()
        fs.atomic_write_bytes(path, data)
        logger.info("Wrote %d page(s), %d layer(s) to %s", self.page_count, len(self._layers), path)
        return path

    def close(self) -> None:
        self._doc.close()
        for doc in self._sources.values():
            doc.close()
        self._sources.clear()

    # ------------------------------------------------------------------
    # Internal: per-operation dispatch
    # ------------------------------------------------------------------

    def _apply_op(self, op: Operation) -> None:
        if isinstance(op, NewPage):
            self._new_page(op)
        elif isinstance(op, BeginLayer):
            self._begin_layer(op)
        elif isinstance(op, EndLayer):
            self._end_layer()
        elif isinstance(op, ImportBackground):
            self._import_background(op)
        elif isinstance(op, SetDrawColor):
            self._color = (op.r, op.g, op.b)
        elif isinstance(op, SetLineWidth):
            self._width = op.width
        elif isinstance(op, SetAlpha):
            self._alpha = op.alpha
        elif isinstance(op, MoveTo):
            self._require_page(op)
            self._path = [(op.x, op.y)]
        elif isinstance(op, LineTo):
            self._line_to(op)
        elif isinstance(op, StrokePath):
            self._stroke_path()
        else:
            logger.warning("Unsupported operation: %s", type(op).__name__)

    def _require_page(self, op: Operation) -> fitz.Page:
        if self._page is None:
            raise SurfaceError(f"{type(op).__name__} before the first NewPage")
        return self._page

    def _ocg(self, name: str) -> int:
        xref = self._layers.get(name)
        if xref is None:
            xref = self._doc.add_ocg(name, on=True)
            self._layers[name] = xref
            logger.debug("Created layer '%s' (xref %d)", name, xref)
        return xref

    def _flush(self) -> None:
        if self._shape is not None:
            self._shape.commit()
            self._shape = None

    # ------------------------------------------------------------------
    # Individual operations
    # ------------------------------------------------------------------

    def _new_page(self, op: NewPage) -> None:
        self._flush()
        if self._layer is not None:
            raise SurfaceError(f"layer '{self._layer}' still open at NewPage")
        self._reset_page_state()
        self._page = self._doc.new_page(width=op.width, height=op.height)

    def _begin_layer(self, op: BeginLayer) -> None:
        self._require_page(op)
        if self._layer is not None:
            raise SurfaceError(f"BeginLayer('{op.name}') while layer '{self._layer}' is open")
        self._ocg(op.name)
        self._layer = op.name

    def _end_layer(self) -> None:
        if self._layer is None:
            raise SurfaceError("EndLayer without an open layer")
        self._flush()
        self._layer = None

    def _current_oc(self) -> int:
        return self._layers[self._layer] if self._layer is not None else 0

    def _import_background(self, op: ImportBackground) -> None:
        page = self._require_page(op)
        src = self._sources.get(op.source)
        if src is None:
            raise SurfaceError(f"no {op.source} document loaded for background import")
        if op.page_index >= src.page_count:
            raise SurfaceError(
                f"background page {op.page_index + 1} requested but {op.source} "
                f"has {src.page_count} page(s)"
            )
        if not src[op.page_index].get_contents():
            logger.debug("Background %s[%d] is empty, skipped", op.source, op.page_index)
            return
        self._flush()
        page.show_pdf_page(
            fitz.Rect(0, 0, op.width, op.height),
            src,
            op.page_index,
            keep_proportion=False,
            oc=self._current_oc(),
        )

    def _line_to(self, op: LineTo) -> None:
        self._require_page(op)
        if not self._path:
            raise SurfaceError("LineTo without a current point")
        self._path.append((op.x, op.y))

    def _stroke_path(self) -> None:
        points, self._path = self._path, []
        if len(points) < 2:
            return
        if self._shape is None:
            self._shape = self._page.new_shape()
        self._shape.draw_polyline(points)
        self._shape.finish(
            color=to_unit_rgb(self._color),
            fill=None,
            width=self._width,
            closePath=False,
            lineCap=ROUND,
            lineJoin=ROUND,
            stroke_opacity=self._alpha,
            oc=self._current_oc(),
        )
