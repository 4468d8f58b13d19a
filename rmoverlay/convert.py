"""Conversion driver -- one bundle in, one layered PDF out.

Pipeline::

    open_bundle_fs → load_bundle → compose_page_plan
        → per page: decode_lines → compose_page → PdfSurface.draw
        → PdfSurface.save (atomic)

Pages are processed one at a time. The only state shared between pages is
the ``RenderContext`` (pen overrides, layer colours, unknown-pen tally) and
the surface's layer registry.

A lines file that cannot be decoded is not fatal by default: its page is
rendered with the background only and a warning is logged. With
``strict=True`` the first such error aborts the run. Nothing is written
when a run aborts.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from rmoverlay.bundle.composer import CompositionError, PagePlanEntry, compose_page_plan
from rmoverlay.bundle.filesystem import BundleFS, open_bundle_fs
from rmoverlay.bundle.metadata import BundleInfo, PageInfo, load_bundle
from rmoverlay.lines.decoder import FormatError, decode_lines
from rmoverlay.lines.model import StrokeDocument
from rmoverlay.pens.config import PenConfig, StyleConfigError, load_pen_config
from rmoverlay.render.compositor import RenderContext, compose_page
from rmoverlay.render.pdf_surface import PdfSurface
from rmoverlay.utils.color import RGB, parse_color
from rmoverlay.utils.logging_config import pop_context, push_context

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class ConversionReport:
    """Outcome of one successful conversion. Page numbers are 1-indexed."""

    output_path: Path
    bundle: BundleInfo
    pages_written: int = 0
    pages_with_marks: int = 0
    strokes_decoded: int = 0
    skipped_pages: list[int] = field(default_factory=list)
    truncated_pages: list[int] = field(default_factory=list)
    unknown_pens: dict[int, int] = field(default_factory=dict)
    layer_names: list[str] = field(default_factory=list)
    template_name: Optional[str] = None


# ---------------------------------------------------------------------------
# Option handling
# ---------------------------------------------------------------------------


def resolve_pen_config(settings: Union[PathLike, PenConfig, None]) -> Optional[PenConfig]:
    """Accept a pen configuration path, a loaded ``PenConfig`` or None."""
    if settings is None or isinstance(settings, PenConfig):
        return settings
    return load_pen_config(settings)


def resolve_layer_colors(colors: Sequence[Union[str, RGB, None]]) -> tuple[Optional[RGB], ...]:
    """Parse per-layer colours; ``"empty"`` or ``""`` keeps a layer's colours.

    Raises
    ------
    StyleConfigError
        If a colour cannot be parsed.
    """
    resolved = []
    for number, value in enumerate(colors, start=1):
        if value is None or isinstance(value, tuple):
            resolved.append(value)
            continue
        try:
            resolved.append(parse_color(value))
        except ValueError as e:
            raise StyleConfigError(f"layer {number} colour: {e}") from e
    return tuple(resolved)


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


def check_backgrounds(plan: Sequence[PagePlanEntry], surface: PdfSurface) -> None:
    """Ensure every background page the plan needs is available.

    Raises
    ------
    CompositionError
        If a synthetic page is planned without a template, or the backing
        PDF has fewer pages than the plan refers to.
    """
    synthetic = [e.output_index + 1 for e in plan if e.is_synthetic_background]
    if synthetic and surface.source_page_count("template") == 0:
        raise CompositionError(
            f"page(s) {', '.join(map(str, synthetic))} need a template background "
            "but no template is available"
        )
    needed = max((e.background_index + 1 for e in plan if not e.is_synthetic_background), default=0)
    available = surface.source_page_count("pdf")
    if needed > available:
        raise CompositionError(
            f"page plan needs {needed} background page(s) but the PDF has {available}"
        )


# ---------------------------------------------------------------------------
# Per page
# ---------------------------------------------------------------------------


def _decode_page(
    bundle_fs: BundleFS,
    page: PageInfo,
    report: ConversionReport,
    strict: bool,
) -> Optional[StrokeDocument]:
    if not page.exists:
        return None
    try:
        with bundle_fs.open_member(page.lines_path) as stream:
            document = decode_lines(stream)
    except FormatError as e:
        if strict:
            raise
        logger.warning("Skipping marks of %s: %s", page.lines_path, e)
        report.skipped_pages.append(page.index + 1)
        return None
    report.pages_with_marks += 1
    report.strokes_decoded += document.stroke_count
    if document.truncated:
        report.truncated_pages.append(page.index + 1)
    return document


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def convert(
    input_path: PathLike,
    output_path: PathLike,
    *,
    template: Optional[PathLike] = None,
    settings: Union[PathLike, PenConfig, None] = None,
    layer_colors: Sequence[Union[str, RGB, None]] = (),
    strict: bool = False,
    use_default_template: bool = True,
) -> ConversionReport:
    """Convert a bundle to a layered PDF.

    Parameters
    ----------
    input_path : PathLike
        ``.zip`` bundle, or ``<directory>/<uuid>`` (an extension is ignored).
    output_path : PathLike
        PDF to write.
    template : PathLike, optional
        Single-page PDF for inserted pages and bundles without a PDF.
    settings : PathLike or PenConfig, optional
        Pen override configuration.
    layer_colors : Sequence
        Colour per layer (index 0 for layer 1) for colour-overridable pens.
    strict : bool
        Abort on the first undecodable lines file.
    use_default_template : bool
        Use the built-in A4 page when *template* is None.

    Returns
    -------
    ConversionReport

    Raises
    ------
    BundleError
        The bundle cannot be found or read.
    CompositionError
        Page metadata and backgrounds are inconsistent.
    StyleConfigError
        Pen configuration or layer colours are invalid.
    FormatError
        A lines file cannot be decoded and *strict* is set.
    SurfaceError
        A background cannot be opened or drawn.
    """
    output_path = Path(output_path)
    context = RenderContext(
        pen_config=resolve_pen_config(settings),
        layer_colors=resolve_layer_colors(layer_colors),
    )

    with open_bundle_fs(input_path, template, use_default_template) as bundle_fs:
        info = load_bundle(bundle_fs)
        plan = compose_page_plan(
            info.original_page_count,
            info.page_count,
            info.redirection,
            has_background=bundle_fs.has_pdf,
        )
        report = ConversionReport(
            output_path=output_path, bundle=info, template_name=bundle_fs.template_name,
        )
        if info.inserted_pages:
            logger.info(
                "Inserted page(s) %s drawn on %s",
                info.inserted_pages_text, bundle_fs.template_name or "no template",
            )

        push_context(bundle=info.identifier[:8])
        try:
            with PdfSurface(bundle_fs.pdf_bytes(), bundle_fs.template_bytes) as surface:
                check_backgrounds(plan, surface)
                for entry in plan:
                    page = info.pages[entry.output_index]
                    push_context(page=entry.output_index + 1)
                    document = _decode_page(bundle_fs, page, report, strict)
                    surface.draw(compose_page(
                        document,
                        entry,
                        page.layer_names,
                        landscape=info.is_landscape,
                        context=context,
                    ))
                    report.pages_written += 1
                pop_context(["page"])
                surface.save(output_path)
                report.layer_names = surface.layer_names
        finally:
            pop_context(["bundle", "page"])

    context.unknown_pens.report()
    report.unknown_pens = dict(context.unknown_pens)
    if report.skipped_pages:
        logger.warning(
            "Marks of %d page(s) could not be decoded: %s",
            len(report.skipped_pages), ", ".join(map(str, report.skipped_pages)),
        )
    logger.info(
        "Converted '%s': %d page(s), %d with marks, %d stroke(s)",
        info.title, report.pages_written, report.pages_with_marks, report.strokes_decoded,
    )
    return report
