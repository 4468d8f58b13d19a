"""Tests for the PyMuPDF drawing surface."""

from __future__ import annotations

from pathlib import Path

import fitz
import pytest

from rmoverlay.render import (
    BeginLayer,
    EndLayer,
    ImportBackground,
    LineTo,
    MoveTo,
    NewPage,
    PdfSurface,
    SetAlpha,
    SetDrawColor,
    SetLineWidth,
    StrokePath,
    SurfaceError,
)


def _stroke(points, color=(255, 0, 0), width=2.0) -> list:
    (x0, y0), rest = points[0], points[1:]
    return [
        SetDrawColor(*color),
        SetLineWidth(width),
        MoveTo(x0, y0),
        *[LineTo(x, y) for x, y in rest],
        StrokePath(),
    ]


@pytest.fixture()
def surface(pdf_bytes):
    with PdfSurface(background=pdf_bytes(2), template=pdf_bytes(1)) as s:
        yield s


class TestDrawing:
    def test_stroke_is_drawn_in_layer(self, surface: PdfSurface, tmp_path: Path) -> None:
        surface.draw([
            NewPage(300, 400),
            BeginLayer("Ink"),
            SetAlpha(0.5),
            *_stroke([(10, 10), (100, 100), (150, 20)], width=3.0),
            SetAlpha(1.0),
            EndLayer(),
        ])
        out = surface.save(tmp_path / "s.pdf")
        doc = fitz.open(out)
        drawings = doc[0].get_drawings()
        assert len(drawings) == 1
        assert drawings[0]["color"] == pytest.approx((1.0, 0.0, 0.0))
        assert drawings[0]["width"] == pytest.approx(3.0)
        assert drawings[0]["stroke_opacity"] == pytest.approx(0.5)
        assert drawings[0].get("fill") is None
        assert [o["name"] for o in doc.get_ocgs().values()] == ["Ink"]
        doc.close()

    def test_single_point_draws_nothing(self, surface: PdfSurface) -> None:
        surface.draw([NewPage(300, 400), *_stroke([(10, 10)])])
        doc = fitz.open(stream=surface.to_bytes(), filetype="pdf")
        assert doc[0].get_drawings() == []
        doc.close()

    def test_layers_created_once(self, surface: PdfSurface) -> None:
        for _ in range(3):
            surface.draw([NewPage(100, 100), BeginLayer("Background"), EndLayer(), BeginLayer("A"), EndLayer()])
        assert surface.layer_names == ["Background", "A"]
        assert surface.page_count == 3

    def test_background_import(self, surface: PdfSurface) -> None:
        surface.draw([
            NewPage(300, 400),
            BeginLayer("Background"),
            ImportBackground("pdf", 1, 200, 400),
            EndLayer(),
        ])
        doc = fitz.open(stream=surface.to_bytes(), filetype="pdf")
        assert "background page 2" in doc[0].get_text()
        doc.close()

    def test_source_page_counts(self, surface: PdfSurface) -> None:
        assert surface.source_page_count("pdf") == 2
        assert surface.source_page_count("template") == 1
        assert surface.source_page_count("other") == 0


class TestSurfaceErrors:
    def test_draw_before_page(self, surface: PdfSurface) -> None:
        with pytest.raises(SurfaceError, match="NewPage"):
            surface.draw([MoveTo(1, 1)])

    def test_end_layer_without_begin(self, surface: PdfSurface) -> None:
        with pytest.raises(SurfaceError):
            surface.draw([NewPage(100, 100), EndLayer()])

    def test_nested_layers(self, surface: PdfSurface) -> None:
        with pytest.raises(SurfaceError):
            surface.draw([NewPage(100, 100), BeginLayer("A"), BeginLayer("B")])

    def test_line_without_current_point(self, surface: PdfSurface) -> None:
        with pytest.raises(SurfaceError):
            surface.draw([NewPage(100, 100), LineTo(5, 5)])

    def test_background_page_out_of_range(self, surface: PdfSurface) -> None:
        with pytest.raises(SurfaceError, match="has 2 page"):
            surface.draw([NewPage(100, 100), ImportBackground("pdf", 2, 100, 100)])

    def test_missing_source(self, pdf_bytes) -> None:
        with PdfSurface(template=pdf_bytes(1)) as s:
            with pytest.raises(SurfaceError, match="no pdf"):
                s.draw([NewPage(100, 100), ImportBackground("pdf", 0, 100, 100)])

    def test_unreadable_background(self) -> None:
        with pytest.raises(SurfaceError):
            PdfSurface(background=b"%PDF-garbage")

    def test_save_without_pages(self, surface: PdfSurface, tmp_path: Path) -> None:
        with pytest.raises(SurfaceError):
            surface.save(tmp_path / "empty.pdf")
        assert not (tmp_path / "empty.pdf").exists()


class TestOperationValidation:
    def test_colour_range(self) -> None:
        with pytest.raises(ValueError):
            SetDrawColor(256, 0, 0)

    def test_alpha_range(self) -> None:
        with pytest.raises(ValueError):
            SetAlpha(1.5)

    def test_page_size(self) -> None:
        with pytest.raises(ValueError):
            NewPage(0, 100)

    def test_background_source(self) -> None:
        with pytest.raises(ValueError):
            ImportBackground("scan", 0, 1, 1)
