"""Shared fixtures: synthetic lines files and notebook bundles.

Lines files are packed with ``struct`` so every test controls each byte.
Bundles are written to ``tmp_path`` either as an unpacked directory or a
``.zip``; backing PDFs and templates are generated with PyMuPDF.
"""

from __future__ import annotations

import json
import struct
import zipfile
from pathlib import Path
from typing import Optional, Sequence

import fitz
import pytest

from rmoverlay.utils import logging_config

BUNDLE_ID = "d34df12d-e72b-4939-a791-5b34b3a810e7"


# ---------------------------------------------------------------------------
# Lines file builder
# ---------------------------------------------------------------------------


class RmBuilder:
    """Pack v5 lines files record by record."""

    @staticmethod
    def header(version: int | str = 5) -> bytes:
        return f"reMarkable .lines file, version={version}".encode("ascii").ljust(43, b" ")

    @staticmethod
    def segment(x: float, y: float, pressure: float = 0.5, tilt: float = 0.25) -> bytes:
        return struct.pack("<6f", x, y, pressure, tilt, 0.0, 0.0)

    @classmethod
    def stroke(
        cls,
        pen: int = 4,
        points: Sequence[tuple[float, float]] = ((10.0, 20.0), (30.0, 40.0)),
        width: float = 2.0,
        color: int = 0,
    ) -> bytes:
        body = b"".join(cls.segment(x, y) for x, y in points)
        return struct.pack("<IIIfII", pen, color, 0, width, 0, len(points)) + body

    @classmethod
    def lines(
        cls,
        *layers: Sequence[bytes],
        layer_count: Optional[int] = None,
        version: int | str = 5,
    ) -> bytes:
        """A complete file; each layer is a sequence of packed strokes."""
        count = len(layers) if layer_count is None else layer_count
        out = cls.header(version) + struct.pack("<I", count)
        for strokes in layers:
            out += struct.pack("<I", len(strokes)) + b"".join(strokes)
        return out


@pytest.fixture()
def rm() -> type[RmBuilder]:
    return RmBuilder


# ---------------------------------------------------------------------------
# PDFs
# ---------------------------------------------------------------------------


def make_pdf(page_count: int, width: float = 595.28, height: float = 841.89) -> bytes:
    doc = fitz.open()
    for i in range(page_count):
        page = doc.new_page(width=width, height=height)
        page.insert_text((72, 72), f"background page {i + 1}")
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture()
def pdf_bytes():
    return make_pdf


@pytest.fixture()
def template_path(tmp_path: Path) -> Path:
    path = tmp_path / "template.pdf"
    path.write_bytes(make_pdf(1))
    return path


# ---------------------------------------------------------------------------
# Bundle factory
# ---------------------------------------------------------------------------


class BundleFactory:
    """Write bundles below a base directory.

    ``create()`` returns the path to hand to ``convert()`` /
    ``open_bundle_fs()``: ``<dir>/<uuid>`` or ``<name>.zip``.
    """

    def __init__(self, base: Path) -> None:
        self.base = base

    def files(
        self,
        pages: Sequence[Optional[bytes]],
        *,
        identifier: str = BUNDLE_ID,
        pdf_pages: Optional[int] = None,
        orientation: str = "portrait",
        redirection: Optional[Sequence[int]] = None,
        original_page_count: Optional[int] = None,
        layer_names: Optional[Sequence[Optional[Sequence[str]]]] = None,
        by_index: bool = False,
        metadata: bool = True,
        page_count: Optional[int] = None,
    ) -> dict[str, bytes]:
        page_ids = [f"{i:08d}-0000-4000-8000-000000000000" for i in range(len(pages))]
        content = {
            "orientation": orientation,
            "pageCount": len(pages) if page_count is None else page_count,
            "pages": page_ids,
        }
        if original_page_count is not None:
            content["originalPageCount"] = original_page_count
        if redirection is not None:
            content["redirectionPageMap"] = list(redirection)

        files = {f"{identifier}.content": json.dumps(content).encode()}
        if metadata:
            files[f"{identifier}.metadata"] = json.dumps({
                "lastModified": "1600000000000",
                "version": 3,
                "visibleName": "Test notebook",
            }).encode()
        if pdf_pages is not None:
            files[f"{identifier}.pdf"] = make_pdf(pdf_pages)

        for index, data in enumerate(pages):
            if data is None:
                continue
            name = str(index) if by_index else page_ids[index]
            files[f"{identifier}/{name}.rm"] = data
            names = layer_names[index] if layer_names else None
            if names is not None:
                files[f"{identifier}/{name}-metadata.json"] = json.dumps(
                    {"layers": [{"name": n} for n in names]}
                ).encode()
        return files

    def create(self, pages: Sequence[Optional[bytes]], *, as_zip: bool = False, **kwargs) -> Path:
        identifier = kwargs.get("identifier", BUNDLE_ID)
        files = self.files(pages, **kwargs)
        if as_zip:
            path = self.base / "bundle.zip"
            with zipfile.ZipFile(path, "w") as zf:
                for name, data in files.items():
                    zf.writestr(name, data)
            return path

        root = self.base / "xochitl"
        for name, data in files.items():
            target = root / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        return root / identifier


@pytest.fixture()
def bundles(tmp_path: Path) -> BundleFactory:
    return BundleFactory(tmp_path)


@pytest.fixture(autouse=True)
def _clear_log_context():
    yield
    logging_config.pop_context()
