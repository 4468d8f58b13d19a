"""Bundle filesystem -- locate and open the files of one notebook bundle.

A bundle is identified by a UUID and consists of::

    <uuid>.content                 page list, orientation, redirection table
    <uuid>.metadata                visible name, version, last modified (optional)
    <uuid>.pdf                     backing PDF (optional)
    <uuid>/<page>.rm               lines file, only for pages with marks
    <uuid>/<page>-metadata.json    layer names for that lines file

Bundles are read either from a directory (e.g. a synchronised tablet data
directory, filtered by the bundle UUID) or from a ``.zip`` archive holding a
single bundle. Member paths are always POSIX-style and relative to the
directory or archive root.

The template is the single-page background used for inserted pages and for
bundles without a backing PDF: a user-supplied PDF, or a blank A4 page
generated in memory.
"""

from __future__ import annotations

import functools
import io
import logging
import uuid
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)

LINES_SUFFIX = ".rm"
LINES_METADATA_SUFFIX = "-metadata.json"
CONTENT_SUFFIX = ".content"
METADATA_SUFFIX = ".metadata"
PDF_SUFFIX = ".pdf"

# A4 in PostScript points.
A4_WIDTH_PT = 210.0 * 72.0 / 25.4
A4_HEIGHT_PT = 297.0 * 72.0 / 25.4

DEFAULT_TEMPLATE_NAME = "built-in A4 template"


class BundleError(Exception):
    """Raised when a bundle cannot be located or is incomplete."""

    pass


@functools.lru_cache(maxsize=1)
def default_template_bytes() -> bytes:
    """A blank (white), single-page A4 PDF."""
    doc = fitz.open()
    try:
        page = doc.new_page(width=A4_WIDTH_PT, height=A4_HEIGHT_PT)
        # A page without content cannot be imported as a background.
        page.draw_rect(page.rect, color=None, fill=(1, 1, 1), width=0)
        return doc.tobytes(deflate=True)
    finally:
        doc.close()


@dataclass
class LinesFileRef:
    """Paths of one page's lines file and its layer metadata."""

    base: str
    lines_path: str | None = None
    metadata_path: str | None = None


class BundleFS:
    """Read-only view over the files of one bundle.

    Use ``open_bundle_fs()`` rather than constructing directly.

    Parameters
    ----------
    root : Path
        Directory or zip archive path.
    kind : str
        ``"directory"`` or ``"zipfile"``.
    name_filter : str
        Only members whose path contains this string are considered
        (directory mode; empty for archives).
    template_path : Path | None
        User template; None selects the built-in A4 page.
    use_default_template : bool
        When False and no user template is given, no template is available.
    """

    def __init__(
        self,
        root: Path,
        kind: str,
        name_filter: str = "",
        template_path: Path | None = None,
        use_default_template: bool = True,
    ) -> None:
        self.root = root
        self.kind = kind
        self.name_filter = name_filter
        self.identifier: str = ""
        self.content_path: str | None = None
        self.bundle_prefix: str = ""
        self.metadata_path: str | None = None
        self.pdf_path: str | None = None
        self.lines_files: dict[str, LinesFileRef] = {}

        self.template_name: str | None = None
        self._template: bytes | None = None
        if template_path is not None:
            template_path = Path(template_path)
            if not template_path.is_file():
                raise BundleError(f"template not found: {template_path}")
            self.template_name = str(template_path)
            self._template = template_path.read_bytes()
        elif use_default_template:
            self.template_name = DEFAULT_TEMPLATE_NAME
            self._template = default_template_bytes()

        self._zip: zipfile.ZipFile | None = None
        if kind == "zipfile":
            try:
                self._zip = zipfile.ZipFile(root)
            except (OSError, zipfile.BadZipFile) as e:
                raise BundleError(f"could not open bundle archive {root}: {e}") from e

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> BundleFS:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    # ------------------------------------------------------------------
    # Member access
    # ------------------------------------------------------------------

    def members(self, name_filter: str | None = None) -> list[str]:
        """List member files whose path contains *name_filter*.

        Parameters
        ----------
        name_filter : str | None
            Substring filter; None uses the filter given at mount time.

        Returns
        -------
        list[str]
            Sorted POSIX-style relative paths.
        """
        needle = self.name_filter if name_filter is None else name_filter
        if self._zip is not None:
            names = [n for n in self._zip.namelist() if not n.endswith("/")]
        else:
            names = self._directory_members(needle)
        return sorted(n for n in names if needle in n)

    def _directory_members(self, needle: str) -> list[str]:
        names: list[str] = []
        for entry in self.root.iterdir():
            if needle and needle not in entry.name:
                continue
            if entry.is_file():
                names.append(entry.name)
            elif entry.is_dir():
                names.extend(
                    p.relative_to(self.root).as_posix() for p in entry.rglob("*") if p.is_file()
                )
        return names

    def open_member(self, path: str) -> BinaryIO:
        """Open a member for binary reading.

        Archive members are buffered in memory so the returned stream is
        always seekable.
        """
        try:
            if self._zip is not None:
                return io.BytesIO(self._zip.read(path))
            return open(self.root / path, "rb")
        except (KeyError, OSError) as e:
            raise BundleError(f"could not open bundle member {path}: {e}") from e

    def read_member(self, path: str) -> bytes:
        with self.open_member(path) as f:
            return f.read()

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def scan(self) -> BundleFS:
        """Locate descriptor, PDF and lines files.

        Raises
        ------
        BundleError
            If no ``.content`` file is found or its name is not a UUID.
        """
        members = self.members()
        for path in members:
            if path.endswith(LINES_SUFFIX):
                self._lines_ref(path[: -len(LINES_SUFFIX)]).lines_path = path
            elif path.endswith(LINES_METADATA_SUFFIX):
                self._lines_ref(path[: -len(LINES_METADATA_SUFFIX)]).metadata_path = path
            elif path.endswith(CONTENT_SUFFIX):
                self.content_path = path

        if self.content_path is None:
            raise BundleError(f"content file does not exist in {self.describe()}")
        self.identifier = self._identify(Path(self.content_path).stem)

        prefix = self.content_path[: -len(CONTENT_SUFFIX)]
        self.bundle_prefix = prefix
        if prefix + METADATA_SUFFIX in members:
            self.metadata_path = prefix + METADATA_SUFFIX
        if prefix + PDF_SUFFIX in members:
            self.pdf_path = prefix + PDF_SUFFIX

        logger.debug(
            "Scanned %s: content=%s metadata=%s pdf=%s lines files=%d",
            self.describe(), self.content_path, self.metadata_path, self.pdf_path,
            sum(1 for ref in self.lines_files.values() if ref.lines_path),
        )
        return self

    def _lines_ref(self, base: str) -> LinesFileRef:
        if base not in self.lines_files:
            self.lines_files[base] = LinesFileRef(base=base)
        return self.lines_files[base]

    @staticmethod
    def _identify(name: str) -> str:
        try:
            uuid.UUID(name)
        except ValueError:
            raise BundleError(f"uuid '{name}' is invalid") from None
        return name

    def find_lines(self, *candidates: str) -> LinesFileRef | None:
        """Return the first lines file found under ``<identifier>/<candidate>``."""
        for candidate in candidates:
            ref = self.lines_files.get(f"{self.bundle_prefix}/{candidate}")
            if ref is not None and ref.lines_path is not None:
                return ref
        return None

    # ------------------------------------------------------------------
    # Backgrounds
    # ------------------------------------------------------------------

    @property
    def has_pdf(self) -> bool:
        return self.pdf_path is not None

    def pdf_bytes(self) -> bytes | None:
        if self.pdf_path is None:
            return None
        return self.read_member(self.pdf_path)

    @property
    def template_bytes(self) -> bytes | None:
        return self._template

    def describe(self) -> str:
        return f"{self.kind} {self.root}" + (f" [{self.name_filter}]" if self.name_filter else "")


def open_bundle_fs(
    input_path: str | Path,
    template: str | Path | None = None,
    use_default_template: bool = True,
) -> BundleFS:
    """Mount and scan the bundle at *input_path*.

    Parameters
    ----------
    input_path : str | Path
        Either a ``.zip`` archive, or ``<directory>/<uuid>`` where a
        trailing extension (e.g. ``.pdf``) is ignored.
    template : str | Path | None
        Optional single-page template PDF.
    use_default_template : bool
        Fall back to the built-in A4 page when *template* is None.

    Returns
    -------
    BundleFS
        Scanned bundle filesystem; close it (or use ``with``) when done.
    """
    path = Path(input_path)
    if path.suffix.lower() == ".zip":
        if not path.is_file():
            raise BundleError(f"bundle archive not found: {path}")
        fs = BundleFS(path, "zipfile", template_path=template,
                      use_default_template=use_default_template)
    else:
        if path.suffix:
            path = path.with_suffix("")
        directory = path.parent
        if not directory.is_dir():
            raise BundleError(f"bundle directory not found: {directory}")
        fs = BundleFS(directory, "directory", name_filter=path.name,
                      template_path=template, use_default_template=use_default_template)
    try:
        return fs.scan()
    except BundleError:
        fs.close()
        raise
