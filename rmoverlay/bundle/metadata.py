"""Bundle descriptors: ``.content``, ``.metadata`` and per-page layer names.

``load_bundle()`` reads the descriptors of a scanned ``BundleFS`` and
returns an immutable ``BundleInfo`` with one ``PageInfo`` per page. Pages
without a lines file are kept (``exists`` is False) so the page plan and
the page list always have the same length.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from rmoverlay.bundle.composer import (
    CompositionError,
    format_inserted_pages,
    inserted_page_indices,
    validate_page_counts,
)
from rmoverlay.bundle.filesystem import BundleError, BundleFS
from rmoverlay.utils import fs as fs_utils

logger = logging.getLogger(__name__)

PORTRAIT = "portrait"
LANDSCAPE = "landscape"
ORIENTATIONS = (PORTRAIT, LANDSCAPE)


@dataclass(frozen=True, slots=True)
class PageInfo:
    """One page of the bundle.

    Parameters
    ----------
    index : int
        0-indexed position in the bundle.
    identifier : str
        Page UUID from the ``.content`` page list.
    lines_path : str | None
        Member path of the page's lines file, None when the page has no marks.
    layer_names : tuple[str, ...]
        Names from ``<page>-metadata.json``; may be shorter than the number
        of decoded layers.
    """

    index: int
    identifier: str
    lines_path: str | None = None
    layer_names: tuple[str, ...] = ()

    @property
    def exists(self) -> bool:
        return self.lines_path is not None


@dataclass(frozen=True, slots=True)
class BundleInfo:
    """Descriptors of one bundle."""

    identifier: str
    orientation: str
    page_count: int
    original_page_count: int
    pages: tuple[PageInfo, ...]
    redirection: tuple[int, ...] = ()
    has_pdf: bool = False
    visible_name: str = ""
    version: int | None = None
    last_modified: datetime | None = None

    @property
    def is_landscape(self) -> bool:
        return self.orientation == LANDSCAPE

    @property
    def inserted_pages(self) -> list[int]:
        return inserted_page_indices(self.redirection)

    @property
    def inserted_pages_text(self) -> str:
        return format_inserted_pages(self.inserted_pages)

    @property
    def title(self) -> str:
        return self.visible_name or self.identifier


# ---------------------------------------------------------------------------
# Descriptor parsing
# ---------------------------------------------------------------------------


def _read_json(bundle_fs: BundleFS, path: str) -> dict[str, Any]:
    with bundle_fs.open_member(path) as f:
        try:
            return fs_utils.load_json_stream(f, path)
        except ValueError as e:
            raise BundleError(str(e)) from e


def _parse_last_modified(raw: Any, path: str) -> datetime | None:
    if raw in (None, ""):
        return None
    try:
        return datetime.fromtimestamp(int(raw) / 1000.0, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError) as e:
        raise BundleError(f"lastModified {raw!r} in {path} is not an epoch timestamp") from e


def _int_field(content: dict[str, Any], key: str, path: str, default: int = 0) -> int:
    value = content.get(key, default)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise BundleError(f"{key} {value!r} in {path} is not an integer") from e


def _orientation(raw: Any) -> str:
    value = str(raw or PORTRAIT).lower()
    if value not in ORIENTATIONS:
        logger.warning("Unknown orientation %r, using %s", raw, PORTRAIT)
        return PORTRAIT
    return value


def load_layer_names(bundle_fs: BundleFS, path: str | None) -> tuple[str, ...]:
    """Read ``layers[].name`` from a page metadata file (empty when absent)."""
    if path is None:
        return ()
    data = _read_json(bundle_fs, path)
    layers = data.get("layers") or []
    return tuple(str(layer.get("name", "")) for layer in layers if isinstance(layer, dict))


def load_bundle(bundle_fs: BundleFS) -> BundleInfo:
    """Read the descriptors of a scanned bundle.

    Parameters
    ----------
    bundle_fs : BundleFS
        Bundle filesystem after ``scan()``.

    Returns
    -------
    BundleInfo

    Raises
    ------
    BundleError
        If a descriptor is missing or malformed.
    CompositionError
        If the page list, page count and redirection table disagree.
    """
    if bundle_fs.content_path is None:
        raise BundleError(f"content file does not exist in {bundle_fs.describe()}")

    visible_name = ""
    version = None
    last_modified = None
    if bundle_fs.metadata_path is not None:
        meta = _read_json(bundle_fs, bundle_fs.metadata_path)
        visible_name = str(meta.get("visibleName") or "")
        version = _int_field(meta, "version", bundle_fs.metadata_path) if "version" in meta else None
        last_modified = _parse_last_modified(meta.get("lastModified"), bundle_fs.metadata_path)
    else:
        logger.debug("No metadata file in %s", bundle_fs.describe())

    content_path = bundle_fs.content_path
    content = _read_json(bundle_fs, content_path)
    page_ids = [str(p) for p in content.get("pages") or []]
    page_count = _int_field(content, "pageCount", content_path, default=len(page_ids))
    original_page_count = _int_field(content, "originalPageCount", content_path)
    if original_page_count == 0:
        original_page_count = page_count
    try:
        redirection = tuple(int(v) for v in content.get("redirectionPageMap") or [])
    except (TypeError, ValueError) as e:
        raise BundleError(f"redirectionPageMap in {content_path} is not a list of integers") from e

    if len(page_ids) != page_count:
        raise CompositionError(
            f"{content_path} lists {len(page_ids)} page(s) but declares pageCount={page_count}"
        )
    validate_page_counts(original_page_count, page_count, redirection)

    pages = []
    for index, page_id in enumerate(page_ids):
        ref = bundle_fs.find_lines(page_id, str(index))
        if ref is None:
            pages.append(PageInfo(index=index, identifier=page_id))
            continue
        pages.append(PageInfo(
            index=index,
            identifier=page_id,
            lines_path=ref.lines_path,
            layer_names=load_layer_names(bundle_fs, ref.metadata_path),
        ))

    info = BundleInfo(
        identifier=bundle_fs.identifier,
        orientation=_orientation(content.get("orientation")),
        page_count=page_count,
        original_page_count=original_page_count,
        pages=tuple(pages),
        redirection=redirection,
        has_pdf=bundle_fs.has_pdf,
        visible_name=visible_name,
        version=version,
        last_modified=last_modified,
    )
    logger.info(
        "Bundle '%s': %d page(s), %d with marks, %s%s",
        info.title, page_count, sum(p.exists for p in pages), info.orientation,
        f", inserted page(s) {info.inserted_pages_text}" if info.inserted_pages else "",
    )
    return info
