"""Binary decoder for version 5 tablet lines (``.rm``) files.

Layout (little-endian), consumed strictly in order::

    header        43 bytes   "reMarkable .lines file, version=5         " + terminator
    layer count   u32        must be >= 1
    per layer:
        path count    u32
        per path:     pen u32, colour u32, reserved u32, width f32,
                      reserved u32, segment count u32            (24 bytes)
            per segment:  x, y, pressure, tilt, reserved, reserved (6 x f32, 24 bytes)

Truncation
----------
Bundles whose capture was interrupted end mid-record. Running out of bytes
anywhere after the header is therefore not an error: decoding stops and the
document keeps only the layers and strokes that were read completely.

Newer tablet software writes a different, tagged-block layout announcing
``version=6``. It is rejected at the header with ``UnsupportedVersionError``
instead of being partially parsed.
"""

from __future__ import annotations

import io
import logging
import struct
from pathlib import Path
from typing import BinaryIO

import numpy as np

from rmoverlay.lines.model import Layer, MaxCoordinates, Point, Stroke, StrokeDocument

logger = logging.getLogger(__name__)

HEADER = b"reMarkable .lines file, version=5         "
HEADER_SIZE = 43
_VERSION_PREFIX = b"reMarkable .lines file, version="

_U32 = struct.Struct("<I")
_PATH = struct.Struct("<IIIfII")
_SEGMENT_SIZE = 24
_SEGMENT_DTYPE = np.dtype("<f4")
# Segment records per read; a corrupt count must not size one huge buffer.
_SEGMENT_CHUNK = 4096


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class FormatError(Exception):
    """Raised when a lines file cannot be decoded at all."""

    pass


class BadHeaderError(FormatError):
    """The first 43 bytes are not the v5 signature."""

    pass


class UnsupportedVersionError(BadHeaderError):
    """The header is a lines signature for another format revision."""

    def __init__(self, version: str) -> None:
        super().__init__(
            f"lines file version {version} is not supported; only version 5 can be decoded"
        )
        self.version = version


class NoLayersError(FormatError):
    """The header declares zero layers."""

    pass


class _EndOfStream(Exception):
    """Internal signal: the stream ended inside a record."""

    pass


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if data is None or len(data) < size:
        raise _EndOfStream()
    return data


def check_header(header: bytes) -> None:
    """Validate the fixed-size header.

    Parameters
    ----------
    header : bytes
        Up to ``HEADER_SIZE`` bytes read from the start of the stream.

    Raises
    ------
    UnsupportedVersionError
        If the header is a lines signature for another version.
    BadHeaderError
        For any other mismatch, including a stream shorter than the header.
    """
    # The final byte is a terminator and is not compared.
    if len(header) >= HEADER_SIZE and header[:HEADER_SIZE - 1] == HEADER:
        return
    if header.startswith(_VERSION_PREFIX):
        raw = header[len(_VERSION_PREFIX):].split(b" ", 1)[0].strip(b"\x00 ")
        version = raw.decode("ascii", errors="replace") or "?"
        if version != "5":
            raise UnsupportedVersionError(version)
    raise BadHeaderError(
        f"header does not match {HEADER.decode('ascii')!r}"
        + (f" (only {len(header)} bytes)" if len(header) < HEADER_SIZE else "")
    )


def _read_segments(stream: BinaryIO, count: int) -> np.ndarray:
    """Read *count* segment records as an ``(count, 6)`` float32 array."""
    if count == 0:
        return np.empty((0, 6), dtype=_SEGMENT_DTYPE)
    chunks: list[bytes] = []
    remaining = count
    while remaining:
        n = min(remaining, _SEGMENT_CHUNK)
        chunks.append(_read_exact(stream, n * _SEGMENT_SIZE))
        remaining -= n
    return np.frombuffer(b"".join(chunks), dtype=_SEGMENT_DTYPE).reshape(count, 6)


def _read_stroke(stream: BinaryIO) -> tuple[Stroke, np.ndarray]:
    pen, colour, _, width, _, segment_count = _PATH.unpack(_read_exact(stream, _PATH.size))
    segments = _read_segments(stream, segment_count)
    points = tuple(
        Point(x=x, y=y, pressure=p, tilt=t)
        for x, y, p, t in segments[:, :4].astype(np.float64).tolist()
    )
    stroke = Stroke(
        pen_code=int(pen),
        color_code=int(colour),
        base_width=float(width),
        points=points,
    )
    return stroke, segments


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def decode_lines(stream: BinaryIO) -> StrokeDocument:
    """Decode a v5 lines stream into a ``StrokeDocument``.

    Parameters
    ----------
    stream : BinaryIO
        Readable binary stream positioned at the start of the file.

    Returns
    -------
    StrokeDocument
        Decoded layers. ``truncated`` is set when the stream ended early.

    Raises
    ------
    BadHeaderError
        Signature mismatch (``UnsupportedVersionError`` for other versions).
    NoLayersError
        Header declares fewer than one layer.
    """
    check_header(stream.read(HEADER_SIZE) or b"")
    try:
        (layer_count,) = _U32.unpack(_read_exact(stream, _U32.size))
    except _EndOfStream:
        logger.warning("Lines stream ended inside the layer count: no layers kept")
        return StrokeDocument(layers=(), declared_layer_count=0, truncated=True)
    if layer_count < 1:
        raise NoLayersError("number of layers less than 1")

    layers: list[Layer] = []
    max_x = 0.0
    max_y = 0.0
    truncated = False

    for layer_number in range(1, layer_count + 1):
        try:
            (path_count,) = _U32.unpack(_read_exact(stream, _U32.size))
        except _EndOfStream:
            truncated = True
            break

        strokes: list[Stroke] = []
        for _ in range(path_count):
            try:
                stroke, segments = _read_stroke(stream)
            except _EndOfStream:
                truncated = True
                break
            strokes.append(stroke)
            if len(segments):
                max_x = max(max_x, float(segments[:, 0].max()))
                max_y = max(max_y, float(segments[:, 1].max()))

        layers.append(Layer(strokes=tuple(strokes)))
        if truncated:
            break

    document = StrokeDocument(
        layers=tuple(layers),
        declared_layer_count=layer_count,
        max_coordinates=MaxCoordinates(x=max_x, y=max_y),
        truncated=truncated,
    )
    if truncated:
        logger.warning(
            "Lines stream ended early: kept %d of %d layer(s), %d stroke(s)",
            len(layers), layer_count, document.stroke_count,
        )
    else:
        logger.debug(
            "Decoded %d layer(s), %d stroke(s); max coordinates x=%.1f y=%.1f",
            layer_count, document.stroke_count, max_x, max_y,
        )
    return document


def decode_lines_bytes(data: bytes) -> StrokeDocument:
    """Decode a lines file held in memory."""
    return decode_lines(io.BytesIO(data))


def load_lines_file(path: str | Path) -> StrokeDocument:
    """Decode a lines file from disk.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    FormatError
        If the file is not a decodable v5 lines file.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Lines file not found: {path}")
    with open(path, "rb") as f:
        return decode_lines(f)
