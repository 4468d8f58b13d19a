"""Colour parsing for pen overrides and per-layer colours.

Provides:
    - parse_color(): name / hex / rgb() / rgba() → RGB tuple (0-255)
    - to_unit_rgb(): RGB tuple (0-255) → floats in [0, 1] for PDF operators

Names follow the CSS/SVG colour keyword set (via Pillow's ImageColor),
matched case-insensitively. Alpha components are parsed but dropped: stroke
transparency is controlled by pen opacity only.
"""

import re
from typing import Optional, Tuple

from PIL import ImageColor

RGB = Tuple[int, int, int]

# rgba() with any alpha, rewritten to rgb() for ImageColor.
_RGBA = re.compile(r"^rgba\(\s*([^,]+,[^,]+,[^,]+?)\s*,\s*[0-9.%]+\s*\)$")

# Spelling accepted on the command line for "no colour for this layer".
NO_COLOR = "empty"


def parse_color(value: Optional[str]) -> Optional[RGB]:
    """Parse a colour specification.

    Parameters
    ----------
    value : str or None
        Colour name (``"darkseagreen"``), hex (``"#963387"``, ``"#fff"``),
        ``"rgb(10, 20, 30)"`` or ``"rgba(10, 20, 30, 0.5)"``.

    Returns
    -------
    tuple[int, int, int] or None
        RGB components, or None for an empty value / ``"empty"``.

    Raises
    ------
    ValueError
        If the specification is not understood.

    Examples
    --------
    >>> parse_color("blue")
    (0, 0, 255)
    >>> parse_color("rgba(255, 0, 0, 0.3)")
    (255, 0, 0)
    """
    if value is None:
        return None
    spec = str(value).strip()
    if not spec or spec.lower() == NO_COLOR:
        return None
    try:
        components = ImageColor.getrgb(_RGBA.sub(r"rgb(\1)", spec.lower()))
    except ValueError as e:
        raise ValueError(f"colour '{value}' is not a colour name, hex, rgb or rgba value") from e
    r, g, b = components[:3]
    return (int(r), int(g), int(b))


def to_unit_rgb(rgb: RGB) -> Tuple[float, float, float]:
    """Scale 0-255 RGB components to [0, 1]."""
    return tuple(c / 255.0 for c in rgb)
