"""Pen vocabulary and base rendering styles.

Every stroke carries a raw pen code and a raw width. This module maps codes
to pen kinds, raw widths to one of three weights, and provides the base
style (colour, width, opacity) of every kind.

Pen codes::

    2, 17   pen              12  paint
    3, 16   marker           13  mechanical-pencil
    4       fineliner        14  pencil
    5, 18   highlighter      15  ballpoint
    6       eraser           7   sharp-pencil
    8       erase-area

Unknown codes render as a fineliner and are counted in an
``UnknownPenTally`` so they can be reported once at the end of a run.

Weights: the tablet encodes its three pen sizes as raw widths 1.875
(narrow), 2.000 (standard) and 2.125 (broad). The rendered width is the
kind's standard width scaled by 0.60, 0.85 or 1.20 respectively.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass

from rmoverlay.utils.color import RGB

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------

PEN_CODES: dict[int, str] = {
    2: "pen",
    3: "marker",
    4: "fineliner",
    5: "highlighter",
    6: "eraser",
    7: "sharp-pencil",
    8: "erase-area",
    12: "paint",
    13: "mechanical-pencil",
    14: "pencil",
    15: "ballpoint",
    16: "marker",
    17: "pen",
    18: "highlighter",
}

FALLBACK_KIND = "fineliner"
ERASER_KINDS = frozenset({"eraser", "erase-area"})
PEN_KINDS: tuple[str, ...] = tuple(dict.fromkeys(PEN_CODES.values()))

# Alternative spellings accepted in pen configuration files.
KIND_ALIASES = {"highligher": "highlighter"}

NARROW = "narrow"
STANDARD = "standard"
BROAD = "broad"
WEIGHTS = (NARROW, STANDARD, BROAD)

NOMINAL_WIDTHS = {NARROW: 1.875, STANDARD: 2.000, BROAD: 2.125}
WIDTH_FACTORS = {NARROW: 0.60, STANDARD: 0.85, BROAD: 1.20}


@dataclass(frozen=True, slots=True)
class BaseStyle:
    """Default appearance of one pen kind.

    Parameters
    ----------
    color : RGB
        Stroke colour.
    standard_width : float
        Reference width, scaled by ``WIDTH_FACTORS``.
    opacity : float
        Stroke alpha in [0, 1].
    allow_color_override : bool
        Whether per-layer colours may replace ``color``.
    """

    color: RGB
    standard_width: float
    opacity: float = 1.0
    allow_color_override: bool = False

    def width_for(self, weight: str) -> float:
        return WIDTH_FACTORS.get(weight, WIDTH_FACTORS[STANDARD]) * self.standard_width


BLACK: RGB = (0, 0, 0)
BLUE: RGB = (0, 0, 255)
WHITE: RGB = (255, 255, 255)
SLATEGRAY: RGB = (112, 128, 144)
DARK_GREY: RGB = (55, 55, 55)

BASE_STYLES: dict[str, BaseStyle] = {
    "pen": BaseStyle(BLACK, 2.0, 1.0, allow_color_override=True),
    "highlighter": BaseStyle(BLUE, 15.0, 0.4, allow_color_override=True),
    "fineliner": BaseStyle(BLUE, 1.0, 1.0, allow_color_override=True),
    "marker": BaseStyle(BLACK, 3.8, 1.0, allow_color_override=True),
    "ballpoint": BaseStyle(SLATEGRAY, 1.75, 0.8),
    "pencil": BaseStyle(BLACK, 1.9, 1.0),
    "sharp-pencil": BaseStyle(BLACK, 1.2, 0.9),
    "mechanical-pencil": BaseStyle(BLACK, 1.2, 0.7),
    "paint": BaseStyle(DARK_GREY, 4.8, 0.8),
    "eraser": BaseStyle(WHITE, 9.0, 0.0),
    "erase-area": BaseStyle(WHITE, 9.0, 0.0),
}


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


def normalize_kind(name: str) -> str:
    """Canonical kind name: lower case, hyphenated, aliases resolved.

    >>> normalize_kind("Mechanical Pencil")
    'mechanical-pencil'
    """
    kind = "-".join(str(name).strip().lower().replace("_", " ").split())
    return KIND_ALIASES.get(kind, kind)


def classify_width(raw_width: float) -> str:
    """Map a raw encoded width to ``narrow`` / ``standard`` / ``broad``.

    Widths are compared after rounding to three decimals; anything other
    than 1.875 or 2.125 is standard.
    """
    rounded = round(float(raw_width), 3)
    if rounded == NOMINAL_WIDTHS[NARROW]:
        return NARROW
    if rounded == NOMINAL_WIDTHS[BROAD]:
        return BROAD
    return STANDARD


def lookup_kind(pen_code: int) -> str | None:
    """Pen kind for *pen_code*, None when the code is unknown."""
    return PEN_CODES.get(pen_code)


def base_style(kind: str) -> BaseStyle:
    """Base style of *kind*; unknown kinds get the fallback style."""
    return BASE_STYLES.get(kind, BASE_STYLES[FALLBACK_KIND])


def is_eraser(kind: str) -> bool:
    return kind in ERASER_KINDS


class UnknownPenTally(Counter):
    """Occurrences of unknown pen codes over a whole run."""

    def record(self, pen_code: int) -> None:
        if pen_code not in self:
            logger.debug("Unknown pen code %d, rendering as %s", pen_code, FALLBACK_KIND)
        self[pen_code] += 1

    def summary(self) -> str:
        """``"code 9 (x3), code 21 (x1)"``, empty when nothing was recorded."""
        return ", ".join(f"code {code} (x{count})" for code, count in sorted(self.items()))

    def report(self) -> None:
        """Log one warning listing every unknown pen code seen."""
        if self:
            logger.warning(
                "Unknown pen code(s) rendered as %s: %s", FALLBACK_KIND, self.summary()
            )
