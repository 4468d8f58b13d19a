"""Resolve the rendered style of each stroke.

Width and opacity come from a matching pen override, else from the base
style at the stroke's weight. Colour precedence:

    1. the layer's colour, for colour-overridable kinds only
    2. the override pen's colour (applies to every kind)
    3. the base colour
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Optional

from rmoverlay.pens.config import PenConfig
from rmoverlay.pens.styles import (
    FALLBACK_KIND,
    UnknownPenTally,
    base_style,
    classify_width,
    lookup_kind,
)
from rmoverlay.utils.color import RGB

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PenStyle:
    """Resolved appearance of a stroke."""

    kind: str
    weight: str
    width: float
    opacity: float
    color: RGB
    allow_color_override: bool


def resolve_style(
    kind: str,
    raw_width: float,
    layer_number: int,
    *,
    pen_config: Optional[PenConfig] = None,
    layer_color: Optional[RGB] = None,
) -> PenStyle:
    """Resolve the style of one stroke.

    Parameters
    ----------
    kind : str
        Canonical pen kind.
    raw_width : float
        Raw encoded width of the stroke.
    layer_number : int
        1-indexed layer of the stroke.
    pen_config : PenConfig, optional
        Pen overrides.
    layer_color : RGB, optional
        Colour requested for this layer.

    Returns
    -------
    PenStyle
    """
    weight = classify_width(raw_width)
    base = base_style(kind)
    override = pen_config.get_pen(layer_number, kind, weight) if pen_config is not None else None

    if override is not None:
        width, opacity = override.width, override.opacity
    else:
        width, opacity = base.width_for(weight), base.opacity

    if layer_color is not None and base.allow_color_override:
        color = layer_color
    elif override is not None and override.color is not None:
        color = tuple(override.color)
    else:
        color = base.color

    return PenStyle(
        kind=kind,
        weight=weight,
        width=width,
        opacity=opacity,
        color=color,
        allow_color_override=base.allow_color_override,
    )


class StyleResolver:
    """Stroke style resolution for one page.

    Results are cached per ``(layer, kind, weight)`` for the lifetime of
    the resolver; create one per page.

    Parameters
    ----------
    pen_config : PenConfig, optional
        Pen overrides.
    layer_colors : Sequence[RGB | None]
        Per-layer colours, index 0 for layer 1. None entries and layers
        beyond the sequence keep their normal colour.
    unknown_pens : UnknownPenTally, optional
        Run-wide tally updated for unknown pen codes.
    """

    def __init__(
        self,
        pen_config: Optional[PenConfig] = None,
        layer_colors: Sequence[Optional[RGB]] = (),
        unknown_pens: Optional[UnknownPenTally] = None,
    ) -> None:
        self.pen_config = pen_config
        self.layer_colors = tuple(layer_colors)
        self.unknown_pens = unknown_pens if unknown_pens is not None else UnknownPenTally()
        self._cache: dict[tuple[int, str, str], PenStyle] = {}

    def kind_of(self, pen_code: int) -> str:
        """Pen kind for *pen_code*; unknown codes are tallied and fall back."""
        kind = lookup_kind(pen_code)
        if kind is None:
            self.unknown_pens.record(pen_code)
            return FALLBACK_KIND
        return kind

    def layer_color(self, layer_number: int) -> Optional[RGB]:
        if 1 <= layer_number <= len(self.layer_colors):
            return self.layer_colors[layer_number - 1]
        return None

    def resolve(self, kind: str, raw_width: float, layer_number: int) -> PenStyle:
        key = (layer_number, kind, classify_width(raw_width))
        style = self._cache.get(key)
        if style is None:
            style = resolve_style(
                kind,
                raw_width,
                layer_number,
                pen_config=self.pen_config,
                layer_color=self.layer_color(layer_number),
            )
            self._cache[key] = style
            logger.debug(
                "Layer %d %s/%s: width=%.3f opacity=%.2f color=%s",
                layer_number, kind, style.weight, style.width, style.opacity, style.color,
            )
        return style
