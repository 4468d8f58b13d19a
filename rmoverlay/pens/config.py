"""Per-layer pen overrides loaded from YAML.

Example::

    all:
      - pen:     fineliner
        weight:  narrow
        width:   0.95
        color:   black
        opacity: 0.9

    "1":
      - pen:     fineliner
        weight:  standard
        width:   0.8
        color:   "#963387"
        opacity: 0.8

Keys are ``all`` or a 1-indexed layer number. A layer listed explicitly
uses only its own pens; ``all`` applies to layers that are not listed.

Lookup of a narrow or broad pen that is not configured falls back to the
standard entry of the same pen, with its width scaled by the ratio of the
nominal raw widths (1.875 : 2.000 : 2.125). Standard requests have no
fallback.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, Field, PrivateAttr, ValidationError, field_validator

from rmoverlay.pens.styles import NOMINAL_WIDTHS, PEN_KINDS, STANDARD, WEIGHTS, normalize_kind
from rmoverlay.utils import fs
from rmoverlay.utils.color import parse_color

logger = logging.getLogger(__name__)

ALL_LAYERS = "all"


class StyleConfigError(Exception):
    """Raised when a pen configuration cannot be loaded or is invalid."""

    pass


# ============================================================================
# SCHEMA
# ============================================================================


class PenOverride(BaseModel):
    """Replacement style for one pen kind at one weight."""

    pen: str = Field(..., description="Pen kind, e.g. 'fineliner' or 'mechanical-pencil'")
    weight: str = Field(STANDARD, description="narrow | standard | broad")
    width: float = Field(..., ge=0.0, le=30.0, description="Rendered line width (pt)")
    color: Optional[Tuple[int, int, int]] = Field(None, description="Forced stroke colour")
    opacity: float = Field(1.0, ge=0.0, le=1.0, description="Stroke alpha")

    @field_validator('pen', mode='before')
    @classmethod
    def validate_pen(cls, v: Any) -> str:
        kind = normalize_kind(v)
        if kind not in PEN_KINDS:
            raise ValueError(f"pen type '{v}' not in {', '.join(PEN_KINDS)}")
        return kind

    @field_validator('weight', mode='before')
    @classmethod
    def validate_weight(cls, v: Any) -> str:
        weight = str(v).strip().lower()
        if weight not in WEIGHTS:
            raise ValueError(f"weight '{v}' not in {', '.join(WEIGHTS)}")
        return weight

    @field_validator('color', mode='before')
    @classmethod
    def validate_color(cls, v: Any) -> Any:
        if v is None:
            return v
        if isinstance(v, (list, tuple)):
            if len(v) != 3 or not all(isinstance(c, int) and 0 <= c <= 255 for c in v):
                raise ValueError(f"colour {list(v)} needs three integers in [0, 255]")
            return tuple(v)
        return parse_color(str(v))


class PenConfig(BaseModel):
    """Pen overrides keyed by ``all`` or layer number (as a string)."""

    layers: Dict[str, List[PenOverride]] = Field(default_factory=dict)

    _cache: Dict[Tuple[int, str, str], Optional[PenOverride]] = PrivateAttr(default_factory=dict)

    @field_validator('layers', mode='before')
    @classmethod
    def validate_layer_keys(cls, v: Any) -> Dict[str, Any]:
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError(f"expected a mapping of layers to pen lists, got {type(v).__name__}")
        layers = {}
        for key, pens in v.items():
            name = str(key).strip()
            if name.lower() == ALL_LAYERS:
                name = ALL_LAYERS
            else:
                try:
                    name = str(int(name))
                except ValueError:
                    raise ValueError(
                        f"layer '{key}' needs to be '{ALL_LAYERS}' or a layer number"
                    ) from None
            layers[name] = pens if pens is not None else []
        return layers

    @property
    def is_empty(self) -> bool:
        return not self.layers

    def layer_pens(self, layer_number: int) -> Optional[List[PenOverride]]:
        """Pens configured for *layer_number*, else for ``all``, else None."""
        pens = self.layers.get(str(layer_number))
        if pens is None:
            pens = self.layers.get(ALL_LAYERS)
        return pens

    def get_pen(self, layer_number: int, kind: str, weight: str) -> Optional[PenOverride]:
        """Find the override for a stroke.

        Parameters
        ----------
        layer_number : int
            1-indexed layer.
        kind : str
            Canonical pen kind.
        weight : str
            ``narrow``, ``standard`` or ``broad``.

        Returns
        -------
        PenOverride or None
            Exact match, or a standard entry rescaled to *weight*.
        """
        key = (layer_number, kind, weight)
        if key not in self._cache:
            self._cache[key] = self._lookup(layer_number, kind, weight)
        return self._cache[key]

    def _lookup(self, layer_number: int, kind: str, weight: str) -> Optional[PenOverride]:
        pens = self.layer_pens(layer_number)
        if not pens:
            return None
        for pen in pens:
            if pen.pen == kind and pen.weight == weight:
                return pen
        if weight == STANDARD:
            return None
        for pen in pens:
            if pen.pen == kind and pen.weight == STANDARD:
                return derive_override(weight, pen)
        return None


def derive_override(requested_weight: str, entry: PenOverride) -> PenOverride:
    """Rescale *entry* to *requested_weight*.

    The width is multiplied by ``nominal(requested) / nominal(entry.weight)``;
    colour and opacity are kept.

    >>> base = PenOverride(pen="fineliner", weight="standard", width=2.0)
    >>> derive_override("broad", base).width
    2.125
    """
    factor = NOMINAL_WIDTHS[requested_weight] / NOMINAL_WIDTHS[entry.weight]
    return entry.model_copy(update={"weight": requested_weight, "width": entry.width * factor})


# ============================================================================
# LOADERS
# ============================================================================


def pen_config_from_mapping(data: Any, source: str = "<mapping>") -> PenConfig:
    """Validate an already-parsed configuration mapping.

    Raises
    ------
    StyleConfigError
        If the mapping fails validation.
    """
    try:
        config = PenConfig(layers=data)
    except ValidationError as e:
        raise StyleConfigError(f"Pen configuration validation failed at {source}: {e}") from e
    logger.debug(
        "Loaded pen configuration from %s: %s",
        source,
        ", ".join(f"{layer}={len(pens)}" for layer, pens in config.layers.items()) or "empty",
    )
    return config


def load_pen_config(path: Union[str, Path]) -> PenConfig:
    """Load and validate a pen configuration YAML file.

    Parameters
    ----------
    path : Union[str, Path]
        Path to YAML file

    Returns
    -------
    PenConfig
        Validated configuration

    Raises
    ------
    StyleConfigError
        If the file is missing, is not YAML, or fails validation
    """
    path = Path(path)
    try:
        data = fs.load_yaml(path)
    except FileNotFoundError as e:
        raise StyleConfigError(f"Pen configuration not found: {path}") from e
    except yaml.YAMLError as e:
        raise StyleConfigError(str(e)) from e
    return pen_config_from_mapping(data, str(path))
