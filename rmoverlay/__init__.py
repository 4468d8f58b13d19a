"""rmoverlay: tablet notebook strokes overlaid onto PDF pages.

Reads a notebook bundle (``.content``/``.metadata`` descriptors, one ``.rm``
lines file per marked page and an optional backing PDF) and writes a layered
PDF in which every page shows its background with the pen strokes drawn on
top, one optional-content layer per notebook layer.

Architecture layers (strict one-way dependency):
    cli → convert → {render, bundle, pens, lines} → utils

Key invariants:
    - Only the v5 lines format is decoded; anything else is rejected at the header
    - Page composition is a pure function of the output page index
    - Drawing is expressed as immutable operations applied by a surface
    - Geometry in PDF points once it leaves the compositor
"""

__version__ = "1.0.0"
