"""Draw instructions emitted by the glyph composer.

Coordinates are PDF points with the origin at the top-left of the page. For
text, ``y`` is the top of the line box; writers add the font ascent to find
the baseline.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DrawText:
    text: str
    x: float
    y: float
    font_key: str
    font_size: float
    color: str
    features: tuple[str, ...] = ()
    underline: bool = False


@dataclass(frozen=True)
class DrawLine:
    x1: float
    y1: float
    x2: float
    y2: float
    line_width: float
    color: str


@dataclass(frozen=True)
class NewPage:
    """Start a new physical page."""


DrawInstruction = DrawText | DrawLine | NewPage
