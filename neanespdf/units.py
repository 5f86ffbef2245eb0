"""Unit conversion between layout pixels and PDF points."""

PX_PER_INCH = 96
PT_PER_INCH = 72


def to_pt(px: float) -> float:
    """Convert a layout measurement in CSS pixels to PDF points."""
    return px * PT_PER_INCH / PX_PER_INCH


def to_px(pt: float) -> float:
    return pt * PX_PER_INCH / PT_PER_INCH
