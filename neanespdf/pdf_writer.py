"""Document writers that turn draw instructions into a PDF file."""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from neanespdf.draw_instructions import DrawInstruction, DrawLine, DrawText, NewPage
from neanespdf.font_metrics import RegistryFontMetrics
from neanespdf.font_registry import FontRegistry

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"[0-9a-fA-F]{3}|[0-9a-fA-F]{6}")


def hex_to_rgb(color: str) -> tuple[float, float, float]:
    """Convert ``#RRGGBB`` or ``#RGB`` to an RGB triple in the 0..1 range."""
    value = color.strip().lstrip("#")
    if not _HEX_COLOR.fullmatch(value):
        raise ValueError(f"Unsupported color '{color}'.")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    red, green, blue = (int(value[i : i + 2], 16) / 255 for i in (0, 2, 4))
    return red, green, blue


class DocumentWriter(ABC):
    """Abstract document writer."""

    @property
    @abstractmethod
    def default_extension(self) -> str:
        """Default filename extension for this writer."""

    @abstractmethod
    def write(self, instructions: Iterable[DrawInstruction], output_path: Path) -> int:
        """Write the instructions to ``output_path`` and return the page count."""


class PyMuPdfWriter(DocumentWriter):
    """
    Write instructions to a PDF with PyMuPDF.

    Fonts are embedded from the registry bytes, once per page that uses them.
    Text positions are converted from the top of the line box to the baseline
    with the font ascent.
    """

    def __init__(
        self,
        registry: FontRegistry,
        metrics: RegistryFontMetrics,
        page_size: tuple[float, float],
    ) -> None:
        self.registry = registry
        self.metrics = metrics
        self.page_width, self.page_height = page_size
        self._font_names: dict[str, str] = {}

    @property
    def default_extension(self) -> str:
        return ".pdf"

    def write(self, instructions: Iterable[DrawInstruction], output_path: Path) -> int:
        import pymupdf

        doc = pymupdf.open()
        try:
            page = self._new_page(doc)
            page_fonts: set[str] = set()

            for instruction in instructions:
                if isinstance(instruction, NewPage):
                    page = self._new_page(doc)
                    page_fonts = set()
                elif isinstance(instruction, DrawText):
                    font_name = self._font_name(instruction.font_key)
                    if font_name not in page_fonts:
                        page.insert_font(
                            fontname=font_name,
                            fontbuffer=self.registry.require(instruction.font_key),
                        )
                        page_fonts.add(font_name)
                    self._draw_text(page, instruction, font_name)
                elif isinstance(instruction, DrawLine):
                    page.draw_line(
                        (instruction.x1, instruction.y1),
                        (instruction.x2, instruction.y2),
                        color=hex_to_rgb(instruction.color),
                        width=instruction.line_width,
                    )

            page_count = doc.page_count
            doc.save(str(output_path))
        finally:
            doc.close()

        logger.info("Wrote %d page(s) to %s", page_count, output_path)
        return page_count

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _new_page(self, doc: Any) -> Any:
        return doc.new_page(width=self.page_width, height=self.page_height)

    def _font_name(self, font_key: str) -> str:
        """Resource names cannot hold the spaces of family keys."""
        if font_key not in self._font_names:
            self._font_names[font_key] = f"nf{len(self._font_names)}"
        return self._font_names[font_key]

    def _draw_text(self, page: Any, draw: DrawText, font_name: str) -> None:
        font_metrics = self.metrics.metrics(draw.font_key)
        text = font_metrics.apply_features(draw.text, draw.features)

        color = hex_to_rgb(draw.color)
        baseline = draw.y + font_metrics.ascent(draw.font_size)
        page.insert_text(
            (draw.x, baseline),
            text,
            fontname=font_name,
            fontsize=draw.font_size,
            color=color,
        )

        if draw.underline:
            distance, thickness = font_metrics.underline_metrics(draw.font_size)
            width = font_metrics.text_width(text, draw.font_size)
            page.draw_line(
                (draw.x, baseline + distance),
                (draw.x + width, baseline + distance),
                color=color,
                width=thickness,
            )
