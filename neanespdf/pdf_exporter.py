"""PdfExporter: renders a laid-out chant score into a PDF document."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from neanespdf.config import RenderConfig
from neanespdf.draw_instructions import DrawInstruction
from neanespdf.font_metrics import RegistryFontMetrics
from neanespdf.font_providers import FontProvider, get_font_provider
from neanespdf.font_registry import DEFAULT_FONTS, FontRegistry, build_font_registry
from neanespdf.glyph_composer import GlyphComposer
from neanespdf.neumes import FontNeumeMapper, NeumeMapper, load_neume_overrides
from neanespdf.pdf_writer import DocumentWriter, PyMuPdfWriter
from neanespdf.score_loader import load_score, read_score_file
from neanespdf.score_models import Page, Score

logger = logging.getLogger(__name__)


class PdfExporter:
    """
    Run one document generation pass.

    Every call builds its own font registry: fonts are collected, read or
    resolved, and registered before composition starts, then the composed
    instructions are handed to the document writer.
    """

    def __init__(
        self,
        config: RenderConfig | None = None,
        provider: FontProvider | None = None,
    ) -> None:
        self.config = config or RenderConfig()
        self.provider = provider or get_font_provider(
            self.config.font_provider,
            max_bytes=self.config.max_font_bytes,
            timeout=self.config.resolver_timeout,
        )
        self.skipped_elements = 0

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_registry(self, score: Score) -> FontRegistry:
        return build_font_registry(
            score,
            self.provider,
            self.config.font_dir,
            bundled={**DEFAULT_FONTS, **self.config.extra_bundled_fonts},
            max_workers=self.config.max_workers,
        )

    def _build_mapper(self, score: Score, metrics: RegistryFontMetrics) -> NeumeMapper:
        overrides = (
            load_neume_overrides(self.config.neume_map_path)
            if self.config.neume_map_path is not None
            else {}
        )
        neume_font = metrics.metrics(score.page_setup.neume_default_font_family)
        return FontNeumeMapper(neume_font, overrides)

    def _build_writer(self, registry: FontRegistry, metrics: RegistryFontMetrics) -> DocumentWriter:
        return PyMuPdfWriter(registry, metrics, self.config.page_dimensions)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def compose(
        self,
        score: Score,
        pages: list[Page],
        registry: FontRegistry,
        metrics: RegistryFontMetrics,
    ) -> list[DrawInstruction]:
        composer = GlyphComposer(
            score.page_setup,
            self._build_mapper(score, metrics),
            metrics,
            registry,
            right_bar_reference_size=self.config.right_bar_reference_size,
        )
        instructions = composer.compose(pages)
        self.skipped_elements = composer.skipped_elements
        return instructions

    def generate(self, score: Score, pages: list[Page]) -> Path:
        """
        Render already laid-out pages to ``config.output_path``.

        Raises:
            FontResolutionError: If a required font cannot be resolved.
            FontNotRegisteredError: If an element draws with an unregistered font.
            UnknownNeumeError: If a neume has no glyph in the neume font.
            OSError: If a font or the output file cannot be read or written.
        """
        started = time.perf_counter()

        registry = self._build_registry(score)
        metrics = RegistryFontMetrics(registry)
        logger.info("Fonts registered in %.2f s", time.perf_counter() - started)

        instructions = self.compose(score, pages, registry, metrics)
        if self.skipped_elements:
            logger.warning("Skipped %d element(s) of unsupported type", self.skipped_elements)

        output_path = self.config.output_path
        self._build_writer(registry, metrics).write(instructions, output_path)

        logger.info("Generated %s in %.2f s", output_path, time.perf_counter() - started)
        return output_path

    def export(self, input_path: str | Path) -> Path:
        """
        Read a ``.byzx``/``.byz`` score and render it.

        Raises:
            ScoreFileError: If the input file is unsupported or malformed.
        """
        score, pages = load_score(read_score_file(input_path))
        return self.generate(score, pages)
