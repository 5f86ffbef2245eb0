"""Font metrics: advance widths, mark anchors and text measurement.

All widths and offsets returned by :class:`FontMetrics` are in em units
(font design units divided by ``unitsPerEm``); multiply by a point size to
get points. Vertical offsets point down the page.
"""

from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from typing import Any

from fontTools.ttLib import TTFont

from neanespdf.font_registry import FontRegistry

logger = logging.getLogger(__name__)

# GPOS lookup types
_MARK_TO_BASE = 4
_EXTENSION_POS = 9
# GSUB lookup types
_SINGLE_SUBST = 1
_EXTENSION_SUBST = 7


class MarkOffsetResolver(ABC):
    """Advance widths and mark-to-base offsets of the glyphs of a font."""

    @abstractmethod
    def advance_width(self, font_key: str, glyph_name: str) -> float:
        """Advance width of a glyph in em units."""

    @abstractmethod
    def mark_anchor_offset(
        self, font_key: str, base_glyph: str, mark_glyph: str
    ) -> tuple[float, float]:
        """Offset that attaches ``mark_glyph`` to ``base_glyph``, in em units."""


class TextMeasurer(ABC):
    """Measurements of text runs in points."""

    @abstractmethod
    def text_width(
        self, font_key: str, text: str, size: float, features: tuple[str, ...] = ()
    ) -> float:
        """Width of ``text`` set at ``size`` points with ``features`` applied."""

    @abstractmethod
    def height_of_string(self, font_key: str, text: str, size: float) -> float:
        """Height taken by ``text`` (one line box per text line)."""

    @abstractmethod
    def ascent(self, font_key: str, size: float) -> float:
        """Distance from the top of the line box to the baseline."""


def _subtables(lookup: Any, extension_type: int) -> Iterator[tuple[int, Any]]:
    """Yield ``(lookup type, subtable)`` pairs, unwrapping extension lookups."""
    for subtable in lookup.SubTable:
        if lookup.LookupType == extension_type:
            yield subtable.ExtensionLookupType, subtable.ExtSubTable
        else:
            yield lookup.LookupType, subtable


class FontMetricsSource(MarkOffsetResolver, TextMeasurer):
    """Glyph anchors and text measurement for the fonts of one document."""


class FontMetrics:
    """Metrics of one font, read with fontTools."""

    def __init__(self, font: TTFont) -> None:
        self.font = font
        self.units_per_em: int = font["head"].unitsPerEm
        self._hmtx = font["hmtx"].metrics
        self._cmap: dict[int, str] = font.getBestCmap() or {}
        self._reverse_cmap: dict[str, int] = {}
        for codepoint, glyph_name in sorted(self._cmap.items()):
            self._reverse_cmap.setdefault(glyph_name, codepoint)
        self._anchors: dict[tuple[str, str], tuple[float, float]] | None = None
        self._substitutions: dict[str, dict[str, str]] = {}

    @classmethod
    def from_bytes(cls, data: bytes) -> "FontMetrics":
        return cls(TTFont(io.BytesIO(data), lazy=True))

    # ------------------------------------------------------------------
    # Glyph metrics
    # ------------------------------------------------------------------

    def advance_width(self, glyph_name: str) -> float:
        metric = self._hmtx.get(glyph_name)
        if metric is None:
            logger.debug("No advance width for glyph '%s'", glyph_name)
            return 0.0
        return metric[0] / self.units_per_em

    def codepoint(self, glyph_name: str) -> int | None:
        return self._reverse_cmap.get(glyph_name)

    def glyph_name(self, char: str) -> str | None:
        return self._cmap.get(ord(char))

    def mark_anchor_offset(self, base_glyph: str, mark_glyph: str) -> tuple[float, float]:
        """Return ``base anchor - mark anchor``, or ``(0, 0)`` when undefined."""
        if self._anchors is None:
            self._anchors = self._read_mark_to_base_anchors()
        offset = self._anchors.get((base_glyph, mark_glyph))
        if offset is None:
            logger.debug("No mark anchor for base '%s' and mark '%s'", base_glyph, mark_glyph)
            return 0.0, 0.0
        return offset

    def _read_mark_to_base_anchors(self) -> dict[tuple[str, str], tuple[float, float]]:
        anchors: dict[tuple[str, str], tuple[float, float]] = {}
        if "GPOS" not in self.font:
            return anchors
        lookup_list = self.font["GPOS"].table.LookupList
        if lookup_list is None:
            return anchors

        for lookup in lookup_list.Lookup:
            for lookup_type, subtable in _subtables(lookup, _EXTENSION_POS):
                if lookup_type != _MARK_TO_BASE:
                    continue
                marks = subtable.MarkCoverage.glyphs
                bases = subtable.BaseCoverage.glyphs
                mark_records = subtable.MarkArray.MarkRecord
                base_records = subtable.BaseArray.BaseRecord
                for base_index, base_glyph in enumerate(bases):
                    base_anchors = base_records[base_index].BaseAnchor
                    for mark_index, mark_glyph in enumerate(marks):
                        if (base_glyph, mark_glyph) in anchors:
                            continue
                        record = mark_records[mark_index]
                        base_anchor = base_anchors[record.Class]
                        if base_anchor is None:
                            continue
                        dx = base_anchor.XCoordinate - record.MarkAnchor.XCoordinate
                        dy = base_anchor.YCoordinate - record.MarkAnchor.YCoordinate
                        anchors[(base_glyph, mark_glyph)] = (
                            dx / self.units_per_em,
                            -dy / self.units_per_em,
                        )
        return anchors

    # ------------------------------------------------------------------
    # Text metrics
    # ------------------------------------------------------------------

    def text_width(self, text: str, size: float) -> float:
        total = 0.0
        for char in text:
            glyph_name = self.glyph_name(char) or ".notdef"
            total += self.advance_width(glyph_name)
        return total * size

    def line_height(self, size: float) -> float:
        hhea = self.font["hhea"]
        return (hhea.ascent - hhea.descent + hhea.lineGap) / self.units_per_em * size

    def ascent(self, size: float) -> float:
        return self.font["hhea"].ascent / self.units_per_em * size

    def height_of_string(self, text: str, size: float) -> float:
        lines = max(1, len(text.split("\n")))
        return lines * self.line_height(size)

    def underline_metrics(self, size: float) -> tuple[float, float]:
        """Return (distance below the baseline, thickness) in points."""
        if "post" not in self.font:
            return 0.1 * size, 0.05 * size
        post = self.font["post"]
        return (
            -post.underlinePosition / self.units_per_em * size,
            post.underlineThickness / self.units_per_em * size,
        )

    # ------------------------------------------------------------------
    # Substitutions
    # ------------------------------------------------------------------

    def substitute_feature(self, text: str, feature_tag: str) -> str:
        """
        Apply the single substitutions of a GSUB feature to ``text``.

        Only substitutes whose target glyph is encoded in the cmap can be
        expressed as text; other characters are left as they are.
        """
        mapping = self._single_substitutions(feature_tag)
        if not mapping:
            return text
        chars = []
        for char in text:
            glyph_name = self.glyph_name(char)
            target = mapping.get(glyph_name) if glyph_name else None
            codepoint = self.codepoint(target) if target else None
            chars.append(chr(codepoint) if codepoint is not None else char)
        return "".join(chars)

    def _single_substitutions(self, feature_tag: str) -> dict[str, str]:
        if feature_tag in self._substitutions:
            return self._substitutions[feature_tag]

        mapping: dict[str, str] = {}
        if "GSUB" in self.font:
            table = self.font["GSUB"].table
            lookup_indices: set[int] = set()
            if table.FeatureList is not None:
                for record in table.FeatureList.FeatureRecord:
                    if record.FeatureTag == feature_tag:
                        lookup_indices.update(record.Feature.LookupListIndex)
            for index in sorted(lookup_indices):
                lookup = table.LookupList.Lookup[index]
                for lookup_type, subtable in _subtables(lookup, _EXTENSION_SUBST):
                    if lookup_type == _SINGLE_SUBST:
                        for source, target in subtable.mapping.items():
                            mapping.setdefault(source, target)

        self._substitutions[feature_tag] = mapping
        return mapping

    def apply_features(self, text: str, features: Iterable[str]) -> str:
        """Apply the single substitutions of each feature in order."""
        for feature in features:
            text = self.substitute_feature(text, feature)
        return text


class RegistryFontMetrics(FontMetricsSource):
    """Metrics for the fonts of a :class:`FontRegistry`, loaded on first use."""

    def __init__(self, registry: FontRegistry) -> None:
        self.registry = registry
        self._metrics: dict[str, FontMetrics] = {}

    def metrics(self, font_key: str) -> FontMetrics:
        if font_key not in self._metrics:
            self._metrics[font_key] = FontMetrics.from_bytes(self.registry.require(font_key))
        return self._metrics[font_key]

    def advance_width(self, font_key: str, glyph_name: str) -> float:
        return self.metrics(font_key).advance_width(glyph_name)

    def mark_anchor_offset(
        self, font_key: str, base_glyph: str, mark_glyph: str
    ) -> tuple[float, float]:
        return self.metrics(font_key).mark_anchor_offset(base_glyph, mark_glyph)

    def text_width(
        self, font_key: str, text: str, size: float, features: tuple[str, ...] = ()
    ) -> float:
        metrics = self.metrics(font_key)
        return metrics.text_width(metrics.apply_features(text, features), size)

    def height_of_string(self, font_key: str, text: str, size: float) -> float:
        return self.metrics(font_key).height_of_string(text, size)

    def ascent(self, font_key: str, size: float) -> float:
        return self.metrics(font_key).ascent(size)
