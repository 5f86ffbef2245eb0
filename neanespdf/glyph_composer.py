"""GlyphComposer: turns laid-out pages into positioned draw instructions."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import Any, Final

from neanespdf.draw_instructions import DrawInstruction, DrawLine, DrawText, NewPage
from neanespdf.font_metrics import FontMetricsSource
from neanespdf.font_options import styled_family
from neanespdf.font_registry import FontRegistry
from neanespdf.neumes import (
    EXTENDED_VOCAL_EXPRESSIONS,
    ModeSign,
    NeumeMapper,
    TimeNeume,
    VocalExpressionNeume,
)
from neanespdf.score_models import (
    DropCapElement,
    ElementType,
    EmptyElement,
    MartyriaElement,
    ModeKeyElement,
    NoteElement,
    Offset,
    Page,
    PageSetup,
    ScoreElement,
    TextBoxElement,
    UnsupportedElement,
    lyrics_style,
)
from neanespdf.units import to_pt

logger = logging.getLogger(__name__)

#: Font features a mode key run enables when its martyria asks for an alternate.
STYLISTIC_ALTERNATES: Final[tuple[str, ...]] = ("salt",)


@dataclass(frozen=True)
class NoteCursor:
    """
    Drawing position threaded through the steps of a note.

    ``x``/``y`` are where the next run of the base text starts, in points.
    ``shift`` is the em width drawn before the base glyph (left measure bar,
    vareia); mark anchors are relative to the unshifted base glyph and get
    this added.
    """

    x: float
    y: float
    shift: float = 0.0


NoteStep = Callable[[NoteElement, NoteCursor], tuple[NoteCursor, list[DrawInstruction]]]


class GlyphComposer:
    """
    Compose the draw instructions of a laid-out score.

    Elements are processed in document order. Inside a note the left bar,
    vareia, base run, positioned marks, right bar, tie and lyrics are emitted
    in that order; each step receives the cursor left by the previous one.
    """

    def __init__(
        self,
        page_setup: PageSetup,
        mapper: NeumeMapper,
        metrics: FontMetricsSource,
        registry: FontRegistry,
        *,
        right_bar_reference_size: float = 20.0,
    ) -> None:
        self.page_setup = page_setup
        self.mapper = mapper
        self.metrics = metrics
        self.registry = registry
        self.right_bar_reference_size = right_bar_reference_size
        self.neume_font = page_setup.neume_default_font_family
        self.neume_font_size = to_pt(page_setup.neume_default_font_size)
        self.skipped_elements = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def compose(self, pages: Iterable[Page]) -> list[DrawInstruction]:
        """
        Return the instructions for every page.

        A page other than the first starts a new physical page only when it
        has more than one line; a page made of one line is drawn onto the
        current page. Empty pages and lines are skipped and do not count as
        the first page.
        """
        instructions: list[DrawInstruction] = []
        first_page = True
        for page in pages:
            if page.is_empty:
                continue
            if not first_page and len(page.lines) > 1:
                instructions.append(NewPage())
            first_page = False

            for line in page.lines:
                if line.is_empty:
                    continue
                for element in line.elements:
                    instructions.extend(self.compose_element(element))
        return instructions

    def compose_element(self, element: ScoreElement) -> list[DrawInstruction]:
        if isinstance(element, UnsupportedElement):
            self.skipped_elements += 1
            logger.warning("Skipping element of unsupported type '%s'", element.element_type)
            return []
        renderer = ELEMENT_RENDERERS[element.element_type]
        return renderer(self, element)

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def note_steps(self) -> tuple[NoteStep, ...]:
        return (
            self._left_bar_step,
            self._vareia_step,
            self._base_run_step,
            self._marks_step,
            self._right_bar_step,
            self._tie_step,
            self._lyrics_step,
        )

    def render_note(self, note: NoteElement) -> list[DrawInstruction]:
        cursor = NoteCursor(x=to_pt(note.x), y=to_pt(note.y))
        instructions: list[DrawInstruction] = []
        for step in self.note_steps():
            cursor, emitted = step(note, cursor)
            instructions.extend(emitted)
        return instructions

    def _advance_run(
        self, neume: str, cursor: NoteCursor, color: str
    ) -> tuple[NoteCursor, list[DrawInstruction]]:
        """Draw a glyph at the cursor and move the cursor past it."""
        mapping = self.mapper.get_mapping(neume)
        draw = self._text(mapping.text, cursor.x, cursor.y, self.neume_font, self.neume_font_size, color)
        width = self.metrics.advance_width(self.neume_font, mapping.glyph_name)
        advanced = replace(
            cursor,
            x=cursor.x + width * self.neume_font_size,
            shift=cursor.shift + width,
        )
        return advanced, [draw]

    def _left_bar_step(
        self, note: NoteElement, cursor: NoteCursor
    ) -> tuple[NoteCursor, list[DrawInstruction]]:
        if not note.measure_bar_left:
            return cursor, []
        return self._advance_run(
            note.measure_bar_left, cursor, self.page_setup.measure_bar_default_color
        )

    def _vareia_step(
        self, note: NoteElement, cursor: NoteCursor
    ) -> tuple[NoteCursor, list[DrawInstruction]]:
        if not note.vareia:
            return cursor, []
        return self._advance_run(
            VocalExpressionNeume.VAREIA, cursor, self.page_setup.neume_default_color
        )

    def _base_run_step(
        self, note: NoteElement, cursor: NoteCursor
    ) -> tuple[NoteCursor, list[DrawInstruction]]:
        text = self.mapper.get_mapping(note.quantitative_neume).text
        vocal_expression = note.vocal_expression_neume
        if vocal_expression and vocal_expression not in EXTENDED_VOCAL_EXPRESSIONS:
            text += self.mapper.get_mapping(vocal_expression).text

        draw = self._text(
            text,
            cursor.x,
            cursor.y,
            self.neume_font,
            self.neume_font_size,
            self.page_setup.neume_default_color,
        )
        return cursor, [draw]

    def mark_slots(self, note: NoteElement) -> list[tuple[str, Offset | None, str]]:
        """Return ``(neume, explicit offset, color)`` for every positioned mark present."""
        setup = self.page_setup
        slots: list[tuple[str | None, Offset | None, str]] = []

        if note.vocal_expression_neume in EXTENDED_VOCAL_EXPRESSIONS:
            slots.append(
                (note.vocal_expression_neume, note.vocal_expression_neume_offset, setup.heteron_default_color)
            )
        slots += [
            (note.gorgon_neume, note.gorgon_neume_offset, setup.gorgon_default_color),
            (note.secondary_gorgon_neume, note.secondary_gorgon_neume_offset, setup.gorgon_default_color),
            (note.time_neume, note.time_neume_offset, setup.neume_default_color),
            (TimeNeume.KORONIS if note.koronis else None, note.koronis_offset, setup.koronis_default_color),
            (note.accidental, note.accidental_offset, setup.accidental_default_color),
            (note.secondary_accidental, note.secondary_accidental_offset, setup.accidental_default_color),
            (note.tertiary_accidental, note.tertiary_accidental_offset, setup.accidental_default_color),
            (note.fthora, note.fthora_offset, setup.fthora_default_color),
            (note.secondary_fthora, note.secondary_fthora_offset, setup.fthora_default_color),
            (note.tertiary_fthora, note.tertiary_fthora_offset, setup.fthora_default_color),
            (
                note.note_indicator_neume if note.note_indicator else None,
                note.note_indicator_offset,
                setup.note_indicator_default_color,
            ),
            (note.ison, note.ison_offset, setup.ison_default_color),
            (note.measure_number, note.measure_number_offset, setup.measure_number_default_color),
        ]
        return [(neume, offset, color) for neume, offset, color in slots if neume]

    def _marks_step(
        self, note: NoteElement, cursor: NoteCursor
    ) -> tuple[NoteCursor, list[DrawInstruction]]:
        return cursor, [
            self._mark(note, cursor, neume, offset, color)
            for neume, offset, color in self.mark_slots(note)
        ]

    def _mark(
        self,
        note: NoteElement,
        cursor: NoteCursor,
        neume: str,
        offset: Offset | None,
        color: str,
    ) -> DrawText:
        """Draw a mark at its anchor on the base glyph plus its explicit offset."""
        base_glyph = self.mapper.get_mapping(note.quantitative_neume).glyph_name
        mapping = self.mapper.get_mapping(neume)
        anchor_x, anchor_y = self.metrics.mark_anchor_offset(
            self.neume_font, base_glyph, mapping.glyph_name
        )
        explicit = offset or Offset()
        size = self.neume_font_size
        return self._text(
            mapping.text,
            to_pt(note.x) + (anchor_x + cursor.shift + explicit.x) * size,
            to_pt(note.y) + (anchor_y + explicit.y) * size,
            self.neume_font,
            size,
            color,
        )

    def _right_bar_step(
        self, note: NoteElement, cursor: NoteCursor
    ) -> tuple[NoteCursor, list[DrawInstruction]]:
        if not note.measure_bar_right:
            return cursor, []
        base_glyph = self.mapper.get_mapping(note.quantitative_neume).glyph_name
        width = self.metrics.advance_width(self.neume_font, base_glyph)
        draw = self._text(
            self.mapper.get_mapping(note.measure_bar_right).text,
            cursor.x + width * self.right_bar_reference_size,
            cursor.y,
            self.neume_font,
            self.neume_font_size,
            self.page_setup.measure_bar_default_color,
        )
        return cursor, [draw]

    def _tie_step(
        self, note: NoteElement, cursor: NoteCursor
    ) -> tuple[NoteCursor, list[DrawInstruction]]:
        if not note.tie:
            return cursor, []
        return cursor, [
            self._mark(note, cursor, note.tie, note.tie_offset, self.page_setup.neume_default_color)
        ]

    def _lyrics_step(
        self, note: NoteElement, cursor: NoteCursor
    ) -> tuple[NoteCursor, list[DrawInstruction]]:
        if not note.lyrics:
            return cursor, []

        style = lyrics_style(note, self.page_setup)
        font_key = styled_family(style.font_family, bold=style.bold, italic=style.italic)
        size = to_pt(style.font_size)
        top = to_pt(note.y + note.lyrics_vertical_offset)
        center = note.x + note.neume_width / 2
        right_edge = center + note.lyrics_width / 2

        instructions: list[DrawInstruction] = [
            self._text(
                note.lyrics,
                to_pt(center - note.lyrics_width / 2 + note.lyrics_horizontal_offset / 2),
                top,
                font_key,
                size,
                style.color,
                underline=style.underline,
            )
        ]

        if note.is_melisma and not note.is_hyphen:
            start = right_edge + note.lyrics_horizontal_offset / 2 + self.page_setup.lyrics_melisma_spacing
            line_y = top + self.metrics.height_of_string(font_key, note.lyrics, size)
            instructions.append(
                DrawLine(
                    x1=to_pt(start),
                    y1=line_y,
                    x2=to_pt(start + note.melisma_width),
                    y2=line_y,
                    line_width=to_pt(self.page_setup.lyrics_melisma_thickness),
                    color=style.color,
                )
            )
        elif note.is_melisma and note.is_hyphen:
            for hyphen_offset in note.hyphen_offsets:
                instructions.append(
                    self._text(
                        "-",
                        to_pt(right_edge + note.lyrics_horizontal_offset + hyphen_offset),
                        top,
                        font_key,
                        size,
                        style.color,
                    )
                )

        return cursor, instructions

    # ------------------------------------------------------------------
    # Other elements
    # ------------------------------------------------------------------

    def render_martyria(self, martyria: MartyriaElement) -> list[DrawInstruction]:
        x = to_pt(martyria.x)
        y = to_pt(martyria.y)
        setup = self.page_setup
        instructions: list[DrawInstruction] = []

        if martyria.measure_bar_left:
            instructions.append(self._neume_text(martyria.measure_bar_left, x, y, setup.measure_bar_default_color))

        text = self.mapper.get_mapping(martyria.note).text + self.mapper.get_mapping(martyria.root_sign).text
        instructions.append(
            self._text(text, x, y, self.neume_font, self.neume_font_size, setup.martyria_default_color)
        )

        # The right bar sits at the element width, not at a tracked cursor.
        if martyria.measure_bar_right:
            instructions.append(
                self._neume_text(
                    martyria.measure_bar_right,
                    to_pt(martyria.x + martyria.neume_width),
                    y,
                    setup.measure_bar_default_color,
                )
            )
        return instructions

    def mode_key_text(self, mode_key: ModeKeyElement) -> str:
        """Concatenate the mode key signs in their fixed order."""
        parts: list[str | None] = [
            ModeSign.EKHOS,
            ModeSign.PLAGAL if mode_key.is_plagal else None,
            ModeSign.VARYS if mode_key.is_varys else None,
            mode_key.martyria,
            mode_key.note,
            mode_key.fthora_above_note,
            mode_key.quantitative_neume_above_note,
            mode_key.note2,
            mode_key.fthora_above_note2,
            mode_key.quantitative_neume_above_note2,
            mode_key.quantitative_neume_right,
            mode_key.fthora_above_quantitative_neume_right,
        ]
        return "".join(self.mapper.get_mapping(neume).text for neume in parts if neume)

    def render_mode_key(self, mode_key: ModeKeyElement) -> list[DrawInstruction]:
        size = to_pt(mode_key.computed_font_size(self.page_setup))
        text = self.mode_key_text(mode_key)
        width = to_pt(mode_key.width)
        features = STYLISTIC_ALTERNATES if self.mapper.get_mapping(mode_key.martyria).salt else ()
        text_width = self.metrics.text_width(self.neume_font, text, size, features)

        return [
            self._text(
                text,
                to_pt(mode_key.x) + (width - text_width) / 2,
                to_pt(mode_key.y),
                self.neume_font,
                size,
                mode_key.computed_color(self.page_setup),
                features=features,
            )
        ]

    def render_text_box(self, text_box: TextBoxElement) -> list[DrawInstruction]:
        if text_box.content == "":
            return []

        style = text_box.computed_style(self.page_setup)
        font_key = styled_family(style.font_family, bold=style.bold, italic=style.italic)
        size = to_pt(style.font_size)
        width = to_pt(text_box.width)
        x = to_pt(text_box.x)
        y = to_pt(text_box.y) + (1.2 * size + 2) / 4

        instructions: list[DrawInstruction] = []
        for line in self.wrap_lines(text_box.content, font_key, size, width):
            line_width = self.metrics.text_width(font_key, line, size)
            if text_box.alignment == "center":
                line_x = x + (width - line_width) / 2
            elif text_box.alignment == "right":
                line_x = x + width - line_width
            else:
                line_x = x
            instructions.append(
                self._text(line, line_x, y, font_key, size, style.color, underline=style.underline)
            )
            y += self.metrics.height_of_string(font_key, line, size)
        return instructions

    def wrap_lines(self, content: str, font_key: str, size: float, width: float) -> list[str]:
        """
        Break ``content`` into lines that fit ``width`` points.

        Explicit newlines always break. A paragraph that fits is kept as
        written; otherwise words are joined greedily with single spaces and a
        word wider than the box gets a line of its own. A box without a width
        never wraps.
        """
        paragraphs = content.split("\n")
        if width <= 0:
            return paragraphs

        lines: list[str] = []
        for paragraph in paragraphs:
            if self.metrics.text_width(font_key, paragraph, size) <= width:
                lines.append(paragraph)
                continue
            current = ""
            for word in paragraph.split():
                candidate = f"{current} {word}" if current else word
                if current and self.metrics.text_width(font_key, candidate, size) > width:
                    lines.append(current)
                    current = word
                else:
                    current = candidate
            lines.append(current)
        return lines

    def render_drop_cap(self, drop_cap: DropCapElement) -> list[DrawInstruction]:
        style = drop_cap.computed_style(self.page_setup)
        font_key = styled_family(style.font_family, bold=style.bold, italic=style.italic)
        size = to_pt(style.font_size)

        font_height = to_pt(style.font_size * drop_cap.computed_line_height(self.page_setup))
        # Measured on the trimmed content; the untrimmed content is drawn.
        text_height = self.metrics.height_of_string(font_key, drop_cap.content.strip(), size)

        return [
            self._text(
                drop_cap.content,
                to_pt(drop_cap.x),
                to_pt(drop_cap.y) + (font_height - text_height) / 2,
                font_key,
                size,
                style.color,
            )
        ]

    def render_empty(self, element: EmptyElement) -> list[DrawInstruction]:
        return []

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _neume_text(self, neume: str, x: float, y: float, color: str) -> DrawText:
        return self._text(
            self.mapper.get_mapping(neume).text, x, y, self.neume_font, self.neume_font_size, color
        )

    def _text(
        self,
        text: str,
        x: float,
        y: float,
        font_key: str,
        font_size: float,
        color: str,
        *,
        features: tuple[str, ...] = (),
        underline: bool = False,
    ) -> DrawText:
        self.registry.require(font_key)
        return DrawText(
            text=text,
            x=x,
            y=y,
            font_key=font_key,
            font_size=font_size,
            color=color,
            features=features,
            underline=underline,
        )


#: Renderer for every element variant. Empty elements draw nothing.
ELEMENT_RENDERERS: Final[dict[ElementType, Callable[[GlyphComposer, Any], list[DrawInstruction]]]] = {
    ElementType.NOTE: GlyphComposer.render_note,
    ElementType.MARTYRIA: GlyphComposer.render_martyria,
    ElementType.MODE_KEY: GlyphComposer.render_mode_key,
    ElementType.TEXT_BOX: GlyphComposer.render_text_box,
    ElementType.DROP_CAP: GlyphComposer.render_drop_cap,
    ElementType.EMPTY: GlyphComposer.render_empty,
}
