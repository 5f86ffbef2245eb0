"""Data models for a laid-out chant score.

Coordinates, widths and font sizes are CSS pixels as produced by the layout
stage. Mark offsets are in em units of the neume font. Instances are never
mutated once loaded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

RED = "#ED0000"
BLACK = "#000000"


class ElementType(str, Enum):
    NOTE = "Note"
    MARTYRIA = "Martyria"
    MODE_KEY = "ModeKey"
    TEXT_BOX = "TextBox"
    DROP_CAP = "DropCap"
    EMPTY = "Empty"


@dataclass(frozen=True)
class Offset:
    """Explicit per-instance mark offset, in em units."""

    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class PageSetup:
    """Document-wide default styles."""

    neume_default_font_family: str = "Neanes"
    neume_default_font_size: float = 26.666666666666668
    neume_default_color: str = BLACK

    lyrics_default_font_family: str = "Source Serif"
    lyrics_default_font_size: float = 16.0
    lyrics_default_color: str = BLACK
    lyrics_default_font_weight: str = "400"
    lyrics_default_font_style: str = "normal"
    lyrics_melisma_thickness: float = 1.0
    lyrics_melisma_spacing: float = 0.0

    text_box_default_font_family: str = "Source Serif"
    text_box_default_font_size: float = 16.0
    text_box_default_color: str = BLACK
    text_box_default_font_weight: str = "400"
    text_box_default_font_style: str = "normal"

    drop_cap_default_font_family: str = "Source Serif"
    drop_cap_default_font_size: float = 80.0
    drop_cap_default_color: str = RED
    drop_cap_default_font_weight: str = "400"
    drop_cap_default_font_style: str = "normal"
    drop_cap_default_line_height: float = 1.2

    mode_key_default_font_size: float = 26.666666666666668
    mode_key_default_color: str = RED

    accidental_default_color: str = RED
    fthora_default_color: str = RED
    gorgon_default_color: str = RED
    heteron_default_color: str = RED
    ison_default_color: str = RED
    koronis_default_color: str = RED
    martyria_default_color: str = RED
    measure_bar_default_color: str = RED
    measure_number_default_color: str = BLACK
    note_indicator_default_color: str = RED


@dataclass(frozen=True)
class NoteElement:
    quantitative_neume: str
    x: float = 0.0
    y: float = 0.0
    neume_width: float = 0.0

    vocal_expression_neume: str | None = None
    vocal_expression_neume_offset: Offset | None = None
    accidental: str | None = None
    accidental_offset: Offset | None = None
    secondary_accidental: str | None = None
    secondary_accidental_offset: Offset | None = None
    tertiary_accidental: str | None = None
    tertiary_accidental_offset: Offset | None = None
    fthora: str | None = None
    fthora_offset: Offset | None = None
    secondary_fthora: str | None = None
    secondary_fthora_offset: Offset | None = None
    tertiary_fthora: str | None = None
    tertiary_fthora_offset: Offset | None = None
    gorgon_neume: str | None = None
    gorgon_neume_offset: Offset | None = None
    secondary_gorgon_neume: str | None = None
    secondary_gorgon_neume_offset: Offset | None = None
    time_neume: str | None = None
    time_neume_offset: Offset | None = None
    koronis: bool = False
    koronis_offset: Offset | None = None
    note_indicator: bool = False
    note_indicator_neume: str | None = None
    note_indicator_offset: Offset | None = None
    ison: str | None = None
    ison_offset: Offset | None = None
    measure_number: str | None = None
    measure_number_offset: Offset | None = None
    tie: str | None = None
    tie_offset: Offset | None = None
    measure_bar_left: str | None = None
    measure_bar_right: str | None = None
    vareia: bool = False

    lyrics: str = ""
    lyrics_use_default_style: bool = True
    lyrics_font_family: str = ""
    lyrics_font_size: float = 0.0
    lyrics_color: str = BLACK
    lyrics_font_weight: str = "400"
    lyrics_font_style: str = "normal"
    lyrics_text_decoration: str = "none"
    lyrics_width: float = 0.0
    lyrics_horizontal_offset: float = 0.0
    lyrics_vertical_offset: float = 0.0
    is_melisma: bool = False
    is_hyphen: bool = False
    hyphen_offsets: tuple[float, ...] = ()
    melisma_width: float = 0.0

    @property
    def element_type(self) -> ElementType:
        return ElementType.NOTE


@dataclass(frozen=True)
class MartyriaElement:
    note: str
    root_sign: str
    x: float = 0.0
    y: float = 0.0
    neume_width: float = 0.0
    measure_bar_left: str | None = None
    measure_bar_right: str | None = None

    @property
    def element_type(self) -> ElementType:
        return ElementType.MARTYRIA


@dataclass(frozen=True)
class ModeKeyElement:
    martyria: str
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    is_plagal: bool = False
    is_varys: bool = False
    note: str | None = None
    fthora_above_note: str | None = None
    quantitative_neume_above_note: str | None = None
    note2: str | None = None
    fthora_above_note2: str | None = None
    quantitative_neume_above_note2: str | None = None
    quantitative_neume_right: str | None = None
    fthora_above_quantitative_neume_right: str | None = None
    use_default_style: bool = True
    font_size: float = 0.0
    color: str = RED

    @property
    def element_type(self) -> ElementType:
        return ElementType.MODE_KEY

    def computed_font_size(self, page_setup: PageSetup) -> float:
        if self.use_default_style:
            return page_setup.mode_key_default_font_size
        return self.font_size

    def computed_color(self, page_setup: PageSetup) -> str:
        return page_setup.mode_key_default_color if self.use_default_style else self.color


@dataclass(frozen=True)
class TextStyle:
    """Effective text style after page defaults are applied."""

    font_family: str
    font_size: float
    color: str
    bold: bool = False
    italic: bool = False
    underline: bool = False


@dataclass(frozen=True)
class TextBoxElement:
    content: str = ""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    alignment: str = "left"
    use_default_style: bool = True
    font_family: str = ""
    font_size: float = 0.0
    color: str = BLACK
    bold: bool = False
    italic: bool = False
    underline: bool = False

    @property
    def element_type(self) -> ElementType:
        return ElementType.TEXT_BOX

    def computed_style(self, page_setup: PageSetup) -> TextStyle:
        if self.use_default_style:
            return TextStyle(
                font_family=page_setup.text_box_default_font_family,
                font_size=page_setup.text_box_default_font_size,
                color=page_setup.text_box_default_color,
                bold=page_setup.text_box_default_font_weight == "700",
                italic=page_setup.text_box_default_font_style == "italic",
            )
        return TextStyle(
            font_family=self.font_family,
            font_size=self.font_size,
            color=self.color,
            bold=self.bold,
            italic=self.italic,
            underline=self.underline,
        )


@dataclass(frozen=True)
class DropCapElement:
    content: str = ""
    x: float = 0.0
    y: float = 0.0
    use_default_style: bool = True
    font_family: str = ""
    font_size: float = 0.0
    color: str = RED
    font_weight: str = "400"
    font_style: str = "normal"
    line_height: float | None = None

    @property
    def element_type(self) -> ElementType:
        return ElementType.DROP_CAP

    def computed_style(self, page_setup: PageSetup) -> TextStyle:
        if self.use_default_style:
            return TextStyle(
                font_family=page_setup.drop_cap_default_font_family,
                font_size=page_setup.drop_cap_default_font_size,
                color=page_setup.drop_cap_default_color,
                bold=page_setup.drop_cap_default_font_weight == "700",
                italic=page_setup.drop_cap_default_font_style == "italic",
            )
        return TextStyle(
            font_family=self.font_family,
            font_size=self.font_size,
            color=self.color,
            bold=self.font_weight == "700",
            italic=self.font_style == "italic",
        )

    def computed_line_height(self, page_setup: PageSetup) -> float:
        if self.use_default_style or self.line_height is None:
            return page_setup.drop_cap_default_line_height
        return self.line_height


@dataclass(frozen=True)
class EmptyElement:
    x: float = 0.0
    y: float = 0.0

    @property
    def element_type(self) -> ElementType:
        return ElementType.EMPTY


@dataclass(frozen=True)
class UnsupportedElement:
    """An element whose type tag this renderer does not know."""

    element_type: str
    x: float = 0.0
    y: float = 0.0


ScoreElement = (
    NoteElement
    | MartyriaElement
    | ModeKeyElement
    | TextBoxElement
    | DropCapElement
    | EmptyElement
    | UnsupportedElement
)


def lyrics_style(note: NoteElement, page_setup: PageSetup) -> TextStyle:
    """Return the effective lyric style of a note."""
    if note.lyrics_use_default_style:
        return TextStyle(
            font_family=page_setup.lyrics_default_font_family,
            font_size=page_setup.lyrics_default_font_size,
            color=page_setup.lyrics_default_color,
            bold=page_setup.lyrics_default_font_weight == "700",
            italic=page_setup.lyrics_default_font_style == "italic",
        )
    return TextStyle(
        font_family=note.lyrics_font_family,
        font_size=note.lyrics_font_size,
        color=note.lyrics_color,
        bold=note.lyrics_font_weight == "700",
        italic=note.lyrics_font_style == "italic",
        underline=note.lyrics_text_decoration == "underline",
    )


@dataclass(frozen=True)
class Staff:
    elements: list[ScoreElement] = field(default_factory=list)


@dataclass(frozen=True)
class Score:
    page_setup: PageSetup = field(default_factory=PageSetup)
    staff: Staff = field(default_factory=Staff)


@dataclass(frozen=True)
class Line:
    elements: list[ScoreElement] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """A line is empty if it holds only the empty element."""
        return len(self.elements) == 1 and isinstance(self.elements[0], EmptyElement)


@dataclass(frozen=True)
class Page:
    lines: list[Line] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """A page is empty if it holds a single empty line."""
        return len(self.lines) == 1 and self.lines[0].is_empty
