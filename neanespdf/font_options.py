"""Font requests and the per-score font requirement collector."""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass

from neanespdf.score_models import (
    DropCapElement,
    NoteElement,
    PageSetup,
    Score,
    ScoreElement,
    TextBoxElement,
    lyrics_style,
)


def styled_family(family: str, bold: bool = False, italic: bool = False) -> str:
    """Family name that text is drawn with: ``family [Italic] [Bold]``."""
    name = family
    if italic:
        name += " Italic"
    if bold:
        name += " Bold"
    return name


@dataclass(frozen=True)
class FontOptions:
    """A logical font request."""

    font_family: str
    bold: bool = False
    italic: bool = False
    underline: bool = False

    @property
    def key(self) -> str:
        """Canonical registry key: ``family [Bold] [Italic] [Underline]``."""
        key = self.font_family
        if self.bold:
            key += " Bold"
        if self.italic:
            key += " Italic"
        if self.underline:
            key += " Underline"
        return key

    @property
    def draw_family(self) -> str:
        """Family key the composer draws this style with."""
        return styled_family(self.font_family, bold=self.bold, italic=self.italic)


def font_options_from_element(element: ScoreElement) -> FontOptions:
    """Return the font request of an element that overrides the default style."""
    if isinstance(element, TextBoxElement):
        return FontOptions(
            font_family=element.font_family,
            bold=element.bold,
            italic=element.italic,
            underline=element.underline,
        )
    if isinstance(element, DropCapElement):
        return FontOptions(
            font_family=element.font_family,
            bold=element.font_weight == "700",
            italic=element.font_style == "italic",
        )
    if isinstance(element, NoteElement):
        return FontOptions(
            font_family=element.lyrics_font_family,
            bold=element.lyrics_font_weight == "700",
            italic=element.lyrics_font_style == "italic",
            underline=element.lyrics_text_decoration == "underline",
        )
    raise TypeError(f"Unsupported type {element.element_type}")


def font_options_from_page_setup(page_setup: PageSetup) -> list[FontOptions]:
    """Return the four default requests: drop cap, text box, lyrics, neumes."""
    drop_cap = FontOptions(
        font_family=page_setup.drop_cap_default_font_family,
        bold=page_setup.drop_cap_default_font_weight == "700",
        italic=page_setup.drop_cap_default_font_style == "italic",
    )
    text_box = FontOptions(
        font_family=page_setup.text_box_default_font_family,
        bold=page_setup.text_box_default_font_weight == "700",
        italic=page_setup.text_box_default_font_style == "italic",
    )
    default_lyrics = lyrics_style(NoteElement(quantitative_neume=""), page_setup)
    lyrics = FontOptions(
        font_family=default_lyrics.font_family,
        bold=default_lyrics.bold,
        italic=default_lyrics.italic,
    )
    neumes = FontOptions(font_family=page_setup.neume_default_font_family)
    return [drop_cap, text_box, lyrics, neumes]


def _overrides_default_style(element: ScoreElement) -> bool:
    if isinstance(element, (TextBoxElement, DropCapElement)):
        return not element.use_default_style
    if isinstance(element, NoteElement):
        return not element.lyrics_use_default_style
    return False


def collect_font_requirements(
    score: Score,
    exclude: Collection[str] = (),
) -> list[FontOptions]:
    """
    Scan a score once and return the fonts the document needs.

    Page-setup defaults come first, then every text box, drop cap and note
    that overrides the default style, in document order. Requests are
    deduplicated by key (first occurrence wins); keys in ``exclude`` are
    dropped.
    """
    requirements: dict[str, FontOptions] = {}

    for options in font_options_from_page_setup(score.page_setup):
        requirements.setdefault(options.key, options)

    for element in score.staff.elements:
        if _overrides_default_style(element):
            options = font_options_from_element(element)
            requirements.setdefault(options.key, options)

    return [options for key, options in requirements.items() if key not in exclude]
