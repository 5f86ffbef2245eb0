"""Tests for neanespdf.glyph_composer."""

import pytest

from neanespdf.draw_instructions import DrawLine, DrawText, NewPage
from neanespdf.font_metrics import FontMetricsSource
from neanespdf.font_registry import FontNotRegisteredError, FontRegistry
from neanespdf.glyph_composer import ELEMENT_RENDERERS, STYLISTIC_ALTERNATES, GlyphComposer
from neanespdf.neumes import NeumeMapper, NeumeMapping, default_glyph_name
from neanespdf.score_models import (
    DropCapElement,
    ElementType,
    EmptyElement,
    Line,
    MartyriaElement,
    ModeKeyElement,
    NoteElement,
    Offset,
    Page,
    PageSetup,
    TextBoxElement,
    UnsupportedElement,
)
from neanespdf.units import to_px

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeMapper(NeumeMapper):
    """Hand out a private-use character per neume, in first-seen order."""

    def __init__(self, salted=()):
        self.salted = set(salted)
        self._mappings = {}

    def get_mapping(self, neume):
        if neume not in self._mappings:
            self._mappings[neume] = NeumeMapping(
                text=chr(0xE000 + len(self._mappings)),
                glyph_name=default_glyph_name(neume),
                salt=neume in self.salted,
            )
        return self._mappings[neume]

    def text(self, neume):
        return self.get_mapping(neume).text


class FakeMetrics(FontMetricsSource):
    ADVANCES = {"oligon": 0.6, "barlineSingle": 0.25, "vareia": 0.2}
    ANCHORS = {("oligon", "gorgonAbove"): (0.1, -0.2)}

    def advance_width(self, font_key, glyph_name):
        return self.ADVANCES.get(glyph_name, 0.0)

    def mark_anchor_offset(self, font_key, base_glyph, mark_glyph):
        return self.ANCHORS.get((base_glyph, mark_glyph), (0.0, 0.0))

    def text_width(self, font_key, text, size, features=()):
        # Alternates are drawn wider than the default forms.
        return len(text) * (0.75 if features else 0.5) * size

    def height_of_string(self, font_key, text, size):
        return max(1, len(text.split("\n"))) * 1.2 * size

    def ascent(self, font_key, size):
        return 0.8 * size


def make_registry(*keys):
    registry = FontRegistry()
    for key in keys or ("Neanes", "Source Serif"):
        registry.register_font(key, b"font")
    return registry


def make_composer(mapper=None, registry=None, page_setup=None):
    return GlyphComposer(
        page_setup or PageSetup(),
        mapper or FakeMapper(),
        FakeMetrics(),
        registry or make_registry(),
    )


def note_at(x_pt, y_pt, **kwargs):
    return NoteElement(quantitative_neume="Oligon", x=to_px(x_pt), y=to_px(y_pt), **kwargs)


def texts(instructions):
    return [draw for draw in instructions if isinstance(draw, DrawText)]


# ---------------------------------------------------------------------------
# Mark positioning
# ---------------------------------------------------------------------------


def test_neume_font_size_is_converted_to_points() -> None:
    composer = make_composer()
    assert composer.neume_font_size == pytest.approx(20.0)


def test_gorgon_is_drawn_at_its_anchor() -> None:
    composer = make_composer()
    mapper = composer.mapper

    base, gorgon = composer.render_note(note_at(100, 200, gorgon_neume="GorgonAbove"))

    assert base.text == mapper.text("Oligon")
    assert (base.x, base.y) == pytest.approx((100, 200))
    assert gorgon.text == mapper.text("GorgonAbove")
    assert (gorgon.x, gorgon.y) == pytest.approx((102, 196))
    assert gorgon.font_key == "Neanes"
    assert gorgon.font_size == pytest.approx(20)


def test_explicit_offset_is_added_to_the_anchor() -> None:
    composer = make_composer()
    note = note_at(100, 200, gorgon_neume="GorgonAbove", gorgon_neume_offset=Offset(x=0.05, y=0.1))

    _, gorgon = composer.render_note(note)

    assert (gorgon.x, gorgon.y) == pytest.approx((103, 198))


def test_marks_move_with_the_note() -> None:
    composer = make_composer()
    _, here = composer.render_note(note_at(100, 200, gorgon_neume="GorgonAbove"))
    _, there = composer.render_note(note_at(130, 150, gorgon_neume="GorgonAbove"))

    assert there.x - here.x == pytest.approx(30)
    assert there.y - here.y == pytest.approx(-50)


def test_mark_without_anchor_sits_on_the_note_origin() -> None:
    composer = make_composer()
    _, ison = composer.render_note(note_at(100, 200, ison="Ison"))

    assert (ison.x, ison.y) == pytest.approx((100, 200))
    assert ison.color == PageSetup().ison_default_color


def test_left_bar_and_vareia_shift_base_and_marks() -> None:
    composer = make_composer()
    note = note_at(100, 200, measure_bar_left="BarlineSingle", vareia=True, gorgon_neume="GorgonAbove")

    bar, vareia, base, gorgon = composer.render_note(note)

    assert bar.x == pytest.approx(100)
    assert bar.color == PageSetup().measure_bar_default_color
    assert vareia.x == pytest.approx(105)
    assert vareia.text == composer.mapper.text("Vareia")
    assert base.x == pytest.approx(109)
    assert gorgon.x == pytest.approx(100 + (0.1 + 0.45) * 20)


def test_right_bar_uses_the_reference_multiplier() -> None:
    composer = make_composer()
    _, bar = composer.render_note(note_at(100, 200, measure_bar_right="BarlineSingle"))

    assert bar.x == pytest.approx(100 + 0.6 * 20)
    assert bar.y == pytest.approx(200)


def test_note_steps_emit_in_fixed_order() -> None:
    composer = make_composer()
    mapper = composer.mapper
    note = note_at(
        100,
        200,
        measure_bar_left="BarlineSingle",
        vareia=True,
        gorgon_neume="GorgonAbove",
        measure_bar_right="BarlineDouble",
        tie="YfenBelow",
        lyrics="a",
    )

    drawn = composer.render_note(note)

    assert [draw.text for draw in drawn] == [
        mapper.text("BarlineSingle"),
        mapper.text("Vareia"),
        mapper.text("Oligon"),
        mapper.text("GorgonAbove"),
        mapper.text("BarlineDouble"),
        mapper.text("YfenBelow"),
        "a",
    ]


def test_mark_slots_follow_the_fixed_order() -> None:
    composer = make_composer()
    setup = PageSetup()
    note = NoteElement(
        quantitative_neume="Oligon",
        measure_number="MeasureNumber2",
        ison="Ison",
        note_indicator=True,
        note_indicator_neume="NoteIndicatorDi",
        fthora="DiatonicNiLow",
        accidental="Flat2",
        koronis=True,
        time_neume="Klasma",
        gorgon_neume="GorgonAbove",
        vocal_expression_neume="Heteron",
    )

    slots = composer.mark_slots(note)

    assert [neume for neume, _, _ in slots] == [
        "Heteron",
        "GorgonAbove",
        "Klasma",
        "Koronis",
        "Flat2",
        "DiatonicNiLow",
        "NoteIndicatorDi",
        "Ison",
        "MeasureNumber2",
    ]
    assert slots[0][2] == setup.heteron_default_color
    assert slots[2][2] == setup.neume_default_color
    assert slots[-1][2] == setup.measure_number_default_color


def test_note_indicator_needs_its_flag() -> None:
    composer = make_composer()
    note = NoteElement(quantitative_neume="Oligon", note_indicator_neume="NoteIndicatorDi")

    assert composer.mark_slots(note) == []


def test_plain_vocal_expression_joins_the_base_run() -> None:
    composer = make_composer()
    mapper = composer.mapper

    drawn = composer.render_note(note_at(0, 0, vocal_expression_neume="Psifiston"))

    assert len(drawn) == 1
    assert drawn[0].text == mapper.text("Oligon") + mapper.text("Psifiston")


# ---------------------------------------------------------------------------
# Lyrics
# ---------------------------------------------------------------------------


def lyric_note(**kwargs):
    return NoteElement(
        quantitative_neume="Oligon",
        x=40,
        y=80,
        neume_width=20,
        lyrics="a",
        lyrics_width=16,
        lyrics_horizontal_offset=4,
        **kwargs,
    )


def test_lyrics_are_centered_under_the_neume() -> None:
    composer = make_composer()
    lyric = composer.render_note(lyric_note())[-1]

    assert lyric.text == "a"
    assert (lyric.x, lyric.y) == pytest.approx((33, 60))
    assert lyric.font_key == "Source Serif"
    assert lyric.font_size == pytest.approx(12)


def test_melisma_line_runs_past_the_lyric() -> None:
    composer = make_composer()
    line = composer.render_note(lyric_note(is_melisma=True, melisma_width=24))[-1]

    assert isinstance(line, DrawLine)
    assert (line.x1, line.x2) == pytest.approx((45, 63))
    assert line.y1 == line.y2 == pytest.approx(60 + 14.4)
    assert line.line_width == pytest.approx(0.75)
    assert line.color == PageSetup().lyrics_default_color


def test_hyphens_are_drawn_at_each_offset() -> None:
    composer = make_composer()
    drawn = composer.render_note(lyric_note(is_melisma=True, is_hyphen=True, hyphen_offsets=(0, 10)))

    hyphens = [draw for draw in texts(drawn) if draw.text == "-"]
    assert [draw.x for draw in hyphens] == pytest.approx([46.5, 54])
    # Each hyphen fits inside the 12pt lyric width.
    assert all(composer.metrics.text_width(draw.font_key, draw.text, draw.font_size) <= 12 for draw in hyphens)


def test_custom_lyric_style_selects_the_styled_font() -> None:
    composer = make_composer(registry=make_registry("Neanes", "Omega Italic Bold"))
    note = lyric_note(
        lyrics_use_default_style=False,
        lyrics_font_family="Omega",
        lyrics_font_size=20,
        lyrics_font_weight="700",
        lyrics_font_style="italic",
        lyrics_text_decoration="underline",
        lyrics_color="#112233",
    )

    lyric = composer.render_note(note)[-1]

    assert lyric.font_key == "Omega Italic Bold"
    assert lyric.underline is True
    assert lyric.color == "#112233"


def test_unregistered_font_is_fatal() -> None:
    composer = make_composer()
    note = lyric_note(lyrics_use_default_style=False, lyrics_font_family="Missing", lyrics_font_size=16)

    with pytest.raises(FontNotRegisteredError, match="Missing"):
        composer.render_note(note)


# ---------------------------------------------------------------------------
# Other elements
# ---------------------------------------------------------------------------


def test_martyria_right_bar_sits_at_the_element_width() -> None:
    composer = make_composer()
    mapper = composer.mapper
    martyria = MartyriaElement(
        note="MartyriaNoteDi",
        root_sign="MartyriaRootSignDelta",
        x=to_px(50),
        y=to_px(60),
        neume_width=to_px(30),
        measure_bar_left="BarlineSingle",
        measure_bar_right="BarlineSingle",
    )

    left, body, right = composer.render_martyria(martyria)

    assert body.text == mapper.text("MartyriaNoteDi") + mapper.text("MartyriaRootSignDelta")
    assert body.color == PageSetup().martyria_default_color
    assert left.x == pytest.approx(50)
    assert right.x == pytest.approx(80)


def test_mode_key_text_order() -> None:
    composer = make_composer()
    mapper = composer.mapper
    mode_key = ModeKeyElement(martyria="ModeFirst", is_plagal=True, note="ModeNoteDi")

    assert composer.mode_key_text(mode_key) == "".join(
        mapper.text(neume) for neume in ("ModeWordEchos", "ModePlagal", "ModeFirst", "ModeNoteDi")
    )


def test_mode_key_is_centered_and_uses_alternates() -> None:
    composer = make_composer(mapper=FakeMapper(salted={"ModeFirst"}))
    mode_key = ModeKeyElement(martyria="ModeFirst", x=to_px(10), y=to_px(20), width=to_px(100))

    (draw,) = composer.render_mode_key(mode_key)

    assert draw.features == STYLISTIC_ALTERNATES
    assert draw.font_size == pytest.approx(20)
    # Two alternate characters at 0.75 em each.
    assert draw.x == pytest.approx(10 + (100 - 30) / 2)
    assert draw.color == PageSetup().mode_key_default_color


def test_empty_text_box_draws_nothing() -> None:
    assert make_composer().render_text_box(TextBoxElement(content="")) == []


def test_text_box_lines_are_aligned() -> None:
    composer = make_composer()
    text_box = TextBoxElement(content="ab\na", x=0, y=0, width=to_px(60), alignment="center")

    first, second = composer.render_text_box(text_box)

    size = 12.0
    assert first.x == pytest.approx((60 - 2 * 0.5 * size) / 2)
    assert second.x == pytest.approx((60 - 0.5 * size) / 2)
    assert first.y == pytest.approx((1.2 * size + 2) / 4)
    assert second.y - first.y == pytest.approx(1.2 * size)


def test_mode_key_without_alternates_is_measured_plain() -> None:
    composer = make_composer()
    mode_key = ModeKeyElement(martyria="ModeFirst", x=to_px(10), width=to_px(100))

    (draw,) = composer.render_mode_key(mode_key)

    assert draw.features == ()
    assert draw.x == pytest.approx(10 + (100 - 20) / 2)


def test_text_box_wraps_words_to_its_width() -> None:
    composer = make_composer()
    # 6pt per character at the 12pt default size.
    text_box = TextBoxElement(content="aa aa aa\nb", x=0, y=0, width=to_px(30), alignment="right")

    instructions = composer.render_text_box(text_box)

    assert [draw.text for draw in instructions] == ["aa aa", "aa", "b"]
    assert [draw.x for draw in instructions] == pytest.approx([0, 18, 24])


def test_text_box_word_wider_than_the_box_keeps_its_own_line() -> None:
    composer = make_composer()

    assert composer.wrap_lines("a abcdefgh a", "Source Serif", 12.0, 30.0) == ["a", "abcdefgh", "a"]


def test_text_box_without_width_does_not_wrap() -> None:
    composer = make_composer()

    assert composer.wrap_lines("aa aa aa\n", "Source Serif", 12.0, 0.0) == ["aa aa aa", ""]


def test_drop_cap_is_vertically_centered() -> None:
    composer = make_composer()
    drop_cap = DropCapElement(content=" A ", x=0, y=0)

    (draw,) = composer.render_drop_cap(drop_cap)

    size = 60.0
    assert draw.text == " A "
    assert draw.y == pytest.approx((size * 1.2 - 1.2 * size) / 2)
    assert draw.color == PageSetup().drop_cap_default_color


# ---------------------------------------------------------------------------
# Pages and dispatch
# ---------------------------------------------------------------------------


def test_every_element_type_has_a_renderer() -> None:
    assert set(ELEMENT_RENDERERS) == set(ElementType)


def test_only_multi_line_pages_after_the_first_start_a_new_page() -> None:
    composer = make_composer()
    two_lines = Page(lines=[Line(elements=[EmptyElement()]), Line(elements=[EmptyElement()])])
    one_line = Page(lines=[Line(elements=[EmptyElement()])])

    instructions = composer.compose([two_lines, one_line, two_lines])

    assert instructions == [NewPage()]


def test_empty_pages_do_not_count_as_the_first_page() -> None:
    composer = make_composer()
    empty = Page(lines=[Line(elements=[EmptyElement()])])
    two_lines = Page(lines=[Line(elements=[note_at(0, 0)]), Line(elements=[EmptyElement()])])

    instructions = composer.compose([empty, two_lines, empty, two_lines])

    assert empty.is_empty and two_lines.lines[1].is_empty
    assert [type(draw) for draw in instructions] == [DrawText, NewPage, DrawText]


def test_unsupported_elements_are_skipped_and_counted() -> None:
    composer = make_composer()
    page = Page(lines=[Line(elements=[UnsupportedElement(element_type="Tempo"), note_at(0, 0)])])

    instructions = composer.compose([page])

    assert len(instructions) == 1
    assert composer.skipped_elements == 1
