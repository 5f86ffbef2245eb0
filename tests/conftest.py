"""Shared fixtures: a small TrueType font built on the fly with fontTools."""

import io

import pytest
from fontTools.feaLib.builder import addOpenTypeFeaturesFromString
from fontTools.fontBuilder import FontBuilder
from fontTools.pens.ttGlyphPen import TTGlyphPen

from neanespdf.font_registry import DEFAULT_FONTS

UNITS_PER_EM = 1000

# glyph name -> (codepoint, advance width)
TEST_GLYPHS: dict[str, tuple[int | None, int]] = {
    ".notdef": (None, 500),
    "space": (0x20, 250),
    "hyphen": (0x2D, 300),
    "a": (0x61, 500),
    "oligon": (0xE000, 600),
    "gorgonAbove": (0xE001, 0),
    "barlineSingle": (0xE002, 250),
    "vareia": (0xE003, 200),
    "ison": (0xE004, 0),
    "martyriaNoteDi": (0xE005, 400),
    "martyriaNoteDi.salt": (0xE006, 450),
    "modeWordEchos": (0xE007, 700),
    "martyriaRootSignDelta": (0xE008, 300),
}

TEST_FEATURES = """
languagesystem DFLT dflt;

markClass gorgonAbove <anchor 100 -50> @TOP;

feature mark {
    pos base oligon <anchor 300 700> mark @TOP;
} mark;

feature salt {
    sub martyriaNoteDi by martyriaNoteDi.salt;
} salt;
"""


def _box_glyph(width: int):
    pen = TTGlyphPen(None)
    if width:
        pen.moveTo((0, 0))
        pen.lineTo((0, 500))
        pen.lineTo((width, 500))
        pen.lineTo((width, 0))
        pen.closePath()
    return pen.glyph()


def build_test_font(family: str = "Test Neumes") -> bytes:
    builder = FontBuilder(UNITS_PER_EM, isTTF=True)
    builder.setupGlyphOrder(list(TEST_GLYPHS))
    builder.setupCharacterMap(
        {codepoint: name for name, (codepoint, _) in TEST_GLYPHS.items() if codepoint is not None}
    )
    builder.setupGlyf({name: _box_glyph(advance) for name, (_, advance) in TEST_GLYPHS.items()})
    builder.setupHorizontalMetrics({name: (advance, 0) for name, (_, advance) in TEST_GLYPHS.items()})
    builder.setupHorizontalHeader(ascent=800, descent=-200)
    builder.setupNameTable(
        {
            "familyName": family,
            "styleName": "Regular",
            "fullName": f"{family} Regular",
            "psName": family.replace(" ", "") + "-Regular",
        }
    )
    builder.setupOS2(sTypoAscender=800, sTypoDescender=-200, usWinAscent=800, usWinDescent=200)
    builder.setupPost(underlinePosition=-100, underlineThickness=50)
    builder.setupMaxp()
    addOpenTypeFeaturesFromString(builder.font, TEST_FEATURES)

    buffer = io.BytesIO()
    builder.save(buffer)
    return buffer.getvalue()


@pytest.fixture(scope="session")
def test_font_bytes() -> bytes:
    return build_test_font()


@pytest.fixture()
def bundled_font_dir(tmp_path, test_font_bytes):
    """A font directory holding every bundled file, all backed by the test font."""
    fonts = tmp_path / "fonts"
    fonts.mkdir()
    for file_name in set(DEFAULT_FONTS.values()):
        (fonts / file_name).write_bytes(test_font_bytes)
    return fonts
