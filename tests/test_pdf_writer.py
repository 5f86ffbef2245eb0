"""Tests for neanespdf.pdf_writer."""

import pymupdf
import pytest

from neanespdf.draw_instructions import DrawLine, DrawText, NewPage
from neanespdf.font_metrics import RegistryFontMetrics
from neanespdf.font_registry import FontNotRegisteredError, FontRegistry
from neanespdf.pdf_writer import PyMuPdfWriter, hex_to_rgb


@pytest.fixture()
def writer(test_font_bytes):
    registry = FontRegistry()
    registry.register_font("Neanes", test_font_bytes)
    return PyMuPdfWriter(registry, RegistryFontMetrics(registry), (612.0, 792.0))


def draw(text="\ue000", **kwargs):
    values = dict(text=text, x=72, y=72, font_key="Neanes", font_size=20, color="#ED0000")
    values.update(kwargs)
    return DrawText(**values)


@pytest.mark.parametrize(
    "color, expected",
    [("#000000", (0.0, 0.0, 0.0)), ("#ff0000", (1.0, 0.0, 0.0)), ("#fff", (1.0, 1.0, 1.0))],
)
def test_hex_to_rgb(color, expected) -> None:
    assert hex_to_rgb(color) == pytest.approx(expected)


@pytest.mark.parametrize("color", ["red", "orange", "#12", "#12345g", "+1+2+3"])
def test_hex_to_rgb_rejects_other_formats(color) -> None:
    with pytest.raises(ValueError, match="Unsupported color"):
        hex_to_rgb(color)


def test_default_extension(writer) -> None:
    assert writer.default_extension == ".pdf"


def test_empty_document_has_one_page(writer, tmp_path) -> None:
    output = tmp_path / "empty.pdf"
    assert writer.write([], output) == 1
    assert output.exists()


def test_new_page_starts_a_page(writer, tmp_path) -> None:
    output = tmp_path / "score.pdf"
    instructions = [
        draw(),
        DrawLine(x1=72, y1=100, x2=144, y2=100, line_width=0.75, color="#000000"),
        NewPage(),
        draw("\ue005", features=("salt",)),
        draw("a", underline=True, color="#000"),
    ]

    assert writer.write(instructions, output) == 2

    with pymupdf.open(output) as doc:
        assert doc.page_count == 2
        assert doc[0].rect.width == pytest.approx(612)
        assert doc[1].get_fonts()


def test_unregistered_font_is_fatal(writer, tmp_path) -> None:
    with pytest.raises(FontNotRegisteredError):
        writer.write([draw(font_key="Omega")], tmp_path / "score.pdf")
