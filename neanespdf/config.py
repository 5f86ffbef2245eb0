"""Render configuration shared by the CLI and the exporter."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

PACKAGE_DIR: Final[Path] = Path(__file__).resolve().parent

#: Directory searched for the bundled default fonts unless overridden.
DEFAULT_FONT_DIR: Final[Path] = PACKAGE_DIR / "assets"

DEFAULT_OUTPUT_PATH: Final[Path] = Path("output.pdf")

# Page sizes in PDF points (width, height)
PAGE_SIZES: Final[dict[str, tuple[float, float]]] = {
    "letter": (612.0, 792.0),
    "a4": (595.28, 841.89),
}

FONT_PROVIDERS: Final[tuple[str, ...]] = ("auto", "fontconfig", "powershell")

# Font files can be large; resolver output is capped at 100 MiB.
MAX_FONT_BYTES: Final[int] = 1024 * 1024 * 100


@dataclass(frozen=True)
class RenderConfig:
    """Settings for one document generation run."""

    output_path: Path = DEFAULT_OUTPUT_PATH
    page_size: str = "letter"
    font_dir: Path = DEFAULT_FONT_DIR
    font_provider: str = "auto"
    neume_map_path: Path | None = None
    max_font_bytes: int = MAX_FONT_BYTES
    resolver_timeout: float = 60.0
    max_workers: int = 4
    # Legacy multiplier for the right measure bar offset; every other offset
    # uses the active neume font size.
    right_bar_reference_size: float = 20.0
    extra_bundled_fonts: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.page_size not in PAGE_SIZES:
            supported = ", ".join(sorted(PAGE_SIZES))
            raise ValueError(f"Unsupported page size '{self.page_size}'. Use one of: {supported}.")
        if self.font_provider not in FONT_PROVIDERS:
            supported = ", ".join(FONT_PROVIDERS)
            raise ValueError(
                f"Unsupported font provider '{self.font_provider}'. Use one of: {supported}."
            )

    @property
    def page_dimensions(self) -> tuple[float, float]:
        return PAGE_SIZES[self.page_size]
