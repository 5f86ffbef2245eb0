"""Per-document font registry and its population."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Final

from neanespdf.font_options import FontOptions, collect_font_requirements
from neanespdf.font_providers import FontProvider
from neanespdf.score_models import Score

logger = logging.getLogger(__name__)

#: Fonts shipped with the renderer: registry key -> file name in the font dir.
DEFAULT_FONTS: Final[dict[str, str]] = {
    "Neanes": "Neanes.otf",
    "Omega": "EZ Omega.ttf",
    "Omega Italic": "EZ Omega.ttf",
    "Source Serif": "SourceSerif4-Regular.otf",
    "PFGoudyInitials": "PFGoudyInitials.ttf",
}


class FontNotRegisteredError(LookupError):
    """Raised when a font key is drawn with but was never registered."""


class FontRegistry:
    """
    Map canonical font keys to raw font data for one document.

    Filled once before composition and only read afterwards. Each generation
    run owns its own instance.
    """

    def __init__(self) -> None:
        self._fonts: dict[str, bytes] = {}

    def register_font(self, key: str, data: bytes) -> None:
        self._fonts[key] = data

    def get_font_data(self, key: str) -> bytes | None:
        return self._fonts.get(key)

    def require(self, key: str) -> bytes:
        """Return registered data or raise :class:`FontNotRegisteredError`."""
        try:
            return self._fonts[key]
        except KeyError:
            raise FontNotRegisteredError(f"Font '{key}' is not registered.") from None

    def keys(self) -> list[str]:
        return list(self._fonts)

    def __contains__(self, key: object) -> bool:
        return key in self._fonts

    def __len__(self) -> int:
        return len(self._fonts)

    def __iter__(self) -> Iterator[str]:
        return iter(self._fonts)


def _bundled_font_paths(bundled: Mapping[str, str], font_dir: Path) -> dict[str, Path]:
    paths: dict[str, Path] = {}
    for key, file_name in bundled.items():
        path = font_dir / file_name
        if not path.is_file():
            raise FileNotFoundError(
                f"Bundled font '{key}' not found at {path}; point --font-dir at the directory holding it."
            )
        paths[key] = path
    return paths


def build_font_registry(
    score: Score,
    provider: FontProvider,
    font_dir: Path,
    *,
    bundled: Mapping[str, str] = DEFAULT_FONTS,
    max_workers: int = 4,
) -> FontRegistry:
    """
    Create and populate a registry with every font the score needs.

    Bundled files are read and the remaining requirements are resolved
    through ``provider`` concurrently. All work finishes before this
    function returns; the first failure is re-raised.

    Raises:
        FontResolutionError: If a required font cannot be resolved.
        FileNotFoundError: If a bundled font file is missing from ``font_dir``.
        OSError: If a bundled font file cannot be read.
    """
    bundled_paths = _bundled_font_paths(bundled, font_dir)
    requirements = collect_font_requirements(score, exclude=bundled_paths.keys())

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        bundled_jobs: dict[str, Future[bytes]] = {
            key: pool.submit(path.read_bytes) for key, path in bundled_paths.items()
        }
        resolver_jobs: list[tuple[FontOptions, Future[bytes]]] = [
            (options, pool.submit(provider.resolve_options, options)) for options in requirements
        ]

        registry = FontRegistry()
        for key, job in bundled_jobs.items():
            registry.register_font(key, job.result())
        for options, job in resolver_jobs:
            registry.register_font(options.key, job.result())

    # Text runs are drawn with the styled family name; share the data when
    # it differs from the canonical key.
    for options in requirements:
        if options.draw_family not in registry:
            registry.register_font(options.draw_family, registry.require(options.key))

    logger.info(
        "Registered %d font(s): %d bundled, %d resolved",
        len(registry),
        len(bundled_jobs),
        len(resolver_jobs),
    )
    return registry
