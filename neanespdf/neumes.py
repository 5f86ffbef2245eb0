"""Neume identifiers and their glyph mapping in the neume font."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

from neanespdf.font_metrics import FontMetrics


class VocalExpressionNeume:
    VAREIA: Final = "Vareia"
    HETERON: Final = "Heteron"
    HETERON_CONNECTING: Final = "HeteronConnecting"
    HETERON_CONNECTING_LONG: Final = "HeteronConnectingLong"
    ENDOFONON: Final = "Endofonon"


#: Vocal expression marks positioned as separate marks instead of joining the base run.
EXTENDED_VOCAL_EXPRESSIONS: Final[frozenset[str]] = frozenset(
    {
        VocalExpressionNeume.HETERON,
        VocalExpressionNeume.HETERON_CONNECTING,
        VocalExpressionNeume.HETERON_CONNECTING_LONG,
        VocalExpressionNeume.ENDOFONON,
    }
)


class TimeNeume:
    KORONIS: Final = "Koronis"


class ModeSign:
    EKHOS: Final = "ModeWordEchos"
    PLAGAL: Final = "ModePlagal"
    VARYS: Final = "ModeWordVarys"


class UnknownNeumeError(LookupError):
    """Raised when a neume has no glyph in the neume font."""


@dataclass(frozen=True)
class NeumeMapping:
    """Textual and glyph representation of a neume."""

    text: str
    glyph_name: str
    salt: bool = False


class NeumeMapper(ABC):
    """Total lookup from neume identifier to its mapping."""

    @abstractmethod
    def get_mapping(self, neume: str) -> NeumeMapping:
        """Return the mapping of ``neume``."""


def default_glyph_name(neume: str) -> str:
    """Glyph names follow the identifiers in lower camel case: ``GorgonAbove`` -> ``gorgonAbove``."""
    return neume[:1].lower() + neume[1:]


def load_neume_overrides(path: Path) -> dict[str, dict[str, Any]]:
    """
    Read per-neume overrides from a JSON object keyed by neume identifier.

    Each value may carry ``glyphName``, ``codepoint`` (``"U+E000"`` or an
    integer) and ``salt``.

    Raises:
        ValueError: If the file is not a JSON object.
    """
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"Neume map '{path}' must contain a JSON object.")
    return data


def _parse_codepoint(value: Any) -> int:
    if isinstance(value, int):
        return value
    text = str(value).strip().upper()
    if text.startswith("U+"):
        text = text[2:]
    return int(text, 16)


class FontNeumeMapper(NeumeMapper):
    """Map neumes to the characters that encode their glyphs in the neume font."""

    def __init__(
        self,
        font_metrics: FontMetrics,
        overrides: dict[str, dict[str, Any]] | None = None,
    ) -> None:
        self.font_metrics = font_metrics
        self.overrides = overrides or {}
        self._cache: dict[str, NeumeMapping] = {}

    def get_mapping(self, neume: str) -> NeumeMapping:
        if neume not in self._cache:
            self._cache[neume] = self._build_mapping(neume)
        return self._cache[neume]

    def _build_mapping(self, neume: str) -> NeumeMapping:
        override = self.overrides.get(neume, {})
        glyph_name = override.get("glyphName") or default_glyph_name(neume)

        if "codepoint" in override:
            codepoint: int | None = _parse_codepoint(override["codepoint"])
        else:
            codepoint = self.font_metrics.codepoint(glyph_name)
        if codepoint is None:
            raise UnknownNeumeError(f"No glyph '{glyph_name}' for neume '{neume}' in the neume font.")

        return NeumeMapping(
            text=chr(codepoint),
            glyph_name=glyph_name,
            salt=bool(override.get("salt", False)),
        )
