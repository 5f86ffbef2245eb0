"""Font data resolution through the host platform's font store."""

from __future__ import annotations

import logging
import re
import subprocess
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Final

from neanespdf.config import MAX_FONT_BYTES
from neanespdf.font_options import FontOptions

logger = logging.getLogger(__name__)

SCRIPTS_DIR: Final[Path] = Path(__file__).resolve().parent / "scripts"

# Separators in fontconfig name patterns: element, value list, range and escape.
_PATTERN_SPECIALS: Final[re.Pattern[str]] = re.compile(r"[\\\-:,]")


class FontResolutionError(RuntimeError):
    """Raised when a font request cannot be turned into font data."""


def style_name(bold: bool = False, italic: bool = False) -> str:
    """Compose the fontconfig style string for a request."""
    if bold and italic:
        return "Bold Italic"
    if bold:
        return "Bold"
    if italic:
        return "Italic"
    return "Regular"


def escape_pattern_value(value: str) -> str:
    """Backslash-escape the characters fontconfig treats as pattern syntax."""
    return _PATTERN_SPECIALS.sub(r"\\\g<0>", value)


class FontProvider(ABC):
    """Resolve a logical font request to raw font file bytes."""

    name: str = "base"

    def __init__(self, *, max_bytes: int = MAX_FONT_BYTES, timeout: float = 60.0) -> None:
        self.max_bytes = max_bytes
        self.timeout = timeout

    @abstractmethod
    def resolve(
        self,
        family: str,
        bold: bool = False,
        italic: bool = False,
        underline: bool = False,
    ) -> bytes:
        """Return the raw bytes of the best installed match."""

    def resolve_options(self, options: FontOptions) -> bytes:
        return self.resolve(
            options.font_family,
            bold=options.bold,
            italic=options.italic,
            underline=options.underline,
        )

    def _run(self, command: list[str], *, text: bool = False) -> subprocess.CompletedProcess:
        """Run a host utility and capture its output."""
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=text,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise FontResolutionError(f"'{command[0]}' is not installed or not in PATH.") from exc
        except subprocess.TimeoutExpired as exc:
            raise FontResolutionError(
                f"'{command[0]}' did not finish within {self.timeout:g} s."
            ) from exc

        if result.returncode != 0:
            stderr = result.stderr if isinstance(result.stderr, str) else result.stderr.decode(
                "utf-8", errors="replace"
            )
            raise FontResolutionError(
                f"'{command[0]}' exited with status {result.returncode}: {stderr.strip()}"
            )
        if len(result.stdout) > self.max_bytes:
            raise FontResolutionError(
                f"'{command[0]}' output exceeds the {self.max_bytes} byte limit."
            )
        return result


class FontconfigFontProvider(FontProvider):
    """
    Match fonts with ``fc-match`` and read the matched file from disk.

    fontconfig always answers with its best match; a family that is not
    installed resolves to whatever fontconfig substitutes.
    """

    name = "fontconfig"

    def pattern(self, family: str, bold: bool = False, italic: bool = False) -> str:
        """Build an fc-match pattern; arguments bypass the shell, so nothing is quoted."""
        return f":family={escape_pattern_value(family)}:style={style_name(bold, italic)}"

    def match_file(self, family: str, bold: bool = False, italic: bool = False) -> Path:
        result = self._run(["fc-match", self.pattern(family, bold, italic), "file"], text=True)

        path = result.stdout.replace(":file=", "").strip()
        if not path:
            raise FontResolutionError(f"fc-match found no file for family '{family}'.")
        return Path(path)

    def resolve(
        self,
        family: str,
        bold: bool = False,
        italic: bool = False,
        underline: bool = False,
    ) -> bytes:
        path = self.match_file(family, bold, italic)
        try:
            size = path.stat().st_size
        except OSError as exc:
            raise FontResolutionError(f"Matched font file '{path}' cannot be read: {exc}") from exc
        if size > self.max_bytes:
            raise FontResolutionError(f"Font file '{path}' exceeds the {self.max_bytes} byte limit.")

        logger.info("Resolved font '%s' (%s) to %s", family, style_name(bold, italic), path)
        return path.read_bytes()


class PowerShellFontProvider(FontProvider):
    """Stream font bytes selected from the Windows font registry by a PowerShell script."""

    name = "powershell"

    def __init__(
        self,
        *,
        script_path: Path = SCRIPTS_DIR / "GetFontData.ps1",
        max_bytes: int = MAX_FONT_BYTES,
        timeout: float = 60.0,
    ) -> None:
        super().__init__(max_bytes=max_bytes, timeout=timeout)
        self.script_path = script_path

    def build_command(
        self,
        family: str,
        bold: bool = False,
        italic: bool = False,
        underline: bool = False,
    ) -> list[str]:
        command = [
            "powershell",
            "-NoProfile",
            "-ExecutionPolicy",
            "Bypass",
            "-File",
            str(self.script_path),
            "-family",
            family,
        ]
        if bold:
            command.append("-bold")
        if italic:
            command.append("-italic")
        if underline:
            command.append("-underline")
        return command

    def resolve(
        self,
        family: str,
        bold: bool = False,
        italic: bool = False,
        underline: bool = False,
    ) -> bytes:
        result = self._run(self.build_command(family, bold, italic, underline))
        if not result.stdout:
            raise FontResolutionError(f"No installed font matches family '{family}'.")

        logger.info("Resolved font '%s' (%s) via PowerShell", family, style_name(bold, italic))
        return result.stdout


_PROVIDERS: Final[dict[str, type[FontProvider]]] = {
    FontconfigFontProvider.name: FontconfigFontProvider,
    PowerShellFontProvider.name: PowerShellFontProvider,
}

_PLATFORM_PROVIDERS: Final[dict[str, str]] = {
    "win32": PowerShellFontProvider.name,
    "linux": FontconfigFontProvider.name,
}


def get_font_provider(
    name: str = "auto",
    platform: str = sys.platform,
    *,
    max_bytes: int = MAX_FONT_BYTES,
    timeout: float = 60.0,
) -> FontProvider:
    """
    Build the provider named by configuration.

    ``auto`` picks the provider for the host platform.

    Raises:
        FontResolutionError: If ``auto`` is used on a platform without a provider.
        ValueError: If ``name`` is not a known provider.
    """
    if name == "auto":
        if platform not in _PLATFORM_PROVIDERS:
            raise FontResolutionError(f"Font resolution does not support platform {platform}.")
        name = _PLATFORM_PROVIDERS[platform]

    if name not in _PROVIDERS:
        supported = ", ".join(sorted(_PROVIDERS))
        raise ValueError(f"Unknown font provider '{name}'. Use one of: auto, {supported}.")

    return _PROVIDERS[name](max_bytes=max_bytes, timeout=timeout)
