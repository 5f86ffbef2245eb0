"""Reading laid-out scores from ``.byzx`` and ``.byz`` files."""

from __future__ import annotations

import json
import re
import zipfile
from dataclasses import fields
from pathlib import Path
from typing import Any, Final

from neanespdf.score_models import (
    DropCapElement,
    EmptyElement,
    Line,
    MartyriaElement,
    ModeKeyElement,
    NoteElement,
    Offset,
    Page,
    PageSetup,
    Score,
    ScoreElement,
    Staff,
    TextBoxElement,
    UnsupportedElement,
)

PLAIN_EXTENSION: Final[str] = ".byzx"
COMPRESSED_EXTENSION: Final[str] = ".byz"

_ENTRY_PATTERN: Final[re.Pattern[str]] = re.compile(r"\.(byzx)$")

_ELEMENT_CLASSES: Final[dict[str, type]] = {
    "Note": NoteElement,
    "Martyria": MartyriaElement,
    "ModeKey": ModeKeyElement,
    "TextBox": TextBoxElement,
    "DropCap": DropCapElement,
    "Empty": EmptyElement,
}


class ScoreFileError(ValueError):
    """Raised when a score file cannot be read or decoded."""


def read_score_file(path: str | Path) -> str:
    """
    Return the JSON text of a score file.

    ``.byzx`` files are read as UTF-8. ``.byz`` files are zip archives; the
    first entry whose name ends in ``.byzx`` is read.

    Raises:
        ScoreFileError: For an unsupported extension, a broken archive or an
            archive without a ``.byzx`` entry.
        OSError: If the file cannot be read.
    """
    path = Path(path)
    extension = path.suffix

    if extension == COMPRESSED_EXTENSION:
        try:
            with zipfile.ZipFile(path) as archive:
                entries = [name for name in archive.namelist() if _ENTRY_PATTERN.search(name)]
                if not entries:
                    raise ScoreFileError(f"No {PLAIN_EXTENSION} entry found in '{path}'.")
                return archive.read(entries[0]).decode("utf-8")
        except zipfile.BadZipFile as exc:
            raise ScoreFileError(f"'{path}' is not a valid {COMPRESSED_EXTENSION} archive.") from exc

    if extension == PLAIN_EXTENSION:
        return path.read_text(encoding="utf-8")

    raise ScoreFileError(f"Unsupported file type: {extension or '(none)'}")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _build(cls: type, payload: dict[str, Any]) -> Any:
    """Build a model dataclass from camelCase JSON keys."""
    kwargs: dict[str, Any] = {}
    for field in fields(cls):
        key = _camel(field.name)
        if field.type == "Offset | None":
            offset_x = payload.get(f"{key}X")
            offset_y = payload.get(f"{key}Y")
            if offset_x is not None or offset_y is not None:
                kwargs[field.name] = Offset(x=offset_x or 0.0, y=offset_y or 0.0)
        elif key in payload:
            value = payload[key]
            if field.name == "hyphen_offsets":
                value = tuple(value or ())
            kwargs[field.name] = value
    try:
        return cls(**kwargs)
    except TypeError as exc:
        raise ScoreFileError(f"Invalid {cls.__name__}: {exc}") from exc


def load_element(payload: dict[str, Any]) -> ScoreElement:
    element_type = str(payload.get("elementType", ""))
    cls = _ELEMENT_CLASSES.get(element_type)
    if cls is None:
        return UnsupportedElement(
            element_type=element_type,
            x=payload.get("x", 0.0),
            y=payload.get("y", 0.0),
        )
    return _build(cls, payload)


def _load_pages(raw_pages: list[Any], elements: list[ScoreElement]) -> list[Page]:
    pages: list[Page] = []
    for raw_page in raw_pages:
        lines: list[Line] = []
        for raw_line in raw_page.get("lines", []):
            line_elements: list[ScoreElement] = []
            for item in raw_line.get("elements", []):
                if isinstance(item, int):
                    try:
                        line_elements.append(elements[item])
                    except IndexError as exc:
                        raise ScoreFileError(f"Line refers to missing element {item}.") from exc
                else:
                    line_elements.append(load_element(item))
            lines.append(Line(elements=line_elements))
        pages.append(Page(lines=lines))
    return pages


def load_score(text: str) -> tuple[Score, list[Page]]:
    """
    Decode a score payload into the score and its laid-out pages.

    ``pages`` lists lines whose elements are indices into
    ``staff.elements`` or inline element objects. Without ``pages`` all staff
    elements form one line on one page.

    Raises:
        ScoreFileError: If the payload is not valid score JSON.
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ScoreFileError(f"Score is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise ScoreFileError("Score payload must be a JSON object.")

    page_setup = _build(PageSetup, payload.get("pageSetup") or {})
    elements = [load_element(item) for item in (payload.get("staff") or {}).get("elements", [])]
    score = Score(page_setup=page_setup, staff=Staff(elements=elements))

    if "pages" in payload:
        pages = _load_pages(payload["pages"] or [], elements)
    else:
        pages = [Page(lines=[Line(elements=list(elements))])]
    return score, pages
