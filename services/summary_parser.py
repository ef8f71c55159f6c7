"""Structured summary parser — finished text → ordered (heading, items) sections.

The model is asked to answer with one SHOUTY source name per section
followed by ``- `` bullet points::

    **THE TIMES**
    - **Big Story:** something happened
    - Another item

Each line is classified as a heading, an item or ignored, and the
classified lines are folded into sections.  Anything that does not fit the
grammar yields an empty list, which callers treat as "render the raw
markdown instead".  The parser is pure: same input, same output.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from models.stream import Section

# Whole line wrapped in one bold marker, e.g. **THE TIMES**
_WRAPPED_RE = re.compile(r"^\*\*(.*?)\*\*$")
# Upper-case letters, whitespace, '&' and '-' only; starts with a letter
_HEADING_RE = re.compile(r"[A-Z][A-Z\s&\-]+")
# Inline bold span inside an item
_STRONG_RE = re.compile(r"\*\*(.*?)\*\*")

BULLET = "- "


class LineKind(str, Enum):
    HEADING = "heading"
    ITEM = "item"
    IGNORED = "ignored"


@dataclass(frozen=True)
class ClassifiedLine:
    kind: LineKind
    text: str = ""


def unwrap_emphasis(raw: str) -> str:
    """Drop a bold wrapper around the entire line, then trim."""
    return _WRAPPED_RE.sub(r"\1", raw).strip()


def strong_markup(text: str) -> str:
    """Convert ``**x**`` spans to ``<strong>x</strong>``."""
    return _STRONG_RE.sub(r"<strong>\1</strong>", text)


def classify_line(raw: str) -> ClassifiedLine:
    """Classify one source line."""
    if not raw.strip():
        return ClassifiedLine(LineKind.IGNORED)

    line = unwrap_emphasis(raw)
    if not line.startswith("-") and _HEADING_RE.fullmatch(line):
        return ClassifiedLine(LineKind.HEADING, line)
    if line.startswith(BULLET):
        return ClassifiedLine(LineKind.ITEM, strong_markup(line[len(BULLET):]))
    return ClassifiedLine(LineKind.IGNORED)


def parse_summaries(text: str) -> list[Section]:
    """Segment *text* into sections; ``[]`` when nothing matches.

    Bullets that appear before the first heading have no section to
    attach to and are dropped.
    """
    sections: list[Section] = []
    heading = ""
    items: list[str] = []

    for raw in text.splitlines():
        classified = classify_line(raw)
        if classified.kind is LineKind.HEADING:
            if heading:
                sections.append(Section(heading=heading, items=tuple(items)))
            heading = classified.text
            items = []
        elif classified.kind is LineKind.ITEM and heading:
            items.append(classified.text)

    if heading:
        sections.append(Section(heading=heading, items=tuple(items)))
    return sections


def is_structured(sections: list[Section]) -> bool:
    """True when *sections* is worth rendering instead of the raw text."""
    return any(section.items for section in sections)
