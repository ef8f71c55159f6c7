"""HTML rendering for stream output.

``render_summary`` turns a finalized news summary into HTML, preferring the
structured section view and falling back to plain markdown.
``HtmlRenderSink`` is a reference render sink: it keeps the HTML of one
output surface up to date from the multiplexer's render updates.
"""

from __future__ import annotations

import html
import logging
from typing import TYPE_CHECKING

import markdown

from models.base import CamelModel
from models.stream import (
    BlockComplete,
    BlockSnapshot,
    BlockUpdate,
    ErrorNotice,
    PromptHint,
    RenderUpdate,
    Section,
    StreamFailed,
    StreamMode,
    SummaryReady,
    TextUpdate,
)
from services.summary_parser import is_structured, parse_summaries

if TYPE_CHECKING:
    from config.profiles import StreamProfile

logger = logging.getLogger(__name__)

_MARKDOWN_EXTENSIONS = ["extra", "sane_lists"]


class SummaryView(CamelModel):
    """Rendered summary: the structured parse (if any) plus final HTML."""

    structured: bool
    sections: list[Section]
    html: str
    markdown: str


def markdown_to_html(text: str) -> str:
    return markdown.markdown(text, extensions=_MARKDOWN_EXTENSIONS)


def render_sections(sections: list[Section] | tuple[Section, ...]) -> str:
    """One ``<h3>`` + ``<ul>`` per section.

    Headings are escaped; items already carry ``<strong>`` markup from the
    parser and are inserted as-is.
    """
    parts: list[str] = []
    for section in sections:
        parts.append(f"<h3>{html.escape(section.heading)}</h3>")
        items = "".join(f"<li>{item}</li>" for item in section.items)
        parts.append(f"<ul>{items}</ul>")
    return "".join(parts)


def render_summary(text: str) -> SummaryView:
    """Render a finalized summary, falling back to markdown when unstructured."""
    sections = parse_summaries(text)
    if is_structured(sections):
        return SummaryView(
            structured=True,
            sections=sections,
            html=render_sections(sections),
            markdown=text,
        )
    return SummaryView(
        structured=False,
        sections=sections,
        html=markdown_to_html(text),
        markdown=text,
    )


def render_block(label: str, text: str, prefix: str = "") -> str:
    """Heading for the prompt/query followed by its markdown response."""
    heading = f"{prefix}: {label}" if prefix else label
    return f"<h3>{html.escape(heading)}</h3>" + markdown_to_html(text)


class HtmlRenderSink:
    """Keep one output surface's HTML in sync with render updates.

    Single-block updates replace ``view_html``, and so does an in-band
    error: the news view shows the error instead of the partial text until
    the next chunk re-renders it.  Multi-block updates keep one entry per
    block plus standalone error entries, in arrival order.  A
    ``stream-failed`` notice is always appended after what is on screen.
    """

    def __init__(
        self, heading_prefix: str = "", mode: StreamMode = StreamMode.MULTI
    ) -> None:
        self.heading_prefix = heading_prefix
        self.mode = mode
        self.view_html = ""
        self.summary: SummaryView | None = None
        self.failed = False
        self._entries: list[int | str] = []
        self._blocks: dict[int, str] = {}
        self.updates = 0

    @classmethod
    def for_profile(cls, profile: StreamProfile) -> HtmlRenderSink:
        return cls(profile.heading_prefix, profile.mode)

    @property
    def html(self) -> str:
        """Full surface HTML: the single view, then blocks and error entries."""
        entries = [
            self._blocks[entry] if isinstance(entry, int) else entry
            for entry in self._entries
        ]
        return self.view_html + "".join(f"<div>{e}</div>" for e in entries)

    def block_html(self, block_id: int) -> str:
        return self._blocks.get(block_id, "")

    def __call__(self, update: RenderUpdate) -> None:
        self.updates += 1
        if isinstance(update, PromptHint):
            self.view_html = f"<p><em>{html.escape(update.text)}</em></p>"
        elif isinstance(update, TextUpdate):
            self.view_html = markdown_to_html(update.text)
        elif isinstance(update, SummaryReady):
            self.summary = render_summary(update.fallback_text)
            self.view_html = self.summary.html
        elif isinstance(update, (BlockUpdate, BlockComplete)):
            self._render_block(update.block)
        elif isinstance(update, ErrorNotice):
            notice = f'<p class="text-danger">Error: {html.escape(update.message)}</p>'
            if self.mode is StreamMode.SINGLE:
                self.view_html = notice
            else:
                self._entries.append(notice)
        elif isinstance(update, StreamFailed):
            self.failed = True
            self._entries.append(
                f'<p class="text-danger">{html.escape(update.message)}</p>'
            )
        else:
            logger.debug("Unhandled render update %r", update)

    def _render_block(self, block: BlockSnapshot) -> None:
        if block.block_id not in self._blocks:
            self._entries.append(block.block_id)
        self._blocks[block.block_id] = render_block(
            block.label, block.text, self.heading_prefix
        )
