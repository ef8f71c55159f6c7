"""Tests for services/summary_renderer.py — summary HTML and the reference sink."""

from __future__ import annotations

from config.profiles import build_profiles
from models.stream import (
    BlockComplete,
    BlockSnapshot,
    BlockState,
    BlockUpdate,
    ErrorNotice,
    PromptHint,
    StreamFailed,
    StreamMode,
    SummaryReady,
    TextUpdate,
)
from services.summary_renderer import (
    HtmlRenderSink,
    markdown_to_html,
    render_block,
    render_summary,
)


class TestRenderSummary:
    def test_structured(self):
        view = render_summary("**THE TIMES**\n- **Big:** news\n- Other\n")
        assert view.structured is True
        assert view.html == (
            "<h3>THE TIMES</h3><ul><li><strong>Big:</strong> news</li><li>Other</li></ul>"
        )

    def test_heading_is_escaped(self):
        view = render_summary("A & B\n- item\n")
        assert "<h3>A &amp; B</h3>" in view.html

    def test_markdown_fallback(self):
        view = render_summary("Some *prose* here")
        assert view.structured is False
        assert "<em>prose</em>" in view.html
        assert view.markdown == "Some *prose* here"

    def test_camel_case_dump(self):
        dumped = render_summary("x").model_dump(by_alias=True)
        assert set(dumped) == {"structured", "sections", "html", "markdown"}


class TestRenderBlock:
    def test_prefix(self):
        out = render_block("What is new?", "**bold**", "Prompt")
        assert out.startswith("<h3>Prompt: What is new?</h3>")
        assert "<strong>bold</strong>" in out

    def test_no_prefix(self):
        assert render_block("Q", "").startswith("<h3>Q</h3>")

    def test_markdown_table(self):
        assert "<table>" in markdown_to_html("| a | b |\n|---|---|\n| 1 | 2 |")


def _block(block_id: int, label: str, text: str, state=BlockState.OPEN) -> BlockSnapshot:
    return BlockSnapshot(block_id=block_id, label=label, text=text, state=state)


class TestHtmlRenderSink:
    def test_single_mode_view_replaced(self):
        sink = HtmlRenderSink()
        sink(PromptHint(text="Summarizing..."))
        assert "<em>Summarizing...</em>" in sink.view_html
        sink(TextUpdate(text="Hello"))
        sink(TextUpdate(text="Hello **world**"))
        assert sink.view_html == "<p>Hello <strong>world</strong></p>"
        assert sink.updates == 3

    def test_single_mode_error_replaces_view(self):
        sink = HtmlRenderSink(mode=StreamMode.SINGLE)
        sink(TextUpdate(text="partial"))
        sink(ErrorNotice(message="boom"))
        assert sink.html == '<p class="text-danger">Error: boom</p>'
        assert "partial" not in sink.html

    def test_single_mode_next_chunk_rerenders_after_error(self):
        sink = HtmlRenderSink(mode=StreamMode.SINGLE)
        sink(TextUpdate(text="partial"))
        sink(ErrorNotice(message="boom"))
        sink(TextUpdate(text="partial text"))
        assert sink.html == "<p>partial text</p>"

    def test_for_profile(self):
        profiles = build_profiles()
        news = HtmlRenderSink.for_profile(profiles["news"])
        pplx = HtmlRenderSink.for_profile(profiles["pplx"])
        assert news.mode is StreamMode.SINGLE
        assert (pplx.mode, pplx.heading_prefix) == (StreamMode.MULTI, "Query")

    def test_summary_ready(self):
        sink = HtmlRenderSink()
        text = "BBC\n- item\n"
        sink(SummaryReady(fallback_text=text, structured=True))
        assert sink.summary is not None
        assert sink.view_html == "<h3>BBC</h3><ul><li>item</li></ul>"

    def test_blocks_rendered_in_place(self):
        sink = HtmlRenderSink("Query")
        sink(BlockUpdate(block=_block(0, "q1", "")))
        sink(BlockUpdate(block=_block(0, "q1", "ans")))
        sink(BlockUpdate(block=_block(1, "q2", "other")))
        sink(BlockComplete(block=_block(0, "q1", "answer", BlockState.FINALIZED)))

        assert sink.block_html(0) == "<h3>Query: q1</h3><p>answer</p>"
        assert sink.html.index("q1") < sink.html.index("q2")
        assert sink.html.count("<div>") == 2

    def test_errors_and_failure_appended(self):
        sink = HtmlRenderSink()
        sink(BlockUpdate(block=_block(0, "p", "x")))
        sink(ErrorNotice(message="<bad>"))
        sink(StreamFailed(message="Error occurred while streaming the response."))

        assert sink.failed is True
        assert '<p class="text-danger">Error: &lt;bad&gt;</p>' in sink.html
        assert sink.html.endswith(
            '<div><p class="text-danger">Error occurred while streaming the response.</p></div>'
        )
        assert "<p>x</p>" in sink.html
