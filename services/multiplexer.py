"""Session multiplexer — ``StreamEvent`` sequence → live text blocks.

One instance owns the blocks of exactly one stream.  After every applied
event it hands the render sink an immutable update; the sink never sees
(or can touch) the multiplexer's own state.

Modes:

- **single** (news summaries): one implicit block.  ``prompt`` only
  updates a display hint, every ``chunk`` re-renders the accumulated text,
  and on completion the text is offered to the structured summary parser.
- **multi** (grok prompts / pplx queries): each session-start opens a new
  labelled block and finalizes the previous one; ``end`` finalizes
  explicitly; ``error`` becomes a standalone entry not tied to a block.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from models.stream import (
    BlockComplete,
    BlockSnapshot,
    BlockState,
    BlockUpdate,
    Diagnostic,
    ErrorNotice,
    EventKind,
    PromptHint,
    RenderUpdate,
    Section,
    StreamEvent,
    StreamFailed,
    StreamMode,
    StreamResult,
    SummaryReady,
    TextUpdate,
)
from services.summary_parser import is_structured, parse_summaries

if TYPE_CHECKING:
    from config.profiles import StreamProfile

logger = logging.getLogger(__name__)

RenderSink = Callable[[RenderUpdate], None]


@dataclass
class _Block:
    block_id: int
    label: str = ""
    text: str = ""
    state: BlockState = BlockState.OPEN

    def snapshot(self) -> BlockSnapshot:
        return BlockSnapshot(
            block_id=self.block_id,
            label=self.label,
            text=self.text,
            state=self.state,
        )


class SessionMultiplexer:
    """Accumulate stream events into blocks and notify a render sink."""

    def __init__(
        self,
        mode: StreamMode,
        sink: RenderSink | None = None,
        *,
        profile: str = "",
    ) -> None:
        self.mode = mode
        self.profile = profile
        self._sink = sink
        self._blocks: list[_Block] = []
        self._current: _Block | None = None
        self._prompt_hint = ""
        self._errors: list[str] = []
        self._sections: list[Section] = []
        self._finished = False
        self._failed = False
        self._abandoned = False

    @classmethod
    def for_profile(
        cls, profile: StreamProfile, sink: RenderSink | None = None
    ) -> SessionMultiplexer:
        return cls(profile.mode, sink, profile=profile.name)

    # -- state ---------------------------------------------------------------

    @property
    def blocks(self) -> list[BlockSnapshot]:
        """Snapshots of every block, in the order they were opened."""
        return [block.snapshot() for block in self._blocks]

    @property
    def open_blocks(self) -> list[BlockSnapshot]:
        return [b.snapshot() for b in self._blocks if b.state is BlockState.OPEN]

    @property
    def text(self) -> str:
        """Single-block mode: the accumulated text (``""`` before any chunk)."""
        return self._blocks[0].text if self._blocks else ""

    @property
    def prompt_hint(self) -> str:
        return self._prompt_hint

    @property
    def errors(self) -> list[str]:
        return list(self._errors)

    @property
    def sections(self) -> list[Section]:
        return list(self._sections)

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def failed(self) -> bool:
        return self._failed

    @property
    def abandoned(self) -> bool:
        return self._abandoned

    # -- event application ---------------------------------------------------

    def apply(self, event: StreamEvent) -> None:
        """Apply one event and render the result.

        Ignored once the multiplexer is abandoned, so a stale stream can
        never reach the sink.
        """
        if self._abandoned:
            return
        if self._finished or self._failed:
            raise RuntimeError("SessionMultiplexer.apply() after the stream ended")

        if self.mode is StreamMode.SINGLE:
            self._apply_single(event)
        else:
            self._apply_multi(event)

    def _apply_single(self, event: StreamEvent) -> None:
        if event.kind is EventKind.SESSION_START:
            # Display hint only; never restarts a block whose chunks have begun.
            self._prompt_hint = event.payload
            self._emit(PromptHint(text=event.payload))
        elif event.kind is EventKind.CHUNK:
            block = self._current or self._open("")
            if event.payload:
                block.text += event.payload
                self._emit(TextUpdate(text=block.text))
        elif event.kind is EventKind.ERROR:
            self._record_error(event.payload)
        # SESSION_END: the single block lives until the stream completes

    def _apply_multi(self, event: StreamEvent) -> None:
        if event.kind is EventKind.SESSION_START:
            if self._current is not None:
                self._finalize(self._current)
            block = self._open(event.payload)
            self._emit(BlockUpdate(block=block.snapshot()))
        elif event.kind is EventKind.CHUNK:
            block = self._current
            if block is None:
                logger.warning("Chunk received with no open session; opening an unlabelled block")
                block = self._open("")
            if event.payload:
                block.text += event.payload
                self._emit(BlockUpdate(block=block.snapshot()))
        elif event.kind is EventKind.SESSION_END:
            if self._current is not None:
                self._finalize(self._current)
        elif event.kind is EventKind.ERROR:
            self._record_error(event.payload)

    # -- stream lifecycle ----------------------------------------------------

    def finish(self) -> None:
        """The byte stream completed normally; finalize what is still open."""
        if self._abandoned or self._finished:
            return
        if self._failed:
            raise RuntimeError("SessionMultiplexer.finish() after fail()")
        self._finished = True

        if self.mode is StreamMode.SINGLE:
            block = self._current
            if block is None:
                return
            block.state = BlockState.FINALIZED
            self._current = None
            if not block.text:
                return
            self._sections = parse_summaries(block.text)
            self._emit(
                SummaryReady(
                    sections=tuple(self._sections),
                    fallback_text=block.text,
                    structured=is_structured(self._sections),
                )
            )
        elif self._current is not None:
            self._finalize(self._current)

    def fail(self, message: str) -> None:
        """The transport failed.  Open blocks stay open; rendered content stays."""
        if self._abandoned or self._finished or self._failed:
            return
        self._failed = True
        logger.error(
            "Stream %s failed with %d open block(s): %s",
            self.profile or self.mode.value,
            len(self.open_blocks),
            message,
        )
        self._emit(StreamFailed(message=message))

    def abandon(self) -> None:
        """Detach from the sink; later events and lifecycle calls are no-ops."""
        if not self._abandoned:
            logger.debug("Stream %s abandoned", self.profile or self.mode.value)
        self._abandoned = True

    def result(self, diagnostics: list[Diagnostic] | None = None) -> StreamResult:
        return StreamResult(
            profile=self.profile,
            mode=self.mode,
            completed=self._finished,
            blocks=self.blocks,
            text=self.text if self.mode is StreamMode.SINGLE else "",
            sections=self.sections,
            errors=self.errors,
            diagnostics=list(diagnostics or []),
        )

    # -- helpers -------------------------------------------------------------

    def _open(self, label: str) -> _Block:
        block = _Block(block_id=len(self._blocks), label=label)
        self._blocks.append(block)
        self._current = block
        return block

    def _finalize(self, block: _Block) -> None:
        block.state = BlockState.FINALIZED
        if self._current is block:
            self._current = None
        self._emit(BlockComplete(block=block.snapshot()))

    def _record_error(self, message: str) -> None:
        logger.warning("In-band stream error: %s", message)
        self._errors.append(message)
        self._emit(ErrorNotice(message=message))

    def _emit(self, update: RenderUpdate) -> None:
        if self._abandoned or self._sink is None:
            return
        try:
            self._sink(update)
        except Exception:
            logger.exception("Render sink raised on %s update; continuing", update.type)
