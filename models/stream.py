"""Stream event, block and render-update models.

The wire format is one JSON object per line::

    {"type": "prompt" | "query" | "chunk" | "end" | "error", "content": "..."}

``WireRecord`` validates one such line, ``StreamEvent`` is its classified
form, and the ``*Update`` models are what the multiplexer hands to a
render sink.  Everything handed out of the multiplexer is frozen so a sink
can never mutate multiplexer-owned state.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.base import CamelModel, FrozenCamelModel
from models.errors import ErrorCode


# ── Wire level ───────────────────────────────────────────────


class WireRecord(BaseModel):
    """One decoded NDJSON line.  ``end`` records carry no content."""

    model_config = ConfigDict(extra="ignore")

    type: str
    content: str = ""

    @field_validator("content", mode="before")
    @classmethod
    def _null_content(cls, v: object) -> object:
        return "" if v is None else v


class EventKind(str, Enum):
    SESSION_START = "session_start"
    CHUNK = "chunk"
    SESSION_END = "session_end"
    ERROR = "error"


class StreamEvent(BaseModel):
    """A classified wire record."""

    model_config = ConfigDict(frozen=True)

    kind: EventKind
    payload: str = ""
    wire_type: str = ""


class StreamMode(str, Enum):
    """How the multiplexer groups chunks into blocks."""

    SINGLE = "single"
    MULTI = "multi"


# ── Blocks & sections ────────────────────────────────────────


class BlockState(str, Enum):
    OPEN = "open"
    FINALIZED = "finalized"


class BlockSnapshot(FrozenCamelModel):
    """Point-in-time copy of one accumulating block."""

    block_id: int
    label: str = ""
    text: str = ""
    state: BlockState = BlockState.OPEN


class Section(FrozenCamelModel):
    """One heading and its bullet items from a structured summary."""

    heading: str = Field(min_length=1)
    items: tuple[str, ...] = ()


class Diagnostic(FrozenCamelModel):
    """A recorded, non-fatal problem with the stream."""

    code: ErrorCode
    detail: str
    line_number: int | None = None


# ── Render updates ───────────────────────────────────────────


class PromptHint(FrozenCamelModel):
    """Single-block mode: the server announced what it is working on."""

    type: Literal["prompt"] = "prompt"
    text: str


class TextUpdate(FrozenCamelModel):
    """Single-block mode: accumulated text after a chunk."""

    type: Literal["text"] = "text"
    text: str


class BlockUpdate(FrozenCamelModel):
    """Multi-block mode: a block's label and text after a chunk."""

    type: Literal["block"] = "block"
    block: BlockSnapshot


class BlockComplete(FrozenCamelModel):
    """A block was finalized."""

    type: Literal["block-complete"] = "block-complete"
    block: BlockSnapshot


class ErrorNotice(FrozenCamelModel):
    """An in-band ``error`` event; visible but non-fatal."""

    type: Literal["error"] = "error"
    message: str


class SummaryReady(FrozenCamelModel):
    """Single-block mode: the finalized text and its structured parse.

    ``sections`` is empty (or item-less) when the text has no usable
    outline; the sink should then render ``fallback_text`` as markdown.
    """

    type: Literal["summary"] = "summary"
    sections: tuple[Section, ...] = ()
    fallback_text: str
    structured: bool = False


class StreamFailed(FrozenCamelModel):
    """The transport failed; previously rendered content stays visible."""

    type: Literal["stream-failed"] = "stream-failed"
    message: str


RenderUpdate = Annotated[
    Union[
        PromptHint,
        TextUpdate,
        BlockUpdate,
        BlockComplete,
        ErrorNotice,
        SummaryReady,
        StreamFailed,
    ],
    Field(discriminator="type"),
]


# ── Results ──────────────────────────────────────────────────


class StreamResult(CamelModel):
    """Final state of one consumed stream."""

    profile: str = ""
    mode: StreamMode
    completed: bool = True
    blocks: list[BlockSnapshot] = Field(default_factory=list)
    text: str = ""
    sections: list[Section] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)
