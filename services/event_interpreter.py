"""Event interpreter — one NDJSON line → one classified ``StreamEvent``.

Bad lines never abort a stream: malformed JSON is dropped with a WARNING
and a recorded diagnostic, unknown ``type`` values are dropped quietly so
newer servers can add event types without breaking older clients.
"""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from errors.exceptions import MalformedLineError
from models.errors import ErrorCode
from models.stream import Diagnostic, EventKind, StreamEvent, WireRecord

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 60


def _preview(text: str) -> str:
    if len(text) > _PREVIEW_CHARS:
        return text[:_PREVIEW_CHARS] + "…"
    return text


def parse_line(line: str) -> WireRecord:
    """Strictly parse *line* as a wire record.

    Raises:
        MalformedLineError: invalid JSON, not an object, or a missing /
            non-string ``type`` or ``content``.
    """
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise MalformedLineError(line, f"invalid JSON: {e.msg}") from e
    except (ValueError, RecursionError) as e:
        # oversized integer literals, pathologically deep nesting
        raise MalformedLineError(line, f"unparseable JSON: {type(e).__name__}") from e
    if not isinstance(data, dict):
        raise MalformedLineError(line, "not a JSON object")
    try:
        return WireRecord.model_validate(data)
    except ValidationError as e:
        raise MalformedLineError(line, "bad type/content field") from e


class EventInterpreter:
    """Classify lines for one stream profile.

    ``session_start_type`` is the wire spelling that opens a session on
    this endpoint (``"prompt"`` or ``"query"``); the other spelling is
    treated like any other unknown type.
    """

    def __init__(self, session_start_type: str = "prompt") -> None:
        self.session_start_type = session_start_type
        self._kinds: dict[str, EventKind] = {
            session_start_type: EventKind.SESSION_START,
            "chunk": EventKind.CHUNK,
            "end": EventKind.SESSION_END,
            "error": EventKind.ERROR,
        }
        self.diagnostics: list[Diagnostic] = []
        self.lines_seen = 0

    def interpret(self, line: str) -> StreamEvent | None:
        """Return the event for *line*, or ``None`` if it must be skipped."""
        self.lines_seen += 1
        try:
            record = parse_line(line)
        except MalformedLineError as e:
            logger.warning(
                "Dropping malformed stream line %d (%s): %r",
                self.lines_seen,
                e.reason,
                _preview(line),
            )
            self.diagnostics.append(
                Diagnostic(
                    code=ErrorCode.MALFORMED_LINE,
                    detail=e.reason,
                    line_number=self.lines_seen,
                )
            )
            return None

        kind = self._kinds.get(record.type)
        if kind is None:
            logger.debug(
                "Ignoring unknown event type %r on line %d",
                record.type,
                self.lines_seen,
            )
            self.diagnostics.append(
                Diagnostic(
                    code=ErrorCode.UNKNOWN_EVENT,
                    detail=record.type,
                    line_number=self.lines_seen,
                )
            )
            return None

        if kind is EventKind.CHUNK:
            logger.debug(
                "   ↳ chunk (%d chars): %r", len(record.content), _preview(record.content)
            )
        elif kind is EventKind.ERROR:
            self.diagnostics.append(
                Diagnostic(
                    code=ErrorCode.IN_BAND_ERROR,
                    detail=record.content,
                    line_number=self.lines_seen,
                )
            )
        return StreamEvent(kind=kind, payload=record.content, wire_type=record.type)
