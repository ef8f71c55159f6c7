"""Frame decoder — raw byte chunks → complete NDJSON lines.

Chunks arrive at arbitrary boundaries: mid-line and mid-character.  The
incremental codec decoder holds back the bytes of a partial multi-byte
character until the rest arrives, and the trailing partial line is kept in
``_buffer`` and prefixed onto the next chunk's text.
"""

from __future__ import annotations

import codecs
import logging

logger = logging.getLogger(__name__)


class FrameDecoder:
    """Split a chunked byte stream into ``\\n``-terminated lines.

    Usage::

        decoder = FrameDecoder("utf-8")
        async for chunk in source:
            for line in decoder.feed(chunk):
                ...
        for line in decoder.flush():
            ...
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self._flushed = False
        self.bytes_received = 0
        self.lines_emitted = 0

    @property
    def pending(self) -> str:
        """Decoded text of the incomplete trailing line."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[str]:
        """Decode *chunk* and return every line it completed.

        Whitespace-only lines are dropped.  The line terminator is not
        included in the returned strings.
        """
        if self._flushed:
            raise RuntimeError("FrameDecoder.feed() called after flush()")
        self.bytes_received += len(chunk)
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return self._keep(lines)

    def flush(self) -> list[str]:
        """End of stream: emit the residual unterminated line, if any."""
        if self._flushed:
            return []
        self._flushed = True
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        if tail.strip():
            logger.debug("Flushing unterminated final line (%d chars)", len(tail))
        return self._keep(tail.split("\n"))

    def _keep(self, lines: list[str]) -> list[str]:
        kept = [line for line in lines if line.strip()]
        self.lines_emitted += len(kept)
        return kept
