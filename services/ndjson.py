"""NDJSON stream encoder — the server side of the event protocol.

Each method returns one ``\\n``-terminated JSON line::

    {"type": "prompt", "content": "What are today's headlines"}
    {"type": "chunk", "content": "Markets opened"}
    {"type": "end"}

Used by test fixtures and by replay tooling to produce byte streams that
match what the generation server writes.
"""

from __future__ import annotations

import json
from typing import Any, Iterable


class NdjsonEncoder:
    """Encode stream events into newline-delimited JSON.

    Every public method returns a ready-to-write line.
    """

    @staticmethod
    def _line(payload: dict[str, Any]) -> str:
        return json.dumps(payload, ensure_ascii=False) + "\n"

    # ── Session control ──────────────────────────────────────────

    def prompt(self, content: str) -> str:
        return self._line({"type": "prompt", "content": content})

    def query(self, content: str) -> str:
        return self._line({"type": "query", "content": content})

    def end(self) -> str:
        return self._line({"type": "end"})

    # ── Content ──────────────────────────────────────────────────

    def chunk(self, content: str) -> str:
        return self._line({"type": "chunk", "content": content})

    def error(self, content: str) -> str:
        return self._line({"type": "error", "content": content})

    # ── Whole sessions ───────────────────────────────────────────

    def session(
        self, label: str, chunks: Iterable[str], *, start_type: str = "prompt"
    ) -> str:
        """One complete session: start, every chunk, end."""
        start = self._line({"type": start_type, "content": label})
        return start + "".join(self.chunk(c) for c in chunks) + self.end()


def split_bytes(data: bytes, sizes: Iterable[int]) -> list[bytes]:
    """Cut *data* into consecutive pieces of the given sizes.

    Whatever is left after the last size becomes the final piece.  Handy
    for replaying a stream with arbitrary (mid-character) chunk boundaries.
    """
    pieces: list[bytes] = []
    pos = 0
    for size in sizes:
        if pos >= len(data):
            break
        pieces.append(data[pos:pos + size])
        pos += size
    if pos < len(data):
        pieces.append(data[pos:])
    return pieces
