"""Tests for services/ndjson.py — the NDJSON stream encoder."""

from __future__ import annotations

import json

from services.ndjson import split_bytes


def _parse(line: str) -> dict:
    assert line.endswith("\n")
    return json.loads(line)


class TestEncoder:
    def test_prompt(self, enc):
        assert _parse(enc.prompt("Today")) == {"type": "prompt", "content": "Today"}

    def test_query(self, enc):
        assert _parse(enc.query("q")) == {"type": "query", "content": "q"}

    def test_end_has_no_content(self, enc):
        assert _parse(enc.end()) == {"type": "end"}

    def test_chunk_keeps_newlines_escaped(self, enc):
        line = enc.chunk("a\nb")
        assert line.count("\n") == 1
        assert _parse(line)["content"] == "a\nb"

    def test_non_ascii_unescaped(self, enc):
        assert "新闻" in enc.chunk("新闻")

    def test_session(self, enc):
        lines = enc.session("Q", ["x", "y"], start_type="query").splitlines()
        assert [json.loads(line)["type"] for line in lines] == [
            "query", "chunk", "chunk", "end",
        ]


class TestSplitBytes:
    def test_sizes_then_remainder(self):
        assert split_bytes(b"abcdefg", [2, 3]) == [b"ab", b"cde", b"fg"]

    def test_sizes_past_end(self):
        assert split_bytes(b"abc", [2, 5, 5]) == [b"ab", b"c"]

    def test_no_sizes(self):
        assert split_bytes(b"abc", []) == [b"abc"]
