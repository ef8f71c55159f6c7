"""Tests for services/stream_client.py — HTTP streaming against a mock server."""

from __future__ import annotations

import json

import httpx
import pytest

from errors.exceptions import StreamHTTPError, StreamTransportError
from models.stream import BlockState, StreamMode
from services.ndjson import NdjsonEncoder
from services.stream_client import StreamClient
from services.summary_store import InMemorySummaryStore

enc = NdjsonEncoder()

NEWS_BODY = (
    enc.prompt("Summarizing email")
    + enc.chunk("**THE TIMES**\n")
    + enc.chunk("- **Big Story:** something happened\n")
    + enc.end()
)

GROK_BODY = enc.session("first?", ["one ", "two"]) + enc.session("second?", ["three"])


def _chunked(text: str, size: int = 7):
    data = text.encode()

    async def gen():
        for i in range(0, len(data), size):
            yield data[i:i + size]

    return gen()


class Recorder:
    """MockTransport handler that records requests and replays one body."""

    def __init__(self, body: str = "", status_code: int = 200):
        self.body = body
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, text=self.body)
        return httpx.Response(
            200,
            headers={"Content-Type": "text/plain"},
            content=_chunked(self.body),
        )

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def store():
    return InMemorySummaryStore()


async def _client(handler, store=None) -> StreamClient:
    client = StreamClient(transport=httpx.MockTransport(handler), summary_store=store)
    await client.start()
    return client


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_not_started_raises(self):
        client = StreamClient(transport=httpx.MockTransport(Recorder()))
        with pytest.raises(RuntimeError, match="not started"):
            await client.run("news", {"email": "x"})

    @pytest.mark.asyncio
    async def test_start_close_idempotent(self):
        client = StreamClient(transport=httpx.MockTransport(Recorder()))
        await client.start()
        await client.start()
        await client.close()
        await client.close()

    def test_profiles(self):
        client = StreamClient()
        assert set(client.profiles) == {"news", "grok", "pplx"}


class TestNews:
    @pytest.mark.asyncio
    async def test_generate_summaries(self, sink, store):
        handler = Recorder(NEWS_BODY)
        client = await _client(handler, store)

        result = await client.generate_summaries("  Dear reader...  ", sink)

        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/api/generate-summaries"
        assert handler.last_json == {"email": "Dear reader..."}
        assert result.mode is StreamMode.SINGLE
        assert result.sections[0].heading == "THE TIMES"
        assert sink.types[0] == "prompt"
        assert sink.types[-1] == "summary"
        await client.close()

    @pytest.mark.asyncio
    async def test_completed_summary_persisted(self, store):
        client = await _client(Recorder(NEWS_BODY), store)
        result = await client.generate_summaries("email")
        assert await store.load_last() == result.text
        await client.close()

    @pytest.mark.asyncio
    async def test_empty_email_rejected(self):
        client = await _client(Recorder(NEWS_BODY))
        with pytest.raises(ValueError):
            await client.generate_summaries("   ")
        await client.close()


class TestMultiProfiles:
    @pytest.mark.asyncio
    async def test_grok_prompts(self, sink, store):
        handler = Recorder(GROK_BODY)
        client = await _client(handler, store)

        result = await client.run_grok_prompts(["first?", "second?"], sink)

        assert handler.requests[0].url.path == "/api/run-grok-prompts"
        assert handler.last_json == {"prompts": ["first?", "second?"]}
        assert [(b.label, b.text) for b in result.blocks] == [
            ("first?", "one two"),
            ("second?", "three"),
        ]
        # only news summaries are persisted
        assert await store.load_last() is None
        await client.close()

    @pytest.mark.asyncio
    async def test_pplx_queries_use_query_start(self):
        body = enc.session("q", ["answer"], start_type="query")
        handler = Recorder(body)
        client = await _client(handler)

        result = await client.run_pplx_queries(["q"])

        assert handler.last_json == {"queries": ["q"]}
        assert result.blocks[0].label == "q"
        await client.close()

    @pytest.mark.asyncio
    async def test_empty_batches_rejected(self):
        client = await _client(Recorder())
        with pytest.raises(ValueError):
            await client.run_grok_prompts([])
        with pytest.raises(ValueError):
            await client.run_pplx_queries([])
        await client.close()


class TestFailures:
    @pytest.mark.asyncio
    async def test_non_200_raises_http_error(self, sink):
        client = await _client(Recorder("upstream exploded", status_code=500))

        with pytest.raises(StreamHTTPError) as exc_info:
            await client.run("grok", {"prompts": ["p"]}, sink)

        err = exc_info.value
        assert err.status_code == 500
        assert err.detail == "upstream exploded"
        assert err.profile == "grok"
        assert sink.types == ["stream-failed"]
        await client.close()

    @pytest.mark.asyncio
    async def test_connect_error(self, sink):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = await _client(handler)
        with pytest.raises(StreamTransportError, match="connection"):
            await client.run("news", {"email": "x"}, sink)
        assert sink.types == ["stream-failed"]
        await client.close()

    @pytest.mark.asyncio
    async def test_read_error_mid_stream(self, sink, store):
        async def broken():
            yield (enc.prompt("A") + enc.chunk("partial")).encode()
            raise httpx.ReadError("reset by peer")

        def handler(request):
            return httpx.Response(200, content=broken())

        client = await _client(handler, store)
        with pytest.raises(StreamTransportError) as exc_info:
            await client.run("grok", {"prompts": ["A"]}, sink)

        err = exc_info.value
        assert [(b.label, b.text, b.state) for b in err.open_blocks] == [
            ("A", "partial", BlockState.OPEN)
        ]
        assert sink.types[-1] == "stream-failed"
        await client.close()

    @pytest.mark.asyncio
    async def test_failed_news_run_not_persisted(self, store):
        async def broken():
            yield enc.chunk("half a summ").encode()
            raise httpx.RemoteProtocolError("peer closed connection")

        def handler(request):
            return httpx.Response(200, content=broken())

        client = await _client(handler, store)
        with pytest.raises(StreamTransportError, match="mid-stream"):
            await client.generate_summaries("email")
        assert await store.load_last() is None
        await client.close()
