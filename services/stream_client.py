"""HTTP client for the generation server's NDJSON streaming endpoints.

Wraps ``httpx.AsyncClient`` with:
- base URL + per-profile endpoint selection (news / grok / pplx)
- connect timeout from settings, no read timeout unless configured
- non-2xx → :class:`StreamHTTPError`, network failure →
  :class:`StreamTransportError`
- the last completed news summary offered to the summary store
- connection-pool lifecycle tied to the FastAPI lifespan

Streams are never retried: a generation run is long and not idempotent.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx

from config.profiles import StreamProfile, build_profiles
from config.settings import get_settings
from errors.exceptions import StreamHTTPError, StreamTransportError
from models.errors import STREAM_FAILED_MESSAGE, classify_transport_error
from models.stream import StreamMode, StreamResult
from services.multiplexer import RenderSink, SessionMultiplexer
from services.stream_pipeline import consume_stream
from services.summary_store import SummaryStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------
_client: StreamClient | None = None

MAX_ERROR_DETAIL_CHARS = 500


class StreamClient:
    """Async client that starts a generation run and consumes its stream."""

    def __init__(
        self,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        summary_store: SummaryStore | None = None,
    ) -> None:
        settings = get_settings()
        self._base_url = settings.stream_base_url.rstrip("/")
        self._timeout = httpx.Timeout(
            settings.stream_connect_timeout, read=settings.stream_read_timeout
        )
        self._encoding = settings.stream_encoding
        self._profiles = build_profiles(settings)
        self._transport = transport
        self._summary_store = summary_store
        self._http: httpx.AsyncClient | None = None

    # -- lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        """Create the underlying ``httpx.AsyncClient`` connection pool."""
        if self._http is not None:
            return
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={"Accept": "application/x-ndjson, text/plain"},
        )
        logger.info("StreamClient started: base_url=%s", self._base_url)

    async def close(self) -> None:
        """Gracefully close the connection pool."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None
            logger.info("StreamClient closed")

    @property
    def profiles(self) -> dict[str, StreamProfile]:
        return dict(self._profiles)

    # -- public API ----------------------------------------------------------

    async def generate_summaries(
        self, email: str, sink: RenderSink | None = None
    ) -> StreamResult:
        """Summarize a news email (single-block stream)."""
        if not email.strip():
            raise ValueError("email content is empty")
        return await self.run("news", {"email": email.strip()}, sink)

    async def run_grok_prompts(
        self, prompts: list[str], sink: RenderSink | None = None
    ) -> StreamResult:
        """Run a batch of prompts (one block per prompt)."""
        if not prompts:
            raise ValueError("no prompts selected")
        return await self.run("grok", {"prompts": list(prompts)}, sink)

    async def run_pplx_queries(
        self, queries: list[str], sink: RenderSink | None = None
    ) -> StreamResult:
        """Run a batch of search queries (one block per query)."""
        if not queries:
            raise ValueError("no queries selected")
        return await self.run("pplx", {"queries": list(queries)}, sink)

    async def run(
        self,
        profile: StreamProfile | str,
        body: dict[str, Any],
        sink: RenderSink | None = None,
        *,
        multiplexer: SessionMultiplexer | None = None,
    ) -> StreamResult:
        """POST *body* to the profile's endpoint and consume the stream.

        Pass *multiplexer* to supply a pre-built instance (e.g. one owned
        by a :class:`~services.stream_surface.StreamSurface`); otherwise a
        fresh one is created around *sink*.

        Raises:
            StreamHTTPError: the server answered with a non-200 status.
            StreamTransportError: the connection failed before or during
                the stream.
        """
        if isinstance(profile, str):
            profile = self._profiles[profile]
        mux = multiplexer or SessionMultiplexer.for_profile(profile, sink)
        client = self._ensure_started()

        t0 = time.monotonic()
        try:
            async with client.stream("POST", profile.endpoint, json=body) as response:
                logger.info(
                    "POST %s → %d (%.0fms to headers)",
                    profile.endpoint,
                    response.status_code,
                    (time.monotonic() - t0) * 1000,
                )
                if response.status_code != 200:
                    raw = await response.aread()
                    detail = raw.decode("utf-8", errors="replace")[:MAX_ERROR_DETAIL_CHARS]
                    mux.fail(STREAM_FAILED_MESSAGE)
                    raise StreamHTTPError(
                        status_code=response.status_code,
                        detail=detail or f"HTTP {response.status_code}",
                        url=str(response.url),
                        profile=profile.name,
                    )
                result = await consume_stream(
                    response.aiter_bytes(),
                    mux,
                    session_start_type=profile.session_start_type,
                    encoding=self._encoding,
                )
        except httpx.TransportError as e:
            mux.fail(STREAM_FAILED_MESSAGE)
            raise StreamTransportError(
                classify_transport_error(e),
                profile=profile.name,
                open_blocks=mux.open_blocks,
            ) from e
        except asyncio.CancelledError:
            mux.abandon()
            raise

        logger.info(
            "%s run finished in %.1fs", profile.name, time.monotonic() - t0
        )
        await self._persist(profile, result)
        return result

    # -- internals -----------------------------------------------------------

    async def _persist(self, profile: StreamProfile, result: StreamResult) -> None:
        if self._summary_store is None or profile.mode is not StreamMode.SINGLE:
            return
        if not result.completed or not result.text:
            return
        await self._summary_store.save_last(result.text)
        logger.info("Saved last %s summary (%d chars)", profile.name, len(result.text))

    def _ensure_started(self) -> httpx.AsyncClient:
        if self._http is None:
            raise RuntimeError("StreamClient not started; call await client.start() first")
        return self._http


# ---------------------------------------------------------------------------
# Singleton accessor
# ---------------------------------------------------------------------------

def get_stream_client() -> StreamClient:
    """Return the module-level StreamClient singleton (create if needed)."""
    global _client
    if _client is None:
        from services.summary_store import get_summary_store

        _client = StreamClient(summary_store=get_summary_store())
    return _client
