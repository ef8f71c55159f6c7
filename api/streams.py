"""Streams API — run, relay and replay NDJSON generation streams.

Endpoints:
- ``POST /api/streams/{profile}/run``     — run upstream, return the final result
- ``POST /api/streams/{profile}/live``    — run upstream, relay render updates via SSE
- ``POST /api/streams/{profile}/replay``  — feed a captured NDJSON body through
  the kernel (no upstream call)

``run`` and ``live`` go through one :class:`StreamSurface` per profile, so a
new run on a profile abandons the one still in flight.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncGenerator

from fastapi import APIRouter, HTTPException, Request
from sse_starlette.sse import EventSourceResponse

from config.profiles import StreamProfile, get_profile
from config.settings import get_settings
from errors.exceptions import StreamHTTPError, StreamTransportError
from models.request import StreamRunRequest, StreamRunResponse
from models.stream import RenderUpdate
from services.multiplexer import SessionMultiplexer
from services.stream_client import get_stream_client
from services.stream_pipeline import consume_stream
from services.stream_surface import StreamSurface
from services.summary_renderer import HtmlRenderSink

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/streams", tags=["streams"])

# One output surface per profile, created on first use.
_surfaces: dict[str, StreamSurface] = {}


def _profile(name: str) -> StreamProfile:
    try:
        return get_profile(name)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown stream profile: {name}") from None


def _surface(profile: StreamProfile) -> StreamSurface:
    return _surfaces.setdefault(profile.name, StreamSurface(profile.name))


def _request_body(profile: StreamProfile, req: StreamRunRequest) -> dict[str, Any]:
    """Pick the profile's request field; empty input is rejected up front."""
    value = getattr(req, profile.request_field)
    if isinstance(value, str):
        value = value.strip()
    if not value:
        raise HTTPException(
            status_code=400, detail=f"'{profile.request_field}' must not be empty"
        )
    return {profile.request_field: value}


@router.post("/{profile_name}/run", response_model=StreamRunResponse)
async def run_stream(profile_name: str, req: StreamRunRequest):
    """Run a generation stream to completion and return its final state.

    A newer run on the same profile supersedes this one (409).
    """
    profile = _profile(profile_name)
    body = _request_body(profile, req)
    sink = HtmlRenderSink.for_profile(profile)
    surface = _surface(profile)

    task = surface.start(get_stream_client(), profile, body, sink)
    try:
        await asyncio.wait({task})
    except asyncio.CancelledError:
        surface.release(task)
        raise

    if task.cancelled():
        raise HTTPException(
            status_code=409, detail=f"{profile.name} run superseded by a newer run"
        )
    try:
        result = task.result()
    except StreamHTTPError as e:
        logger.warning("Upstream rejected %s run: %s", profile.name, e)
        raise HTTPException(status_code=502, detail=str(e)) from e
    except StreamTransportError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e

    return StreamRunResponse(result=result, html=sink.html)


@router.post("/{profile_name}/live")
async def live_stream(profile_name: str, req: StreamRunRequest):
    """Run a generation stream and relay every render update as SSE.

    The stream ends early when a newer run starts on the same profile.  If
    the client disconnects, the run is cancelled and its multiplexer
    abandoned.
    """
    profile = _profile(profile_name)
    body = _request_body(profile, req)
    surface = _surface(profile)
    queue: asyncio.Queue[RenderUpdate | None] = asyncio.Queue()

    task = surface.start(get_stream_client(), profile, body, queue.put_nowait)
    task.add_done_callback(lambda _: queue.put_nowait(None))

    async def _event_generator() -> AsyncGenerator[str, None]:
        try:
            while (update := await queue.get()) is not None:
                yield update.model_dump_json(by_alias=True)
            if task.cancelled():
                logger.info("Live %s stream superseded by a newer run", profile.name)
                return
            exc = task.exception()
            if isinstance(exc, StreamTransportError):
                # The multiplexer already rendered a stream-failed update.
                logger.warning("Live %s stream ended with a transport failure", profile.name)
            elif exc is not None:
                raise exc
        finally:
            surface.release(task)

    return EventSourceResponse(_event_generator())


@router.post("/{profile_name}/replay", response_model=StreamRunResponse)
async def replay_stream(profile_name: str, request: Request):
    """Replay a captured NDJSON stream (the raw request body) through the kernel."""
    profile = _profile(profile_name)
    sink = HtmlRenderSink.for_profile(profile)
    mux = SessionMultiplexer.for_profile(profile, sink)

    try:
        result = await consume_stream(
            request.stream(),
            mux,
            session_start_type=profile.session_start_type,
            encoding=get_settings().stream_encoding,
        )
    except StreamTransportError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    return StreamRunResponse(result=result, html=sink.html)
