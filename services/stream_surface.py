"""Stream surfaces — at most one live stream per output area.

Starting a new run on a surface abandons the previous run's multiplexer
before cancelling its task, so a stale stream can never render into the
newer one even if its task has not yet observed the cancellation.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from config.profiles import StreamProfile
from models.stream import StreamResult
from services.multiplexer import RenderSink, SessionMultiplexer
from services.stream_client import StreamClient

logger = logging.getLogger(__name__)


class StreamSurface:
    """Own the current run of one output area (news, grok or pplx panel)."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.generation = 0
        self._task: asyncio.Task[StreamResult] | None = None
        self._multiplexer: SessionMultiplexer | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def multiplexer(self) -> SessionMultiplexer | None:
        return self._multiplexer

    def owns(self, task: asyncio.Task[StreamResult]) -> bool:
        """True while *task* is this surface's current run."""
        return task is self._task

    def begin(self, profile: StreamProfile, sink: RenderSink | None) -> SessionMultiplexer:
        """Abandon the current run and return a fresh multiplexer."""
        self.abandon()
        self.generation += 1
        self._multiplexer = SessionMultiplexer.for_profile(profile, sink)
        return self._multiplexer

    def start(
        self,
        client: StreamClient,
        profile: StreamProfile,
        body: dict[str, Any],
        sink: RenderSink | None = None,
    ) -> asyncio.Task[StreamResult]:
        """Begin a run in a background task; the previous run is abandoned."""
        mux = self.begin(profile, sink)
        self._task = asyncio.create_task(
            client.run(profile, body, multiplexer=mux),
            name=f"{self.name}-stream-{self.generation}",
        )
        return self._task

    def abandon(self) -> None:
        """Detach the current run from its sink and cancel its task."""
        if self._multiplexer is not None:
            self._multiplexer.abandon()
        if self._task is not None and not self._task.done():
            logger.info("Abandoning %s stream generation %d", self.name, self.generation)
            self._task.cancel()
        self._task = None
        self._multiplexer = None

    def release(self, task: asyncio.Task[StreamResult]) -> None:
        """Abandon *task* if it is still the current run; no-op otherwise."""
        if self.owns(task):
            self.abandon()
