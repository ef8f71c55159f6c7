"""Stream pipeline — byte source → frame decoder → interpreter → multiplexer.

The only suspension point is waiting for the next chunk.  Each chunk is
decoded, interpreted, applied and rendered synchronously before the next
read, so the consumer never reads ahead of its own processing.

Failure handling:

- a malformed / unknown line is dropped by the interpreter;
- an exception raised *by the byte source* is a transport failure: the
  multiplexer is told (open blocks stay un-finalized) and
  :class:`StreamTransportError` is raised;
- cancellation abandons the multiplexer so no further render happens.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterable

from errors.exceptions import StreamTransportError
from models.errors import STREAM_FAILED_MESSAGE, classify_transport_error
from models.stream import StreamResult
from services.event_interpreter import EventInterpreter
from services.frame_decoder import FrameDecoder
from services.multiplexer import SessionMultiplexer

logger = logging.getLogger(__name__)


async def consume_stream(
    chunks: AsyncIterable[bytes],
    multiplexer: SessionMultiplexer,
    *,
    session_start_type: str = "prompt",
    encoding: str = "utf-8",
    interpreter: EventInterpreter | None = None,
) -> StreamResult:
    """Drive *multiplexer* with every event found in *chunks*.

    Returns the final :class:`StreamResult` once the source is exhausted.

    Raises:
        StreamTransportError: the byte source raised.  The multiplexer has
            already rendered a ``stream-failed`` notice.
        asyncio.CancelledError: the consuming task was cancelled; the
            multiplexer is abandoned first.
    """
    decoder = FrameDecoder(encoding)
    interpreter = interpreter or EventInterpreter(session_start_type)

    def dispatch(lines: list[str]) -> None:
        for line in lines:
            event = interpreter.interpret(line)
            if event is not None:
                multiplexer.apply(event)

    source = chunks.__aiter__()
    try:
        while not multiplexer.abandoned:
            try:
                chunk = await source.__anext__()
            except StopAsyncIteration:
                break
            except Exception as e:
                detail = classify_transport_error(e)
                multiplexer.fail(STREAM_FAILED_MESSAGE)
                raise StreamTransportError(
                    detail,
                    profile=multiplexer.profile,
                    open_blocks=multiplexer.open_blocks,
                ) from e
            dispatch(decoder.feed(chunk))
        else:
            logger.info(
                "Stopped reading abandoned stream after %d bytes",
                decoder.bytes_received,
            )
            return multiplexer.result(interpreter.diagnostics)

        dispatch(decoder.flush())
    except asyncio.CancelledError:
        multiplexer.abandon()
        raise

    multiplexer.finish()
    logger.info(
        "Stream %s complete: %d bytes, %d lines, %d block(s), %d diagnostic(s)",
        multiplexer.profile or multiplexer.mode.value,
        decoder.bytes_received,
        decoder.lines_emitted,
        len(multiplexer.blocks),
        len(interpreter.diagnostics),
    )
    return multiplexer.result(interpreter.diagnostics)
