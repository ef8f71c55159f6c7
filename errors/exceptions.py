"""Domain-specific exceptions for the stream client.

These exceptions let the pipeline and API layers distinguish a terminal
transport failure from the in-band ``error`` events a server sends inside
a healthy stream.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from models.errors import ErrorCode, format_error

if TYPE_CHECKING:
    from models.stream import BlockSnapshot


class StreamError(Exception):
    """Base class for stream consumption errors."""


class MalformedLineError(StreamError):
    """A line could not be parsed as a ``{"type", "content"}`` record."""

    def __init__(self, line: str, reason: str) -> None:
        self.line = line
        self.reason = reason
        super().__init__(f"Malformed stream line ({reason}): {line[:80]!r}")


class StreamTransportError(StreamError):
    """The byte source failed or closed before the stream completed.

    Terminal for the current stream only.  ``open_blocks`` holds snapshots
    of the blocks that were still accumulating when the transport failed;
    they were never finalized and must not be treated as complete.
    """

    def __init__(
        self,
        message: str,
        profile: str = "",
        open_blocks: list[BlockSnapshot] | None = None,
    ) -> None:
        self.profile = profile
        self.open_blocks = open_blocks or []
        super().__init__(message)


class StreamHTTPError(StreamTransportError):
    """The stream server answered with a non-2xx status."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        url: str = "",
        profile: str = "",
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        self.url = url
        super().__init__(
            format_error(ErrorCode.HTTP_ERROR, f"{status_code} from {url or 'server'}: {detail}"),
            profile=profile,
        )
