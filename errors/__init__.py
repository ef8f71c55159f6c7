"""Custom exception hierarchy for the stream client."""

from errors.exceptions import (
    MalformedLineError,
    StreamError,
    StreamHTTPError,
    StreamTransportError,
)

__all__ = [
    "MalformedLineError",
    "StreamError",
    "StreamHTTPError",
    "StreamTransportError",
]
