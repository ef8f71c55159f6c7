"""Structured error codes for stream diagnostics.

Diagnostics and user-facing error notices share one format::

    {ERROR_CODE}: {human_readable_detail}
"""

from __future__ import annotations

from enum import Enum

import httpx


class ErrorCode(str, Enum):
    """Frozen diagnostic codes."""

    MALFORMED_LINE = "MALFORMED_LINE"
    UNKNOWN_EVENT = "UNKNOWN_EVENT"
    IN_BAND_ERROR = "IN_BAND_ERROR"
    TRANSPORT_FAILED = "TRANSPORT_FAILED"
    HTTP_ERROR = "HTTP_ERROR"


# Shown in place of the stream when the transport itself fails.
STREAM_FAILED_MESSAGE = "Error occurred while streaming the response."


def format_error(code: ErrorCode, detail: str) -> str:
    """Format a diagnostic line.

    Returns:
        ``{ERROR_CODE}: {detail}``
    """
    return f"{code.value}: {detail}"


def classify_transport_error(exc: BaseException) -> str:
    """Classify a transport exception into a formatted diagnostic.

    Non-2xx responses never get here: the client checks the status itself
    and raises ``StreamHTTPError``.

    Classification order (first match wins):
        1. Timeout: the connect/read timeout configured by the caller fired.
        2. Protocol / network error: the connection dropped mid-stream.
        3. Fallback: anything else raised by the byte source.
    """
    if isinstance(exc, httpx.TimeoutException):
        return format_error(ErrorCode.TRANSPORT_FAILED, f"timeout: {exc}")
    if isinstance(exc, httpx.RemoteProtocolError):
        return format_error(
            ErrorCode.TRANSPORT_FAILED, f"connection closed mid-stream: {exc}"
        )
    if isinstance(exc, httpx.TransportError):
        return format_error(ErrorCode.TRANSPORT_FAILED, f"connection: {exc}")
    return format_error(ErrorCode.TRANSPORT_FAILED, str(exc) or type(exc).__name__)
