"""Stream profiles — one per endpoint that speaks the NDJSON event protocol.

A profile fixes the multiplexer mode and which wire type opens a session
for that endpoint.  Only one session-start spelling is active per profile:
a ``query`` record on the grok stream is an unknown type and is dropped.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from config.settings import Settings, get_settings
from models.stream import StreamMode


class StreamProfile(BaseModel):
    """Static description of one stream endpoint."""

    model_config = ConfigDict(frozen=True)

    name: str
    mode: StreamMode
    session_start_type: str
    endpoint: str
    request_field: str
    heading_prefix: str = ""


def build_profiles(settings: Settings | None = None) -> dict[str, StreamProfile]:
    """Build the news / grok / pplx profiles from settings."""
    s = settings or get_settings()
    return {
        "news": StreamProfile(
            name="news",
            mode=StreamMode.SINGLE,
            session_start_type="prompt",
            endpoint=s.news_endpoint,
            request_field="email",
        ),
        "grok": StreamProfile(
            name="grok",
            mode=StreamMode.MULTI,
            session_start_type="prompt",
            endpoint=s.grok_endpoint,
            request_field="prompts",
            heading_prefix="Prompt",
        ),
        "pplx": StreamProfile(
            name="pplx",
            mode=StreamMode.MULTI,
            session_start_type="query",
            endpoint=s.pplx_endpoint,
            request_field="queries",
            heading_prefix="Query",
        ),
    }


def get_profile(name: str, settings: Settings | None = None) -> StreamProfile:
    """Look up a profile by name.  Raises ``KeyError`` for unknown names."""
    return build_profiles(settings)[name]
