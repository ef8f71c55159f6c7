"""API request / response models."""

from __future__ import annotations

from pydantic import Field

from models.base import CamelModel
from models.stream import StreamResult


class SummaryRenderRequest(CamelModel):
    """POST /api/summaries/render — request body."""

    text: str


class StreamRunRequest(CamelModel):
    """POST /api/streams/{profile}/run — request body.

    Only the field matching the profile is sent upstream: ``email`` for
    news, ``prompts`` for grok, ``queries`` for pplx.
    """

    email: str = ""
    prompts: list[str] = Field(default_factory=list)
    queries: list[str] = Field(default_factory=list)


class StreamRunResponse(CamelModel):
    """Final state of a run plus the HTML a reference sink rendered."""

    result: StreamResult
    html: str = ""
