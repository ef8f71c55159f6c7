"""Shared pytest fixtures for stream kernel tests.

Provides:
- ``enc``: NDJSON encoder for building wire streams
- ``sink``: render sink that records every update it receives
- ``summary_store``: fresh in-memory store installed as the singleton
"""

from __future__ import annotations

from typing import AsyncIterator, Iterable

import pytest

import services.summary_store as summary_store_module
from models.stream import RenderUpdate
from services.ndjson import NdjsonEncoder
from services.summary_store import InMemorySummaryStore


class RecordingSink:
    """Render sink that keeps every update, in order."""

    def __init__(self) -> None:
        self.updates: list[RenderUpdate] = []

    def __call__(self, update: RenderUpdate) -> None:
        self.updates.append(update)

    def of_type(self, type_: str) -> list[RenderUpdate]:
        return [u for u in self.updates if u.type == type_]

    @property
    def types(self) -> list[str]:
        return [u.type for u in self.updates]


async def byte_source(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    """Async byte source over a fixed list of chunks."""
    for chunk in chunks:
        yield chunk


@pytest.fixture
def enc() -> NdjsonEncoder:
    return NdjsonEncoder()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def summary_store(monkeypatch) -> InMemorySummaryStore:
    """Fresh in-memory store, installed as the module singleton."""
    store = InMemorySummaryStore()
    monkeypatch.setattr(summary_store_module, "_store", store)
    return store
