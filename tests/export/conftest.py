"""
Pytest fixtures for export service tests.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import httpx
import pytest

from imperva_export.services.export import AsyncExportService


class SequenceTransport:
    """
    Mock API answering requests from a scripted sequence.

    Each step is an (status, kwargs) pair turned into a fresh httpx.Response,
    an exception instance to raise, or a callable taking the request.
    The last step repeats once the script runs out.
    """

    def __init__(self, *steps: Any) -> None:
        self.steps = list(steps)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.steps)) - 1
        step = self.steps[index]
        if isinstance(step, Exception):
            raise step
        if callable(step):
            return step(request)
        status, kwargs = step
        return httpx.Response(status, **kwargs)

    @property
    def count(self) -> int:
        return len(self.requests)


def respond(status: int, **kwargs: Any) -> tuple[int, dict[str, Any]]:
    """Script step: respond with a status and httpx.Response kwargs."""
    return status, kwargs


class FailingStream(httpx.AsyncByteStream):
    """Body stream that breaks after the first chunk."""

    def __init__(self, first: bytes = b"partial") -> None:
        self._first = first

    async def __aiter__(self):
        yield self._first
        raise httpx.ReadError("connection reset")

    async def aclose(self) -> None:
        pass


class SlowStream(httpx.AsyncByteStream):
    """Body stream that trickles small chunks."""

    def __init__(self, delay: float, chunks: int) -> None:
        self._delay = delay
        self._chunks = chunks

    async def __aiter__(self):
        for _ in range(self._chunks):
            await asyncio.sleep(self._delay)
            yield b"x"

    async def aclose(self) -> None:
        pass


class TrackingStream(httpx.AsyncByteStream):
    """Body stream recording whether it was read to the end and closed."""

    def __init__(self, *chunks: bytes) -> None:
        self._chunks = chunks
        self.consumed = False
        self.closed = False

    async def __aiter__(self):
        for chunk in self._chunks:
            yield chunk
        self.consumed = True

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def make_client() -> Callable[[SequenceTransport], httpx.AsyncClient]:
    """Factory for AsyncClients backed by a SequenceTransport."""

    def _make(transport: SequenceTransport) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(transport))

    return _make


@pytest.fixture
def make_service(settings, make_client):
    """Factory for an AsyncExportService with instant backoff and polling."""

    def _make(transport: SequenceTransport, **options: Any) -> AsyncExportService:
        options.setdefault("backoff_base", 0.0)
        options.setdefault("poll_initial_delay", 0.0)
        return AsyncExportService(settings, client=make_client(transport), **options)

    return _make
