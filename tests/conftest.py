"""Shared test fixtures for songstream."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Callable

import pytest


def ndjson(*fragments: str) -> bytes:
    """Encode fragments as protocol lines."""
    return b"".join(
        (json.dumps({"response": f}, ensure_ascii=False) + "\n").encode("utf-8")
        for f in fragments
    )


async def aiter_chunks(chunks: list[bytes]) -> AsyncIterator[bytes]:
    """Async iterator over a fixed list of chunks."""
    for chunk in chunks:
        yield chunk


class FakeTransport:
    """Scripted ChatTransport.

    Either replays fixed ``chunks`` or asks ``responder`` for the chunks of
    each payload. Records every payload it was given.
    """

    def __init__(
        self,
        chunks: list[bytes] | None = None,
        *,
        responder: Callable[[dict], list[bytes]] | None = None,
        error: Exception | None = None,
        error_after: int | None = None,
        delay: float = 0.0,
    ) -> None:
        self.chunks = chunks or []
        self.responder = responder
        self.error = error
        self.error_after = error_after
        self.delay = delay
        self.payloads: list[dict] = []

    async def stream_chat(self, payload: dict) -> AsyncIterator[bytes]:
        self.payloads.append(payload)
        chunks = self.responder(payload) if self.responder else self.chunks
        if self.error is not None and self.error_after is None:
            raise self.error
        for index, chunk in enumerate(chunks):
            if self.error is not None and index == self.error_after:
                raise self.error
            if self.delay:
                await asyncio.sleep(self.delay)
            yield chunk


# ---------------------------------------------------------------------------
# Response text fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def numbered_text() -> str:
    return "1. Alpha\n2. Beta\n3. Gamma"


@pytest.fixture
def candidate_text() -> str:
    return (
        "Get Lucky — Daft Punk [funk, disco] (tempo:116) — Iconic 2013 collaboration\n"
        "Night — Chromeo [electro-funk] (tempo=120, energy:high) — Glossy and upbeat\n"
        "Some closing remark without any structure."
    )


@pytest.fixture
def recommendation_stream() -> list[bytes]:
    """Two protocol lines whose fragments straddle the item boundary."""
    return [
        b'{"response":"1. Daft Punk"}\n',
        '{"response":" — Get Lucky\\n2. Chromeo — Night"}\n'.encode("utf-8"),
    ]
