"""Inference backend: Cloudflare Workers AI over its REST API.

The run endpoint is called with ``stream: true`` and answers with
Server-Sent Events whose ``data:`` lines carry ``{"response": ...}`` objects
and end with ``data: [DONE]``.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

import aiohttp

from ..config import DEFAULT_MAX_TOKENS, DEFAULT_MODEL_ID
from ..decoder import StreamDecoder
from ..reader import LineBuffer, parse_fragment

logger = logging.getLogger(__name__)

CLOUDFLARE_API_BASE = "https://api.cloudflare.com/client/v4"

_SSE_DATA_PREFIX = "data:"
_SSE_DONE = "[DONE]"


# ---------------------------------------------------------------------------
# Custom Exceptions
# ---------------------------------------------------------------------------


class BackendError(Exception):
    """The inference backend could not be reached or rejected the request."""

    pass


def parse_sse_data(line: str) -> str | None:
    """Return the payload of an SSE ``data:`` line, or None for other lines."""
    if not line.startswith(_SSE_DATA_PREFIX):
        return None
    return line[len(_SSE_DATA_PREFIX):].strip()


@dataclass
class WorkersAIBackend:
    """Streams chat completions from a Workers AI text-generation model."""

    account_id: str
    api_token: str
    model_id: str = DEFAULT_MODEL_ID
    max_tokens: int = DEFAULT_MAX_TOKENS
    base_url: str = CLOUDFLARE_API_BASE

    _http_session: aiohttp.ClientSession | None = field(default=None, repr=False)

    @property
    def url(self) -> str:
        return f"{self.base_url}/accounts/{self.account_id}/ai/run/{self.model_id}"

    async def _get_http_session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        if self._http_session is None or self._http_session.closed:
            self._http_session = aiohttp.ClientSession(
                headers={"Authorization": f"Bearer {self.api_token}"}
            )
        return self._http_session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._http_session is not None and not self._http_session.closed:
            await self._http_session.close()
            self._http_session = None

    async def stream(self, messages: list[dict]) -> AsyncIterator[str]:
        """Run the model and yield response fragments as they arrive.

        Raises:
            BackendError: On a non-2xx status or a client/network error.
        """
        body = {"messages": messages, "max_tokens": self.max_tokens, "stream": True}
        session = await self._get_http_session()
        try:
            async with session.post(self.url, json=body) as resp:
                if resp.status >= 300:
                    detail = await resp.text()
                    logger.error(
                        "backend_request_rejected",
                        extra={"status": resp.status, "detail": detail[:200]},
                    )
                    raise BackendError(f"Workers AI returned HTTP {resp.status}")

                decoder = StreamDecoder()
                lines = LineBuffer()
                async for chunk in resp.content.iter_any():
                    for line in lines.feed(decoder.decode(chunk)):
                        data = parse_sse_data(line)
                        if data == _SSE_DONE:
                            return
                        fragment = parse_fragment(data) if data else None
                        if fragment:
                            yield fragment
                lines.discard()
        except aiohttp.ClientError as exc:
            logger.error("backend_request_failed", extra={"error": str(exc)})
            raise BackendError(f"Workers AI request failed: {exc}") from exc
