"""HTTP transport to the chat endpoint using aiohttp."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

import aiohttp

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://127.0.0.1:8787/api/chat"


# ---------------------------------------------------------------------------
# Custom Exceptions
# ---------------------------------------------------------------------------


class TransportError(Exception):
    """The chat endpoint could not be reached or answered with an error."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


# ---------------------------------------------------------------------------
# HttpChatTransport
# ---------------------------------------------------------------------------


@dataclass
class HttpChatTransport:
    """Streams chat replies from an HTTP endpoint.

    One ClientSession is shared by every request made through this transport,
    so concurrent story fetches and the main conversation reuse connections.
    Call ``close()`` (or use ``async with``) when done.
    """

    endpoint: str = DEFAULT_ENDPOINT

    _http_session: aiohttp.ClientSession | None = field(default=None, repr=False)

    async def _get_http_session(self) -> aiohttp.ClientSession:
        """Get or create the HTTP session."""
        if self._http_session is None or self._http_session.closed:
            self._http_session = aiohttp.ClientSession()
        return self._http_session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._http_session is not None and not self._http_session.closed:
            await self._http_session.close()
            self._http_session = None

    async def __aenter__(self) -> HttpChatTransport:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def stream_chat(self, payload: dict) -> AsyncIterator[bytes]:
        """POST ``payload`` and yield the reply body chunk by chunk.

        Raises:
            TransportError: On a non-2xx status or any client/network error.
        """
        session = await self._get_http_session()
        try:
            async with session.post(self.endpoint, json=payload) as resp:
                if resp.status < 200 or resp.status >= 300:
                    logger.warning(
                        "chat_request_rejected",
                        extra={"endpoint": self.endpoint, "status": resp.status},
                    )
                    raise TransportError(
                        f"Chat endpoint returned HTTP {resp.status}", status=resp.status
                    )
                async for chunk in resp.content.iter_any():
                    yield chunk
        except aiohttp.ClientError as exc:
            logger.warning(
                "chat_request_failed",
                extra={"endpoint": self.endpoint, "error": str(exc)},
            )
            raise TransportError(f"Chat request failed: {exc}") from exc
