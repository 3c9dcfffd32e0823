"""Chat endpoint: POST /api/chat streaming newline-delimited JSON.

Request body:
    {
        "messages": [{"role": "user", "content": "..."}, ...],
        "persona": "music",      # optional
        "system": "..."          # optional custom system prompt
    }

Response 200 (application/x-ndjson), one object per line:
    {"response": "<fragment>"}

Error responses:
- 400: Invalid JSON or malformed messages
- 500: Backend failed before any fragment was produced
"""

from __future__ import annotations

import json
import logging
import time
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from aiohttp import web

from .backend import BackendError
from .prompts import with_system_prompt

if TYPE_CHECKING:
    from ..protocol import InferenceBackend

logger = logging.getLogger(__name__)

_VALID_ROLES = frozenset({"system", "user", "assistant"})


def _validate_messages(messages: object) -> str | None:
    """Return an error string if ``messages`` is not a list of role/content dicts."""
    if not isinstance(messages, list):
        return "messages must be a list"
    for index, message in enumerate(messages):
        if not isinstance(message, dict):
            return f"messages[{index}] must be an object"
        if message.get("role") not in _VALID_ROLES:
            return f"messages[{index}].role must be one of system, user, assistant"
        if not isinstance(message.get("content"), str):
            return f"messages[{index}].content must be a string"
    return None


def encode_fragment(fragment: str) -> bytes:
    """Encode one fragment as a protocol line."""
    return (json.dumps({"response": fragment}, ensure_ascii=False) + "\n").encode("utf-8")


@dataclass
class ChatAPI:
    """HTTP handlers relaying an inference backend as the line protocol."""

    backend: InferenceBackend

    _start_time: float = field(default_factory=time.time, repr=False)

    async def handle_chat(self, request: web.Request) -> web.StreamResponse:
        """Handle POST /api/chat."""
        try:
            data = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return web.json_response({"error": "Invalid JSON"}, status=400)
        if not isinstance(data, dict):
            return web.json_response({"error": "Body must be a JSON object"}, status=400)

        messages = data.get("messages") or []
        error = _validate_messages(messages)
        if error:
            return web.json_response({"error": error}, status=400)

        messages = with_system_prompt(messages, data.get("persona"), data.get("system"))

        async with aclosing(self.backend.stream(messages)) as stream:
            # The first fragment is awaited before the response is prepared so
            # that an unreachable backend still gets a proper error status.
            try:
                first = await anext(stream, None)
            except BackendError:
                logger.exception("chat_request_failed", extra={"persona": data.get("persona")})
                return web.json_response({"error": "Failed to process request"}, status=500)

            response = web.StreamResponse(
                status=200,
                headers={"Content-Type": "application/x-ndjson", "Cache-Control": "no-cache"},
            )
            await response.prepare(request)

            fragments = 0
            if first is not None:
                await response.write(encode_fragment(first))
                fragments += 1
            try:
                async for fragment in stream:
                    await response.write(encode_fragment(fragment))
                    fragments += 1
            except BackendError:
                logger.exception("chat_stream_interrupted", extra={"fragments": fragments})

        await response.write_eof()
        logger.info(
            "chat_request_completed",
            extra={"fragments": fragments, "history_length": len(messages)},
        )
        return response

    async def handle_health(self, request: web.Request) -> web.Response:
        """Handle GET /health."""
        return web.json_response(
            {"status": "ok", "uptime_seconds": int(time.time() - self._start_time)}
        )

    def create_app(self) -> web.Application:
        """Create the aiohttp application.

        Unregistered paths answer 404 and other methods on /api/chat
        answer 405, both via aiohttp routing.
        """
        app = web.Application()
        app.router.add_post("/api/chat", self.handle_chat)
        app.router.add_get("/health", self.handle_health)
        return app
