"""Chat endpoint server.

Thin collaborator that injects the persona system prompt and relays an
inference backend's stream to clients as ``{"response": ...}`` lines.
"""

from __future__ import annotations

import asyncio
import logging

from aiohttp import web

from ..config import ConfigError, ServerConfig
from .app import ChatAPI, encode_fragment
from .backend import BackendError, WorkersAIBackend
from .prompts import MUSIC_SYSTEM_PROMPT, SYSTEM_PROMPT, resolve_system_prompt, with_system_prompt

logger = logging.getLogger(__name__)

__all__ = [
    "BackendError",
    "ChatAPI",
    "MUSIC_SYSTEM_PROMPT",
    "SYSTEM_PROMPT",
    "WorkersAIBackend",
    "build_backend",
    "encode_fragment",
    "resolve_system_prompt",
    "run_server",
    "with_system_prompt",
]


def build_backend(config: ServerConfig) -> WorkersAIBackend:
    """Create the Workers AI backend from server settings.

    Raises:
        ConfigError: If the account id or API token is missing.
    """
    if not config.account_id or not config.api_token:
        raise ConfigError(
            "server.account_id and an API token (SONGSTREAM_CF_API_TOKEN) are required"
        )
    return WorkersAIBackend(
        account_id=config.account_id,
        api_token=config.api_token,
        model_id=config.model_id,
        max_tokens=config.max_tokens,
    )


async def run_server(config: ServerConfig, shutdown_event: asyncio.Event) -> None:
    """Serve the chat endpoint until ``shutdown_event`` is set."""
    backend = build_backend(config)
    api = ChatAPI(backend=backend)
    runner = web.AppRunner(api.create_app())
    await runner.setup()
    site = web.TCPSite(runner, config.host, config.port)
    await site.start()
    logger.info(f"Chat endpoint listening on http://{config.host}:{config.port}/api/chat")

    try:
        await shutdown_event.wait()
    finally:
        await runner.cleanup()
        await backend.close()
