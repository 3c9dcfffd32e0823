#!/usr/bin/env python3
"""CLI entry point for songstream.

Chat with the music recommender in the terminal, render a saved response,
or run the chat endpoint server.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import TextIO

from .classifier import classify
from .config import AppConfig, ConfigError, load_config
from .conversation import ConversationBusyError, ConversationController
from .enrichment import StoryCard
from .extractor import extract_mentions
from .models import GREETING
from .renderer import render_html, render_story_card_text, render_text
from .transport import HttpChatTransport

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("songstream.yaml")


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------


def setup_logging(level: str) -> None:
    """Configure logging.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _indent(text: str, prefix: str = "● ") -> str:
    """Prefix the first line, indent the rest to match."""
    lines = text.split("\n")
    pad = " " * len(prefix)
    return "\n".join([f"{prefix}{lines[0]}"] + [f"{pad}{line}" for line in lines[1:]])


class TerminalPreview:
    """Live-preview observer that prints only the newly arrived suffix."""

    def __init__(self, out: TextIO = sys.stdout) -> None:
        self._out = out
        self._shown = 0

    def __call__(self, text: str) -> None:
        self._out.write(text[self._shown:])
        self._out.flush()
        self._shown = len(text)

    @property
    def started(self) -> bool:
        return self._shown > 0


# ---------------------------------------------------------------------------
# Command Implementations
# ---------------------------------------------------------------------------


def _render(source: TextIO, output_format: str) -> int:
    """Classify a finished response and print it."""
    text = source.read()
    node = classify(text)
    if output_format == "json":
        data = {
            "node": node.to_dict(),
            "mentions": [m.to_dict() for m in extract_mentions(text)],
        }
        print(json.dumps(data, indent=2, ensure_ascii=False))
    elif output_format == "html":
        print(render_html(node))
    else:
        print(render_text(node))
    return 0


async def _show_story(index: int, card: StoryCard) -> None:
    await card.request_story()
    print("\n" + render_story_card_text(index, card))


async def _chat(config: AppConfig) -> int:
    """Interactive chat loop.

    Commands:
        /story N   fetch the story for card N (runs in the background)
        /quit      leave
    """
    cards: list[StoryCard] = []
    pending: set[asyncio.Task] = set()

    async with HttpChatTransport(endpoint=config.client.endpoint) as transport:
        controller = ConversationController(transport, persona=config.client.persona)
        print(_indent(GREETING))

        while True:
            try:
                line = (await asyncio.to_thread(input, "\n❯ ")).strip()
            except EOFError:
                break
            if not line:
                continue
            if line in ("/quit", "/exit"):
                break

            if line.startswith("/story"):
                _, _, arg = line.partition(" ")
                if not arg.strip().isdigit() or not 1 <= int(arg) <= len(cards):
                    print(f"Usage: /story N  (1-{len(cards)})" if cards else "No tracks yet.")
                    continue
                index = int(arg)
                card = cards[index - 1]
                if not card.state.can_request:
                    print(render_story_card_text(index, card))
                    continue
                task = asyncio.create_task(_show_story(index, card), name=f"story_{index}")
                pending.add(task)
                task.add_done_callback(pending.discard)
                continue

            preview = TerminalPreview()
            try:
                turn = await controller.send(line, on_preview=preview)
            except ConversationBusyError:
                print("Still answering, please wait.")
                continue
            if turn is None:
                continue
            if preview.started:
                print("\n")
            print(_indent(render_text(turn.node)))

            for card in turn.stories:
                cards.append(card)
                print(render_story_card_text(len(cards), card))

        if pending:
            await asyncio.gather(*pending)
    return 0


async def _serve(config: AppConfig) -> int:
    """Run the chat endpoint until SIGINT/SIGTERM."""
    from .server import run_server

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown_event.set)

    await run_server(config.server, shutdown_event)
    return 0


# ---------------------------------------------------------------------------
# Argument Parser
# ---------------------------------------------------------------------------


def _create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="songstream",
        description="Music recommender chat with structured rendering and song stories",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to config file (default: ./{DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command")

    chat_parser = subparsers.add_parser("chat", help="Chat in the terminal")
    chat_parser.add_argument(
        "--endpoint",
        type=str,
        default=None,
        help="Chat endpoint URL (overrides config)",
    )

    render_parser = subparsers.add_parser("render", help="Render a finished response")
    render_parser.add_argument(
        "file",
        type=Path,
        nargs="?",
        default=None,
        help="File holding the response text (default: stdin)",
    )
    render_parser.add_argument(
        "-f",
        "--format",
        dest="output_format",
        choices=["text", "html", "json"],
        default="text",
        help="Output format (default: text)",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the chat endpoint server")
    serve_parser.add_argument("--host", type=str, default=None, help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=None, help="Port to bind to")

    return parser


# ---------------------------------------------------------------------------
# Main Entry Point
# ---------------------------------------------------------------------------


def main(args: list[str] | None = None) -> int:
    """Run the songstream CLI.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = _create_parser()
    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return 0

    setup_logging(parsed.log_level)

    try:
        config = load_config(parsed.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if parsed.command == "render":
        if parsed.file is None:
            return _render(sys.stdin, parsed.output_format)
        if not parsed.file.exists():
            print(f"Error: File not found: {parsed.file}", file=sys.stderr)
            return 1
        with open(parsed.file, encoding="utf-8") as f:
            return _render(f, parsed.output_format)

    if parsed.command == "chat":
        if parsed.endpoint:
            config.client.endpoint = parsed.endpoint
        try:
            return asyncio.run(_chat(config))
        except KeyboardInterrupt:
            return 0

    if parsed.command == "serve":
        if parsed.host:
            config.server.host = parsed.host
        if parsed.port:
            config.server.port = parsed.port
        try:
            return asyncio.run(_serve(config))
        except ConfigError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
