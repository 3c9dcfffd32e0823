"""Conversation-turn controller.

Owns the chat history and the "a main request is in flight" state. Only one
main turn runs at a time; story fetches started from a turn's cards are
independent of it and of each other.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .classifier import classify
from .enrichment import DEFAULT_PERSONA, StoryCard, fetch_story
from .extractor import extract_mentions
from .models import Conversation, Role
from .nodes import Paragraph, RenderNode
from .reader import Accumulator, PreviewCallback, read_response

if TYPE_CHECKING:
    from .protocol import ChatTransport

logger = logging.getLogger(__name__)

ERROR_MESSAGE = "Sorry, there was an error processing your request."


class ConversationBusyError(Exception):
    """A send was attempted while another main turn is in flight."""

    pass


class EmptyResponseError(Exception):
    """The chat endpoint streamed no response text."""

    pass


@dataclass(frozen=True)
class AssistantTurn:
    """The rendered outcome of one main conversation turn."""

    text: str
    node: RenderNode
    stories: tuple[StoryCard, ...] = ()
    failed: bool = False


class ConversationController:
    """Sends user messages and turns the streamed replies into render trees."""

    def __init__(
        self,
        transport: ChatTransport,
        persona: str = DEFAULT_PERSONA,
        conversation: Conversation | None = None,
    ) -> None:
        self.transport = transport
        self.persona = persona
        self.conversation = conversation if conversation is not None else Conversation()
        self._sending = False

    @property
    def sending(self) -> bool:
        """True while a main turn is in flight."""
        return self._sending

    @asynccontextmanager
    async def _in_flight(self) -> AsyncIterator[None]:
        """Hold the sending state for one turn, releasing it on every exit path."""
        if self._sending:
            raise ConversationBusyError("A response is already in progress")
        self._sending = True
        try:
            yield
        finally:
            self._sending = False

    def build_turn(self, text: str) -> AssistantTurn:
        """Classify finished text and attach one story card per mention."""
        fetcher = functools.partial(fetch_story, self.transport, persona=self.persona)
        stories = tuple(StoryCard(mention, fetcher) for mention in extract_mentions(text))
        return AssistantTurn(text=text, node=classify(text), stories=stories)

    async def send(
        self,
        text: str,
        on_preview: PreviewCallback | None = None,
    ) -> AssistantTurn | None:
        """Send one user message and read the assistant reply.

        Args:
            text: The user's message; blank messages are ignored.
            on_preview: Called with the accumulated reply after every fragment.

        Returns:
            The finished turn, a fallback error turn if the request failed,
            or None for a blank message.

        Raises:
            ConversationBusyError: If another turn is still in flight.
        """
        message = text.strip()
        if not message:
            return None

        async with self._in_flight():
            self.conversation.append(Role.USER, message)
            payload = self.conversation.to_payload(self.persona)

            accumulator = Accumulator()
            if on_preview is not None:
                accumulator.subscribe(on_preview)

            try:
                result = await read_response(self.transport.stream_chat(payload), accumulator)
                if not result.text.strip():
                    raise EmptyResponseError("No response text received")
            except Exception:
                logger.exception(
                    "chat_turn_failed",
                    extra={"history_length": len(self.conversation.messages)},
                )
                return AssistantTurn(
                    text=ERROR_MESSAGE,
                    node=Paragraph(text=ERROR_MESSAGE),
                    failed=True,
                )

            self.conversation.append(Role.ASSISTANT, result.text)
            logger.info(
                "chat_turn_completed",
                extra={"fragments": accumulator.fragment_count, "length": len(result.text)},
            )
            return self.build_turn(result.text)
