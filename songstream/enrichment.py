"""On-demand song stories for detected track mentions.

Each TrackMention gets a StoryCard owning an EnrichmentState:

    unfetched ──request──▶ loading ──▶ loaded(text)
                              │
                              └──────▶ failed ──request──▶ loading

Cards never share state; any number of story fetches may run concurrently,
each reading its reply into its own private Accumulator.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .models import Message, Role, TrackMention
from .reader import Accumulator, read_response

if TYPE_CHECKING:
    from .protocol import ChatTransport

logger = logging.getLogger(__name__)

DEFAULT_PERSONA = "music"

STORY_PROMPT = (
    'Write a short 2-3 sentence engaging story about the song "{title}" by {artist}. '
    "Mention influences, notable facts, or recording anecdotes when possible."
)

FAILED_MESSAGE = "Sorry, could not load story."


# ---------------------------------------------------------------------------
# Custom Exceptions
# ---------------------------------------------------------------------------


class EnrichmentError(Exception):
    """Base exception for story enrichment."""

    pass


class EmptyStoryError(EnrichmentError):
    """The story stream ended without any text."""

    pass


class InvalidTransitionError(EnrichmentError):
    """An EnrichmentState transition not allowed from the current status."""

    pass


# ---------------------------------------------------------------------------
# Fetcher
# ---------------------------------------------------------------------------


def build_story_payload(title: str, artist: str, persona: str = DEFAULT_PERSONA) -> dict:
    """Build the single-message request body for a story."""
    prompt = STORY_PROMPT.format(title=title, artist=artist)
    return {
        "messages": [Message(role=Role.USER, content=prompt).to_dict()],
        "persona": persona,
    }


async def fetch_story(
    transport: ChatTransport,
    title: str,
    artist: str,
    persona: str = DEFAULT_PERSONA,
) -> str:
    """Fetch a short narrative about one song.

    The reply is read into a fresh Accumulator that nothing else writes to.
    When no ``response`` fragments could be extracted, the raw decoded reply
    is returned instead.

    Raises:
        TransportError: Non-success status or network failure.
        EmptyStoryError: The reply contained no text at all.
    """
    payload = build_story_payload(title, artist, persona)
    logger.debug("story_fetch_started", extra={"title": title, "artist": artist})

    result = await read_response(transport.stream_chat(payload), Accumulator())

    story = result.text.strip()
    if not story:
        story = result.raw_text.strip()
        if story:
            logger.info(
                "story_raw_fallback",
                extra={"title": title, "artist": artist, "skipped_lines": result.skipped_lines},
            )
    if not story:
        raise EmptyStoryError(f"Empty story for {title!r} by {artist!r}")

    logger.debug("story_fetch_completed", extra={"title": title, "length": len(story)})
    return story


# ---------------------------------------------------------------------------
# EnrichmentState
# ---------------------------------------------------------------------------


class EnrichmentStatus(Enum):
    UNFETCHED = "unfetched"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class EnrichmentState:
    """Immutable FSM value; transitions return a new state.

    Only ``loaded`` carries text.
    """

    status: EnrichmentStatus = EnrichmentStatus.UNFETCHED
    text: str | None = None

    @property
    def can_request(self) -> bool:
        return self.status in (EnrichmentStatus.UNFETCHED, EnrichmentStatus.FAILED)

    def start(self) -> EnrichmentState:
        if not self.can_request:
            raise InvalidTransitionError(f"Cannot request a story while {self.status.value}")
        return EnrichmentState(status=EnrichmentStatus.LOADING)

    def succeed(self, text: str) -> EnrichmentState:
        if self.status is not EnrichmentStatus.LOADING:
            raise InvalidTransitionError(f"Cannot load a story while {self.status.value}")
        return EnrichmentState(status=EnrichmentStatus.LOADED, text=text)

    def fail(self) -> EnrichmentState:
        if self.status is not EnrichmentStatus.LOADING:
            raise InvalidTransitionError(f"Cannot fail a story while {self.status.value}")
        return EnrichmentState(status=EnrichmentStatus.FAILED)

    @property
    def display_text(self) -> str:
        """Text to show under the card for this state."""
        if self.status is EnrichmentStatus.LOADED:
            return self.text or ""
        if self.status is EnrichmentStatus.FAILED:
            return FAILED_MESSAGE
        if self.status is EnrichmentStatus.LOADING:
            return "Loading…"
        return ""


# ---------------------------------------------------------------------------
# StoryCard
# ---------------------------------------------------------------------------

# (title, artist) -> story text
StoryFetcher = Callable[[str, str], Awaitable[str]]


class StoryCard:
    """Affordance exposing a single "request story" action for one mention."""

    def __init__(self, mention: TrackMention, fetcher: StoryFetcher) -> None:
        self.mention = mention
        self._fetcher = fetcher
        self.state = EnrichmentState()

    @property
    def label(self) -> str:
        return self.mention.label

    async def request_story(self) -> EnrichmentState:
        """Fetch the story, moving through loading to loaded or failed.

        Failures are recorded on the card rather than raised, and the card
        can be requested again.

        Raises:
            InvalidTransitionError: If the story is loading or already loaded.
        """
        self.state = self.state.start()
        try:
            text = await self._fetcher(self.mention.title, self.mention.artist)
        except Exception:
            logger.exception(
                "story_fetch_failed",
                extra={"title": self.mention.title, "artist": self.mention.artist},
            )
            self.state = self.state.fail()
        else:
            self.state = self.state.succeed(text)
        return self.state
