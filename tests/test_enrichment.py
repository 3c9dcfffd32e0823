"""Tests for story fetching and the per-mention enrichment state machine."""

from __future__ import annotations

import asyncio
import functools

import pytest

from conftest import FakeTransport, ndjson
from songstream.enrichment import (
    FAILED_MESSAGE,
    EmptyStoryError,
    EnrichmentState,
    EnrichmentStatus,
    InvalidTransitionError,
    StoryCard,
    build_story_payload,
    fetch_story,
)
from songstream.models import TrackMention
from songstream.transport import TransportError


# ---------------------------------------------------------------------------
# fetch_story
# ---------------------------------------------------------------------------


class TestBuildStoryPayload:
    """Tests for the outbound request body."""

    def test_single_user_message_with_persona(self) -> None:
        payload = build_story_payload("Get Lucky", "Daft Punk")

        assert payload["persona"] == "music"
        assert len(payload["messages"]) == 1
        message = payload["messages"][0]
        assert message["role"] == "user"
        assert '"Get Lucky" by Daft Punk' in message["content"]
        assert "2-3 sentence" in message["content"]


class TestFetchStory:
    """Tests for reducing a streamed reply to story text."""

    @pytest.mark.asyncio
    async def test_accumulates_fragments(self) -> None:
        transport = FakeTransport([ndjson("  Recorded in Paris", ", 2013.  ")])

        story = await fetch_story(transport, "Get Lucky", "Daft Punk")

        assert story == "Recorded in Paris, 2013."
        assert transport.payloads == [build_story_payload("Get Lucky", "Daft Punk")]

    @pytest.mark.asyncio
    async def test_raw_text_fallback(self) -> None:
        """A reply without protocol lines is returned as raw text."""
        transport = FakeTransport([b"A plain-text story.\n"])

        story = await fetch_story(transport, "Night", "Chromeo")

        assert story == "A plain-text story."

    @pytest.mark.asyncio
    async def test_empty_reply_raises(self) -> None:
        transport = FakeTransport([b"\n\n"])

        with pytest.raises(EmptyStoryError):
            await fetch_story(transport, "Night", "Chromeo")

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self) -> None:
        transport = FakeTransport(error=TransportError("HTTP 500", status=500))

        with pytest.raises(TransportError) as exc_info:
            await fetch_story(transport, "Night", "Chromeo")

        assert exc_info.value.status == 500


# ---------------------------------------------------------------------------
# EnrichmentState
# ---------------------------------------------------------------------------


class TestEnrichmentState:
    """Tests for FSM transitions."""

    def test_initial_state(self) -> None:
        state = EnrichmentState()

        assert state.status is EnrichmentStatus.UNFETCHED
        assert state.text is None
        assert state.can_request

    def test_happy_path(self) -> None:
        state = EnrichmentState().start().succeed("story")

        assert state.status is EnrichmentStatus.LOADED
        assert state.text == "story"
        assert state.display_text == "story"
        assert not state.can_request

    def test_failed_carries_no_text_and_is_retryable(self) -> None:
        failed = EnrichmentState().start().fail()

        assert failed.status is EnrichmentStatus.FAILED
        assert failed.text is None
        assert failed.display_text == FAILED_MESSAGE
        assert failed.start().status is EnrichmentStatus.LOADING

    def test_cannot_start_while_loading(self) -> None:
        with pytest.raises(InvalidTransitionError):
            EnrichmentState().start().start()

    def test_cannot_start_when_loaded(self) -> None:
        with pytest.raises(InvalidTransitionError):
            EnrichmentState().start().succeed("x").start()

    def test_cannot_finish_without_loading(self) -> None:
        with pytest.raises(InvalidTransitionError):
            EnrichmentState().succeed("x")
        with pytest.raises(InvalidTransitionError):
            EnrichmentState().fail()


# ---------------------------------------------------------------------------
# StoryCard
# ---------------------------------------------------------------------------


def _card(transport: FakeTransport, title: str = "Get Lucky", artist: str = "Daft Punk") -> StoryCard:
    return StoryCard(
        TrackMention(title=title, artist=artist),
        functools.partial(fetch_story, transport),
    )


class TestStoryCard:
    """Tests for the request-story affordance."""

    @pytest.mark.asyncio
    async def test_request_loads_story(self) -> None:
        card = _card(FakeTransport([ndjson("A story.")]))

        state = await card.request_story()

        assert state.status is EnrichmentStatus.LOADED
        assert card.state.text == "A story."

    @pytest.mark.asyncio
    async def test_loading_while_in_flight(self) -> None:
        card = _card(FakeTransport([ndjson("A story.")], delay=0.01))

        task = asyncio.create_task(card.request_story())
        await asyncio.sleep(0)

        assert card.state.status is EnrichmentStatus.LOADING
        with pytest.raises(InvalidTransitionError):
            await card.request_story()
        await task
        assert card.state.status is EnrichmentStatus.LOADED

    @pytest.mark.asyncio
    async def test_failure_then_retry(self) -> None:
        transport = FakeTransport([ndjson("Second time lucky.")], error=TransportError("down"))
        card = _card(transport)

        failed = await card.request_story()
        assert failed.status is EnrichmentStatus.FAILED

        transport.error = None
        loaded = await card.request_story()

        assert loaded.status is EnrichmentStatus.LOADED
        assert loaded.text == "Second time lucky."
        assert len(transport.payloads) == 2

    @pytest.mark.asyncio
    async def test_concurrent_cards_are_independent(self) -> None:
        """Two concurrent fetches each end with their own text."""

        def responder(payload: dict) -> list[bytes]:
            content = payload["messages"][0]["content"]
            if "Get Lucky" in content:
                return [ndjson("Lucky ", "story.")]
            return [ndjson("Night ", "story.")]

        transport = FakeTransport(responder=responder, delay=0.005)
        lucky = _card(transport, "Get Lucky", "Daft Punk")
        night = _card(transport, "Night", "Chromeo")

        await asyncio.gather(lucky.request_story(), night.request_story())

        assert lucky.state.text == "Lucky story."
        assert night.state.text == "Night story."

    @pytest.mark.asyncio
    async def test_failure_of_one_card_leaves_other_untouched(self) -> None:
        good = _card(FakeTransport([ndjson("Fine.")]))
        bad = _card(FakeTransport(error=TransportError("boom")), "Night", "Chromeo")

        await asyncio.gather(good.request_story(), bad.request_story())

        assert good.state.status is EnrichmentStatus.LOADED
        assert bad.state.status is EnrichmentStatus.FAILED
