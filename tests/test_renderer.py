"""Tests for HTML and terminal rendering."""

from __future__ import annotations

import functools

import pytest

from conftest import FakeTransport, ndjson
from songstream.classifier import classify
from songstream.enrichment import StoryCard, fetch_story
from songstream.models import Candidate, TrackMention
from songstream.nodes import (
    CandidateList,
    OrderedList,
    Paragraph,
    RawJsonBlock,
    UnorderedList,
)
from songstream.renderer import (
    render_html,
    render_story_card_html,
    render_story_card_text,
    render_text,
)
from songstream.transport import TransportError

GET_LUCKY = Candidate(
    title="Get Lucky",
    artist="Daft Punk",
    genres=("funk", "disco"),
    tempo=116,
    reason="Iconic 2013 collaboration",
)


def _card(transport: FakeTransport) -> StoryCard:
    return StoryCard(
        TrackMention(title="Get Lucky", artist="Daft Punk"),
        functools.partial(fetch_story, transport),
    )


class TestRenderHtml:
    """HTML fragments per node type."""

    def test_paragraph_escapes_and_breaks_lines(self) -> None:
        html = render_html(Paragraph(text="<b>hi</b>\nthere"))

        assert html == "<p>&lt;b&gt;hi&lt;/b&gt;<br/>there</p>"

    def test_ordered_list(self) -> None:
        html = render_html(OrderedList(items=("Alpha", "B & C")))

        assert html == "<ol><li>Alpha</li><li>B &amp; C</li></ol>"

    def test_unordered_list(self) -> None:
        assert render_html(UnorderedList(items=("x",))) == "<ul><li>x</li></ul>"

    def test_track_cards(self) -> None:
        html = render_html(CandidateList(items=(GET_LUCKY,)))

        assert html.startswith('<ol><li class="track"><strong>Get Lucky</strong>')
        assert '<div class="meta">Daft Punk</div>' in html
        assert '<div class="meta">funk, disco</div>' in html
        assert '<div class="meta">tempo: 116</div>' in html
        assert '<div class="reason">Iconic 2013 collaboration</div>' in html

    def test_results_dicts_become_cards(self) -> None:
        node = CandidateList(items=({"title": "Night", "artist": "Chromeo"},), source="results")

        html = render_html(node)

        assert "<strong>Night</strong>" in html
        assert "reason" not in html

    def test_results_with_scalar_genres(self) -> None:
        node = classify('{"results":[{"title":"a","genres":5},{"title":"b"}]}')

        html = render_html(node)
        text = render_text(node)

        assert '<div class="meta">5</div>' in html
        assert "<strong>b</strong>" in html
        assert text.splitlines() == ["1. a", "   5", "2. b"]

    def test_ranked_items_stringified(self) -> None:
        html = render_html(CandidateList(items=({"i": 1},), source="ranked"))

        assert html == '<ol><li>{&quot;i&quot;:1}</li></ol>'

    def test_raw_json_preformatted(self) -> None:
        html = render_html(RawJsonBlock(pretty_text='{\n  "a": "<x>"\n}'))

        assert html.startswith('<pre style="white-space:pre-wrap">')
        assert "&lt;x&gt;" in html


class TestRenderText:
    """Terminal text per node type."""

    def test_paragraph(self) -> None:
        assert render_text(Paragraph(text="line one\nline two")) == "line one\nline two"

    def test_ordered_list_with_multiline_item(self) -> None:
        text = render_text(OrderedList(items=("Song one\nwhy", "Song two")))

        assert text == "1. Song one\n   why\n2. Song two"

    def test_ordered_list_aligns_numbers(self) -> None:
        text = render_text(OrderedList(items=tuple(str(i) for i in range(10))))

        assert text.splitlines()[0] == " 1. 0"
        assert text.splitlines()[-1] == "10. 9"

    def test_unordered_list(self) -> None:
        assert render_text(UnorderedList(items=("a", "b"))) == "• a\n• b"

    def test_track_lines(self) -> None:
        text = render_text(CandidateList(items=(GET_LUCKY,)))

        assert text.splitlines() == [
            "1. Get Lucky",
            "   Daft Punk",
            "   funk, disco",
            "   tempo: 116",
            "   └ Iconic 2013 collaboration",
        ]

    def test_raw_json(self) -> None:
        assert render_text(RawJsonBlock(pretty_text="{}")) == "{}"


class TestStoryCardRendering:
    """Story cards in each enrichment state."""

    def test_unfetched(self) -> None:
        card = _card(FakeTransport())

        assert render_story_card_text(1, card) == "♪ [1] Get Lucky — Daft Punk  (/story 1)"
        html = render_story_card_html(card)
        assert '<button class="story-btn">' in html
        assert "story-content" not in html

    @pytest.mark.asyncio
    async def test_loaded(self) -> None:
        card = _card(FakeTransport([ndjson("Recorded in Paris.")]))
        await card.request_story()

        assert render_story_card_text(2, card) == (
            "♪ [2] Get Lucky — Daft Punk\n  └ Recorded in Paris."
        )
        html = render_story_card_html(card)
        assert "story-btn" not in html
        assert '<div class="story-content">Recorded in Paris.</div>' in html

    @pytest.mark.asyncio
    async def test_failed_offers_retry(self) -> None:
        card = _card(FakeTransport(error=TransportError("down")))
        await card.request_story()

        assert render_story_card_text(1, card).endswith("└ Sorry, could not load story.")
        html = render_story_card_html(card)
        assert '<button class="story-btn">' in html
        assert "Sorry, could not load story." in html
