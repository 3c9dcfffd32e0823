"""Rendering of RenderNodes and story cards.

Two surfaces are supported: HTML fragments for a browser front end, and
plain terminal text for the CLI. Both dispatch on the node type through a
lookup table.
"""

from __future__ import annotations

import html
import json
from collections.abc import Callable
from typing import Any

from .enrichment import EnrichmentStatus, StoryCard
from .models import Candidate
from .nodes import (
    CandidateList,
    OrderedList,
    Paragraph,
    RawJsonBlock,
    RenderNode,
    UnorderedList,
)


def _escape(value: object) -> str:
    return html.escape(str(value), quote=True)


def _stringify(item: Any) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, Candidate):
        item = item.to_dict()
    return json.dumps(item, ensure_ascii=False, separators=(",", ":"))


def _track_fields(item: Any) -> dict:
    """Normalize a candidate-list item to a track dict."""
    if isinstance(item, Candidate):
        return item.to_dict()
    if isinstance(item, str):
        return {"title": item}
    if isinstance(item, dict):
        return item
    return {"title": _stringify(item)}


def _genres_text(track: dict) -> str:
    genres = track.get("genres")
    if not genres:
        return ""
    if isinstance(genres, str):
        return genres
    if isinstance(genres, (list, tuple)):
        return ", ".join(str(g) for g in genres)
    return _stringify(genres)


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------


def _html_paragraph(node: Paragraph) -> str:
    return f"<p>{_escape(node.text).replace(chr(10), '<br/>')}</p>"


def _html_items(tag: str, items: tuple[str, ...]) -> str:
    return f"<{tag}>" + "".join(f"<li>{_escape(i)}</li>" for i in items) + f"</{tag}>"


def _html_ordered(node: OrderedList) -> str:
    return _html_items("ol", node.items)


def _html_unordered(node: UnorderedList) -> str:
    return _html_items("ul", node.items)


def _html_track(item: Any) -> str:
    track = _track_fields(item)
    parts = [f"<strong>{_escape(track.get('title') or 'Untitled')}</strong>"]
    if track.get("artist"):
        parts.append(f'<div class="meta">{_escape(track["artist"])}</div>')
    genres = _genres_text(track)
    if genres:
        parts.append(f'<div class="meta">{_escape(genres)}</div>')
    if track.get("tempo"):
        parts.append(f'<div class="meta">tempo: {_escape(track["tempo"])}</div>')
    if track.get("reason"):
        parts.append(f'<div class="reason">{_escape(track["reason"])}</div>')
    return '<li class="track">' + "".join(parts) + "</li>"


def _html_candidates(node: CandidateList) -> str:
    if node.source == "ranked":
        return _html_items("ol", tuple(_stringify(i) for i in node.items))
    return "<ol>" + "".join(_html_track(i) for i in node.items) + "</ol>"


def _html_raw_json(node: RawJsonBlock) -> str:
    return f'<pre style="white-space:pre-wrap">{_escape(node.pretty_text)}</pre>'


_HTML_RENDERERS: dict[type, Callable[[Any], str]] = {
    Paragraph: _html_paragraph,
    OrderedList: _html_ordered,
    UnorderedList: _html_unordered,
    CandidateList: _html_candidates,
    RawJsonBlock: _html_raw_json,
}


def render_html(node: RenderNode) -> str:
    """Render a node as an HTML fragment with all text escaped."""
    renderer = _HTML_RENDERERS.get(type(node))
    if renderer is None:
        return ""
    return renderer(node)


def render_story_card_html(card: StoryCard) -> str:
    """Render a story card: label, action button, and current story text."""
    state = card.state
    parts = [f'<div class="story-label">{_escape(card.label)}</div>']
    if state.can_request:
        parts.append('<button class="story-btn">Tell me the story</button>')
    elif state.status is EnrichmentStatus.LOADING:
        parts.append('<button class="story-btn" disabled>Loading…</button>')
    if state.display_text and state.status is not EnrichmentStatus.LOADING:
        parts.append(f'<div class="story-content">{_escape(state.display_text)}</div>')
    return '<div class="story-card">' + "".join(parts) + "</div>"


# ---------------------------------------------------------------------------
# Terminal text
# ---------------------------------------------------------------------------


def _indent_block(text: str, first_prefix: str, indent: str) -> str:
    lines = text.split("\n")
    return "\n".join([f"{first_prefix}{lines[0]}"] + [f"{indent}{line}" for line in lines[1:]])


def _text_paragraph(node: Paragraph) -> str:
    return node.text


def _text_ordered(node: OrderedList) -> str:
    width = len(str(len(node.items)))
    blocks = []
    for index, item in enumerate(node.items, start=1):
        prefix = f"{index:>{width}}. "
        blocks.append(_indent_block(item, prefix, " " * len(prefix)))
    return "\n".join(blocks)


def _text_unordered(node: UnorderedList) -> str:
    return "\n".join(_indent_block(item, "• ", "  ") for item in node.items)


def _text_track(index: int, item: Any) -> str:
    track = _track_fields(item)
    lines = [f"{index}. {track.get('title') or 'Untitled'}"]
    if track.get("artist"):
        lines.append(f"   {track['artist']}")
    genres = _genres_text(track)
    if genres:
        lines.append(f"   {genres}")
    if track.get("tempo"):
        lines.append(f"   tempo: {track['tempo']}")
    if track.get("reason"):
        lines.append(f"   └ {track['reason']}")
    return "\n".join(lines)


def _text_candidates(node: CandidateList) -> str:
    if node.source == "ranked":
        return _text_ordered(OrderedList(items=tuple(_stringify(i) for i in node.items)))
    return "\n".join(_text_track(i, item) for i, item in enumerate(node.items, start=1))


def _text_raw_json(node: RawJsonBlock) -> str:
    return node.pretty_text


_TEXT_RENDERERS: dict[type, Callable[[Any], str]] = {
    Paragraph: _text_paragraph,
    OrderedList: _text_ordered,
    UnorderedList: _text_unordered,
    CandidateList: _text_candidates,
    RawJsonBlock: _text_raw_json,
}


def render_text(node: RenderNode) -> str:
    """Render a node as plain terminal text."""
    renderer = _TEXT_RENDERERS.get(type(node))
    if renderer is None:
        return ""
    return renderer(node)


def render_story_card_text(index: int, card: StoryCard) -> str:
    """Render a numbered story card line, followed by its story if any."""
    line = f"♪ [{index}] {card.label}"
    status = card.state.status
    if status is EnrichmentStatus.UNFETCHED:
        return f"{line}  (/story {index})"
    if status is EnrichmentStatus.LOADING:
        return f"{line}  …"
    return line + "\n" + _indent_block(card.state.display_text, "  └ ", "    ")
