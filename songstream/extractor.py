"""Track mention extraction, independent of structural classification."""

from __future__ import annotations

import re

from .models import TrackMention

_LINE_SPLIT_RE = re.compile(r"\r?\n")

# "1. Title — Artist" with an optional trailing "[...]"
_ORDINAL_LINE_RE = re.compile(r"^\s*\d+\.\s*(.+?)\s*—\s*(.+?)(?:\s*\[|$)")

_SPAN_CHARS = r"[A-Za-z0-9'’:&,.!\-\s]{2,80}"
_LOOSE_SPAN_RE = re.compile(rf"({_SPAN_CHARS})\s+—\s+({_SPAN_CHARS})")


def _from_ordinal_lines(text: str) -> list[TrackMention]:
    mentions: list[TrackMention] = []
    for line in _LINE_SPLIT_RE.split(text):
        match = _ORDINAL_LINE_RE.match(line)
        if match:
            mentions.append(
                TrackMention(title=match.group(1).strip(), artist=match.group(2).strip())
            )
    return mentions


def _from_loose_spans(text: str) -> list[TrackMention]:
    return [
        TrackMention(title=match.group(1).strip(), artist=match.group(2).strip())
        for match in _LOOSE_SPAN_RE.finditer(text)
    ]


def extract_mentions(text: str) -> list[TrackMention]:
    """Find ``Title — Artist`` mentions in response text.

    Numbered lines are tried first; only when none match is the whole text
    scanned for looser spans. Mentions are returned in order of appearance
    and are not deduplicated.
    """
    if not text:
        return []
    mentions = _from_ordinal_lines(text)
    if mentions:
        return mentions
    return _from_loose_spans(text)
