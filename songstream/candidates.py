"""Single-line parsing of ``Title — Artist [genres] (meta) — reason`` suggestions."""

from __future__ import annotations

import re

from .models import Candidate

# 1. Title — Artist [genre, genre] (tempo:120, energy:high) — reason
_CANDIDATE_RE = re.compile(
    r"^(?:\d+[.)]\s*)?"
    r"(?P<title>.+?)\s+[—-]\s+"
    r"(?P<artist>[^\[\]()]+?)"
    r"(?:\s*\[(?P<genres>[^\]]+)\])?"
    r"(?:\s*\((?P<meta>[^)]+)\))?"
    r"(?:\s+[—-]\s+(?P<reason>.+))?"
    r"\s*$"
)

_TEMPO_RE = re.compile(r"tempo\s*[:=]\s*(\d+(?:\.\d+)?)", re.IGNORECASE)


def _split_list(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _parse_tempo(meta: tuple[str, ...]) -> int | float | None:
    match = _TEMPO_RE.search(" ".join(meta))
    if match is None:
        return None
    raw = match.group(1)
    return float(raw) if "." in raw else int(raw)


def parse_candidate_line(line: str) -> Candidate | None:
    """Parse one line into a Candidate.

    Only ``tempo`` is read from the parenthesized metadata; other tokens are
    ignored.

    Args:
        line: A single line of response text.

    Returns:
        The Candidate, or None when the line has no ``Title — Artist`` shape.
    """
    match = _CANDIDATE_RE.match(line.strip())
    if match is None:
        return None

    title = match.group("title").strip()
    artist = match.group("artist").strip()
    if not title or not artist:
        return None

    reason = match.group("reason")
    return Candidate(
        title=title,
        artist=artist,
        genres=_split_list(match.group("genres")),
        tempo=_parse_tempo(_split_list(match.group("meta"))),
        reason=reason.strip() if reason else None,
    )
