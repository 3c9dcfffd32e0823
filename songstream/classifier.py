"""Structural classification of a finished response.

``classify`` runs an ordered chain of rules over the trimmed text; each rule
either returns a RenderNode or None to fall through. The order is fixed:

1. JSON object/array
2. Separator-delimited blocks (``***`` / ``---`` lines)
3. Numbered list
4. Bulleted list
5. Candidate lines (``Title — Artist ...``)
6. Paragraph (always matches)

Every rule is a pure function of its input, so classification of identical
text always yields an identical tree.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable

from .candidates import parse_candidate_line
from .nodes import (
    CandidateList,
    OrderedList,
    Paragraph,
    RawJsonBlock,
    RenderNode,
    UnorderedList,
)

_LINE_SPLIT_RE = re.compile(r"\r?\n")
_SEPARATOR_LINE_RE = re.compile(r"^[*\-]{3,}$")
_SEPARATOR_SPLIT_RE = re.compile(r"^[ \t]*(?:\*{3,}|-{3,})[ \t]*\r?$", re.MULTILINE)
_NUMBERED_RE = re.compile(r"^\d+[.)]\s")
_NUMBER_PREFIX_RE = re.compile(r"^\d+[.)]\s*")
_BULLET_RE = re.compile(r"^[-*•]")
_BULLET_PREFIX_RE = re.compile(r"^[-*•]\s*")

# Minimum matching lines (or segments) before a list shape is accepted
MIN_LIST_ITEMS = 2

Rule = Callable[[str], "RenderNode | None"]


def _non_empty_lines(text: str) -> list[str]:
    lines = (line.strip() for line in _LINE_SPLIT_RE.split(text))
    return [line for line in lines if line]


def _stringify(value: object) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def _classify_json(text: str) -> RenderNode | None:
    """Rule 1: machine-readable payloads win when present."""
    if not text.startswith(("{", "[")):
        return None
    try:
        value = json.loads(text)
    except (ValueError, RecursionError):
        return None

    if isinstance(value, dict):
        if isinstance(value.get("ranked"), list):
            return CandidateList(items=tuple(value["ranked"]), source="ranked")
        if isinstance(value.get("results"), list):
            return CandidateList(items=tuple(value["results"]), source="results")
    if isinstance(value, list):
        return OrderedList(items=tuple(_stringify(item) for item in value))
    return RawJsonBlock(pretty_text=json.dumps(value, indent=2, ensure_ascii=False))


def _classify_separated(text: str) -> RenderNode | None:
    """Rule 2: blocks separated by lines of ``***`` or ``---``."""
    if not any(_SEPARATOR_LINE_RE.match(line) for line in _non_empty_lines(text)):
        return None
    segments = [seg.strip() for seg in _SEPARATOR_SPLIT_RE.split(text)]
    segments = [seg for seg in segments if seg]
    if len(segments) < MIN_LIST_ITEMS:
        return None
    return OrderedList(items=tuple(segments))


def _classify_numbered(text: str) -> RenderNode | None:
    """Rule 3: at least two ``1.`` / ``1)`` lines."""
    lines = _non_empty_lines(text)
    if sum(1 for line in lines if _NUMBERED_RE.match(line)) < MIN_LIST_ITEMS:
        return None
    return OrderedList(items=tuple(_NUMBER_PREFIX_RE.sub("", line, count=1) for line in lines))


def _classify_bulleted(text: str) -> RenderNode | None:
    """Rule 4: at least two ``-`` / ``*`` / ``•`` lines."""
    lines = _non_empty_lines(text)
    if sum(1 for line in lines if _BULLET_RE.match(line)) < MIN_LIST_ITEMS:
        return None
    return UnorderedList(items=tuple(_BULLET_PREFIX_RE.sub("", line, count=1) for line in lines))


def _classify_candidates(text: str) -> RenderNode | None:
    """Rule 5: at least two lines that parse as candidates."""
    parsed = [parse_candidate_line(line) for line in _non_empty_lines(text)]
    candidates = tuple(c for c in parsed if c is not None)
    if len(candidates) < MIN_LIST_ITEMS:
        return None
    return CandidateList(items=candidates, source="lines")


def _classify_paragraph(text: str) -> RenderNode:
    """Rule 6: fallback."""
    return Paragraph(text=text)


RULES: tuple[Rule, ...] = (
    _classify_json,
    _classify_separated,
    _classify_numbered,
    _classify_bulleted,
    _classify_candidates,
    _classify_paragraph,
)


def classify(text: str) -> RenderNode:
    """Classify a finished response into a single RenderNode."""
    trimmed = text.strip()
    for rule in RULES:
        node = rule(trimmed)
        if node is not None:
            return node
    # _classify_paragraph always matches
    return Paragraph(text=trimmed)
