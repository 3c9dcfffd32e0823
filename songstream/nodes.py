"""Render tree produced by the content classifier.

A finished response is classified into exactly one RenderNode:
- Paragraph: plain text, line breaks preserved
- OrderedList / UnorderedList: one text item per list entry
- CandidateList: parsed Candidates or raw JSON values
- RawJsonBlock: pretty-printed JSON that matched no list shape
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Union

from .models import Candidate


@dataclass(frozen=True)
class Paragraph:
    """Fallback node holding the trimmed response text."""

    kind: ClassVar[str] = "paragraph"

    text: str

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {"kind": self.kind, "text": self.text}


@dataclass(frozen=True)
class OrderedList:
    """Numbered list of text items."""

    kind: ClassVar[str] = "ordered_list"

    items: tuple[str, ...]

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {"kind": self.kind, "items": list(self.items)}


@dataclass(frozen=True)
class UnorderedList:
    """Bulleted list of text items."""

    kind: ClassVar[str] = "unordered_list"

    items: tuple[str, ...]

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {"kind": self.kind, "items": list(self.items)}


@dataclass(frozen=True)
class CandidateList:
    """List of track suggestions.

    ``source`` names the rule that produced the list:
    - "ranked": items of a JSON ``ranked`` array, shown stringified
    - "results": items of a JSON ``results`` array, shown as track cards
    - "lines": Candidates parsed from individual text lines
    """

    kind: ClassVar[str] = "candidate_list"

    items: tuple[Any, ...]
    source: str = "lines"

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "kind": self.kind,
            "source": self.source,
            "items": [
                item.to_dict() if isinstance(item, Candidate) else item
                for item in self.items
            ],
        }


@dataclass(frozen=True)
class RawJsonBlock:
    """JSON value re-serialized with a 2-space indent."""

    kind: ClassVar[str] = "raw_json"

    pretty_text: str

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {"kind": self.kind, "pretty_text": self.pretty_text}


# Union type for all render nodes
RenderNode = Union[Paragraph, OrderedList, UnorderedList, CandidateList, RawJsonBlock]
