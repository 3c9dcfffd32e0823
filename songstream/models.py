"""Conversation and track data model.

This module defines the plain data carried between pipeline stages:
- Role / Message: one conversation entry as sent to the chat endpoint
- Candidate: a structured song suggestion parsed from one line of text
- TrackMention: a (title, artist) pair found anywhere in a response
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Role(Enum):
    """Conversation roles understood by the chat endpoint."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """A single conversation entry."""

    role: Role
    content: str

    def to_dict(self) -> dict:
        """Serialize to the wire shape ``{"role": ..., "content": ...}``."""
        return {
            "role": self.role.value,
            "content": self.content,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Message:
        """Deserialize from dictionary.

        Raises:
            ValueError: If the role is not one of system/user/assistant.
            KeyError: If a field is missing.
        """
        return cls(role=Role(data["role"]), content=data["content"])


@dataclass(frozen=True)
class Candidate:
    """A song suggestion extracted from one line of model output."""

    title: str
    artist: str
    genres: tuple[str, ...] = ()
    tempo: int | float | None = None
    reason: str | None = None

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "title": self.title,
            "artist": self.artist,
            "genres": list(self.genres),
            "tempo": self.tempo,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class TrackMention:
    """A ``Title — Artist`` mention detected in response text."""

    title: str
    artist: str

    @property
    def label(self) -> str:
        return f"{self.title} — {self.artist}"

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {"title": self.title, "artist": self.artist}


GREETING = (
    "Hey — I'm your Music Recommender. Tell me your vibe, artist, or a mood "
    "and I'll suggest songs, playlists, or artists you might like."
)


def initial_history() -> list[Message]:
    """Return the history a fresh conversation starts with."""
    return [Message(role=Role.ASSISTANT, content=GREETING)]


@dataclass
class Conversation:
    """Ordered message history for one chat session."""

    messages: list[Message] = field(default_factory=initial_history)

    def append(self, role: Role, content: str) -> Message:
        message = Message(role=role, content=content)
        self.messages.append(message)
        return message

    def to_payload(self, persona: str) -> dict:
        """Build the request body for the chat endpoint."""
        return {
            "messages": [m.to_dict() for m in self.messages],
            "persona": persona,
        }
