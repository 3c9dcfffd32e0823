"""System prompts and persona selection for the chat endpoint."""

from __future__ import annotations

SYSTEM_PROMPT = (
    "You are a helpful, friendly assistant. Provide concise and accurate responses."
)

MUSIC_SYSTEM_PROMPT = (
    "You are an expert music recommender assistant. When the user asks for music "
    "suggestions, prioritize understanding their mood, genres, artists, tempo, and "
    "use-cases (e.g. workout, study, chill, party). Offer short curated recommendations "
    "(3-7 items) with a 1-2 sentence reason for each. When appropriate, include metadata "
    "for each suggestion such as artist, genres, tempo (bpm), and an energy descriptor "
    "(low/medium/high). Ask a single clarifying question if the user's input is "
    "ambiguous. Prefer concise, list-style responses and, when asked, return "
    "machine-readable JSON if the client requests it."
)

_PERSONA_PROMPTS: dict[str, str] = {
    "music": MUSIC_SYSTEM_PROMPT,
}


def resolve_system_prompt(persona: str | None = None, system: str | None = None) -> str:
    """Pick the system prompt: an explicit ``system`` string beats the persona."""
    if isinstance(system, str) and system:
        return system
    return _PERSONA_PROMPTS.get(persona or "", SYSTEM_PROMPT)


def with_system_prompt(
    messages: list[dict],
    persona: str | None = None,
    system: str | None = None,
) -> list[dict]:
    """Return the messages with a system prompt at position 0.

    Messages that already contain a system entry are returned unchanged, so a
    conversation never carries two system prompts.
    """
    if any(m.get("role") == "system" for m in messages):
        return list(messages)
    prompt = resolve_system_prompt(persona, system)
    return [{"role": "system", "content": prompt}, *messages]
