"""Line protocol reader: decoded text → JSON lines → accumulated response.

Each complete line of the stream is expected to be a JSON object carrying an
incremental text fragment in its ``response`` field. Fragments are appended
in arrival order to an Accumulator, whose observers receive the whole text
so far after every append (live preview). Lines that are not JSON objects or
have no usable ``response`` are skipped.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterable, Callable
from dataclasses import dataclass

from .decoder import StreamDecoder

logger = logging.getLogger(__name__)

# Observer signature: receives the whole accumulated text after each append
PreviewCallback = Callable[[str], None]


# ---------------------------------------------------------------------------
# Accumulator
# ---------------------------------------------------------------------------


class Accumulator:
    """Append-only text buffer for one response.

    Owned by exactly one in-flight fetch. Observers are notified
    synchronously after every append; an observer that raises is logged and
    does not affect the buffer or the other observers.
    """

    def __init__(self) -> None:
        self._parts: list[str] = []
        self._text = ""
        self._observers: list[PreviewCallback] = []

    @property
    def text(self) -> str:
        return self._text

    @property
    def fragment_count(self) -> int:
        return len(self._parts)

    def __bool__(self) -> bool:
        return bool(self._text)

    def subscribe(self, observer: PreviewCallback) -> None:
        """Register an observer for append notifications."""
        self._observers.append(observer)

    def unsubscribe(self, observer: PreviewCallback) -> None:
        """Remove an observer.

        Raises:
            ValueError: If the observer is not subscribed.
        """
        self._observers.remove(observer)

    def append(self, fragment: str) -> None:
        """Append a fragment and notify observers."""
        self._parts.append(fragment)
        self._text += fragment
        for observer in list(self._observers):
            try:
                observer(self._text)
            except Exception:
                logger.exception(
                    "preview_observer_failed",
                    extra={"observer": getattr(observer, "__qualname__", repr(observer))},
                )

    def reset(self) -> None:
        """Clear the buffer for the next response. Observers are kept."""
        self._parts.clear()
        self._text = ""


# ---------------------------------------------------------------------------
# Line splitting
# ---------------------------------------------------------------------------


class LineBuffer:
    """Splits streamed text into complete lines.

    Text after the last newline of a chunk is held and prefixed onto the next
    chunk. A trailing ``\\r`` is removed from each line.
    """

    def __init__(self) -> None:
        self._pending = ""

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, text: str) -> list[str]:
        """Add text and return the lines it completes."""
        if not text:
            return []
        lines = (self._pending + text).split("\n")
        self._pending = lines.pop()
        return [line[:-1] if line.endswith("\r") else line for line in lines]

    def discard(self) -> str:
        """Drop the incomplete tail at end-of-stream and return it."""
        dropped, self._pending = self._pending, ""
        if dropped:
            logger.debug("partial_line_discarded", extra={"length": len(dropped)})
        return dropped


# ---------------------------------------------------------------------------
# Fragment parsing
# ---------------------------------------------------------------------------


def parse_fragment(line: str) -> str | None:
    """Extract the ``response`` text from one protocol line.

    Returns:
        The fragment, or None for blank, malformed, non-object or
        fieldless lines.
    """
    stripped = line.strip()
    if not stripped:
        return None
    try:
        obj = json.loads(stripped)
    except (ValueError, RecursionError) as exc:
        logger.debug("line_not_json", extra={"error": str(exc)})
        return None
    if not isinstance(obj, dict):
        return None
    fragment = obj.get("response")
    if not isinstance(fragment, str) or not fragment:
        return None
    return fragment


class LineProtocolReader:
    """Feeds decoded text through line splitting into an Accumulator."""

    def __init__(self, accumulator: Accumulator) -> None:
        self.accumulator = accumulator
        self._lines = LineBuffer()
        self.skipped_lines = 0

    def feed(self, text: str) -> int:
        """Process decoded text.

        Returns:
            Number of fragments appended to the accumulator.
        """
        appended = 0
        for line in self._lines.feed(text):
            fragment = parse_fragment(line)
            if fragment is None:
                if line.strip():
                    self.skipped_lines += 1
                continue
            self.accumulator.append(fragment)
            appended += 1
        return appended

    def finish(self) -> None:
        """End-of-stream: an unterminated trailing line is not a complete line."""
        self._lines.discard()


# ---------------------------------------------------------------------------
# Stream driver
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StreamResult:
    """Outcome of reading one response stream."""

    text: str
    raw_text: str
    skipped_lines: int = 0


async def read_response(
    chunks: AsyncIterable[bytes],
    accumulator: Accumulator | None = None,
) -> StreamResult:
    """Read a whole response stream into an accumulator.

    Args:
        chunks: Byte chunks as delivered by the transport.
        accumulator: Buffer to fill; a private one is created when omitted.

    Returns:
        The accumulated text and the raw decoded stream text.
    """
    if accumulator is None:
        accumulator = Accumulator()
    decoder = StreamDecoder()
    reader = LineProtocolReader(accumulator)
    raw_parts: list[str] = []

    async for chunk in chunks:
        text = decoder.decode(chunk)
        raw_parts.append(text)
        reader.feed(text)

    tail = decoder.finish()
    raw_parts.append(tail)
    reader.feed(tail)
    reader.finish()

    logger.debug(
        "response_stream_complete",
        extra={
            "fragments": accumulator.fragment_count,
            "skipped_lines": reader.skipped_lines,
        },
    )
    return StreamResult(
        text=accumulator.text,
        raw_text="".join(raw_parts),
        skipped_lines=reader.skipped_lines,
    )
