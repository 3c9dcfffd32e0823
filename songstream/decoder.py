"""Incremental UTF-8 decoding of a chunked byte stream."""

from __future__ import annotations

import codecs
import logging

logger = logging.getLogger(__name__)

REPLACEMENT_CHAR = "�"


class StreamDecoder:
    """Decodes byte chunks to text, carrying state across chunk boundaries.

    A multi-byte character split between two chunks is held back until its
    remaining bytes arrive and is emitted exactly once. Malformed sequences
    are replaced with U+FFFD instead of raising. Completed text is never
    buffered: every call returns everything that can be decoded so far.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._finished = False

    def decode(self, chunk: bytes, final: bool = False) -> str:
        """Decode one chunk.

        Args:
            chunk: Raw bytes from the transport.
            final: True for the last call; flushes any held-back bytes.

        Returns:
            Text decoded from this chunk plus any completed carry-over.
        """
        text = self._decoder.decode(chunk, final=final)
        if final:
            self._finished = True
        if REPLACEMENT_CHAR in text:
            logger.debug(
                "decode_replacement",
                extra={"chunk_size": len(chunk), "final": final},
            )
        return text

    def finish(self) -> str:
        """Flush at end-of-stream.

        Truncated trailing bytes become a single replacement character.
        """
        if self._finished:
            return ""
        return self.decode(b"", final=True)

    @property
    def finished(self) -> bool:
        return self._finished
