"""Collaborator protocols.

The core never talks to the network directly. It depends on these
structural interfaces, implemented by ``songstream.transport`` and
``songstream.server.backend`` and replaced by fakes in tests.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable


@runtime_checkable
class ChatTransport(Protocol):
    """Submits a chat request and streams the raw reply."""

    def stream_chat(self, payload: dict) -> AsyncIterator[bytes]:
        """Send ``payload`` to the chat endpoint.

        Implementations are async generators yielding raw byte chunks of
        the line-protocol reply, in arrival order.

        Args:
            payload: JSON body, ``{"messages": [...], "persona": ...}``.

        Raises:
            TransportError: On a non-success status or network failure.
        """
        ...


@runtime_checkable
class InferenceBackend(Protocol):
    """Turns a message list into a stream of text fragments."""

    def stream(self, messages: list[dict]) -> AsyncIterator[str]:
        """Run the model over ``messages``, yielding response fragments.

        Raises:
            BackendError: If the model cannot be reached or rejects the call.
        """
        ...
