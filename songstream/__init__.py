"""songstream — render streamed music-chat replies as lists, track cards and stories."""

from songstream.candidates import parse_candidate_line
from songstream.classifier import classify
from songstream.conversation import (
    AssistantTurn,
    ConversationBusyError,
    ConversationController,
)
from songstream.decoder import StreamDecoder
from songstream.enrichment import (
    EnrichmentState,
    EnrichmentStatus,
    StoryCard,
    fetch_story,
)
from songstream.extractor import extract_mentions
from songstream.models import Candidate, Conversation, Message, Role, TrackMention
from songstream.nodes import (
    CandidateList,
    OrderedList,
    Paragraph,
    RawJsonBlock,
    RenderNode,
    UnorderedList,
)
from songstream.reader import Accumulator, LineProtocolReader, read_response
from songstream.transport import HttpChatTransport, TransportError

__version__ = "0.1.0"

__all__ = [
    # Models
    "Role",
    "Message",
    "Conversation",
    "Candidate",
    "TrackMention",
    # Render nodes
    "Paragraph",
    "OrderedList",
    "UnorderedList",
    "CandidateList",
    "RawJsonBlock",
    "RenderNode",
    # Stream pipeline
    "StreamDecoder",
    "Accumulator",
    "LineProtocolReader",
    "read_response",
    # Classification and extraction
    "classify",
    "parse_candidate_line",
    "extract_mentions",
    # Enrichment
    "EnrichmentState",
    "EnrichmentStatus",
    "StoryCard",
    "fetch_story",
    # Conversation
    "AssistantTurn",
    "ConversationController",
    "ConversationBusyError",
    # Transport
    "HttpChatTransport",
    "TransportError",
]
