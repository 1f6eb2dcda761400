"""Pydantic schemas shared across the app."""

from .ask import AskRequest, AskResponse, Citation, ConversationHit
from .conversations import (
    ConversationCreate,
    ConversationOut,
    ConversationPage,
    ConversationSummaryOut,
    ConversationUpdate,
    MessageCreate,
    MessageExchangeOut,
    MessageOut,
)
from .enrichment import DeadLetterList, DeadLetterOut
from .export import ExportedConversation, ExportedMessage, ExportedThought, ExportResponse
from .graph import (
    GraphCluster,
    GraphEdge,
    GraphMetadata,
    GraphNode,
    GraphResponse,
    RelatedResponse,
    RelatedThought,
)
from .thoughts import (
    CaptureResponse,
    ThoughtContext,
    ThoughtCreate,
    ThoughtOut,
    ThoughtPageOut,
    ThoughtUpdate,
)

__all__ = [
    "AskRequest",
    "AskResponse",
    "CaptureResponse",
    "Citation",
    "ConversationCreate",
    "ConversationHit",
    "ConversationOut",
    "ConversationPage",
    "ConversationSummaryOut",
    "ConversationUpdate",
    "DeadLetterList",
    "DeadLetterOut",
    "ExportResponse",
    "ExportedConversation",
    "ExportedMessage",
    "ExportedThought",
    "GraphCluster",
    "GraphEdge",
    "GraphMetadata",
    "GraphNode",
    "GraphResponse",
    "MessageCreate",
    "MessageExchangeOut",
    "MessageOut",
    "RelatedResponse",
    "RelatedThought",
    "ThoughtContext",
    "ThoughtCreate",
    "ThoughtOut",
    "ThoughtPageOut",
    "ThoughtUpdate",
]
