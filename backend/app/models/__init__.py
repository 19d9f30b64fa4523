"""Models package - re-exports for convenience."""

from backend.app.models.answer import (
    AskResponse,
    CitedAnswer,
    ConfidenceLevel,
    GroundedAnswer,
    Source,
)
from backend.app.models.docs import Chunk, Decomposition, DocumentRecord, Figure, Section

__all__ = [
    "AskResponse",
    "Chunk",
    "CitedAnswer",
    "ConfidenceLevel",
    "Decomposition",
    "DocumentRecord",
    "Figure",
    "GroundedAnswer",
    "Section",
    "Source",
]
