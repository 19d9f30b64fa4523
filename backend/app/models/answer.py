"""Answer models for cited question answering."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ConfidenceLevel(str, Enum):
    """How well an answer is supported by its sources."""

    low = "low"
    medium = "medium"
    high = "high"


class Source(BaseModel):
    """Chunk selected as evidence for one answer (never persisted)."""

    id: int = Field(..., ge=1, description="1-based, assigned per answer")
    content: str
    document_id: str | None = None
    chunk_order: int | None = None


class GroundedAnswer(BaseModel):
    """Raw output of an answer provider."""

    answer: str
    cited_source_ids: list[int] = Field(default_factory=list)


class CitedAnswer(BaseModel):
    """Pipeline result: answer, supporting sources and confidence."""

    model_config = ConfigDict(frozen=True)

    answer: str
    sources: list[Source] = Field(default_factory=list)
    confidence: ConfidenceLevel
    cited_source_ids: list[int] = Field(default_factory=list)


class AskResponse(BaseModel):
    """Caller-facing result envelope for POST /qa/ask."""

    success: bool
    answer: str | None = None
    sources: list[Source] | None = None
    confidence: ConfidenceLevel | None = None
    error: str | None = None
