"""Document domain models."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class DocumentRecord(BaseModel):
    """Indexed document metadata."""

    document_id: str
    title: str
    created_at: datetime
    page_count: int = 1
    section_count: int = 0
    chunk_count: int = 0
    figure_count: int = 0


class Section(BaseModel):
    """Heading-delimited slice of a document.

    ``content`` is an exact slice of the raw text, heading line included, so
    concatenating sections in ``order`` reproduces the document.
    """

    document_id: str
    order: int  # 0-based, dense
    title: str
    content: str
    level: int = 1
    page_start: int = 1
    page_end: int = 1


class Figure(BaseModel):
    """Figure or table detected from its caption line."""

    document_id: str
    page_number: int
    position: int  # 0-based caption line index
    kind: Literal["figure", "table"] = "figure"
    caption: str
    context: str = "Unclassified Figure"
    payload_ref: str | None = None


class Chunk(BaseModel):
    """Retrieval unit: a contiguous slice of exactly one section."""

    document_id: str
    order: int  # 0-based across the document
    content: str
    section_order: int | None = None
    keywords: list[str] = Field(default_factory=list)


class Decomposition(BaseModel):
    """Output of the decomposer, persisted as a unit."""

    sections: list[Section]
    figures: list[Figure] = Field(default_factory=list)
    chunks: list[Chunk] = Field(default_factory=list)

    @property
    def page_count(self) -> int:
        if not self.sections:
            return 1
        return max(section.page_end for section in self.sections)
