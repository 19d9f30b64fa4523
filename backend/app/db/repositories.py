"""Repository protocol interfaces for document storage."""

from typing import Protocol

from backend.app.models.docs import Chunk, Decomposition, DocumentRecord, Figure, Section


class DocumentExistsError(Exception):
    """A document with this id is already indexed."""

    pass


class DocumentStore(Protocol):
    """Storage collaborator for decomposed documents.

    Writes are all-or-nothing: a document is either stored with all of its
    sections, figures and chunks, or not stored at all.
    """

    async def save_decomposition(
        self, record: DocumentRecord, decomposition: Decomposition
    ) -> None:
        """Persist a document and its three collections atomically.

        Raises:
            DocumentExistsError: If the document id is already stored
        """
        ...

    async def delete_document(self, document_id: str) -> bool:
        """Delete a document and cascade to its collections.

        Returns:
            True if the document existed
        """
        ...

    async def get_document(self, document_id: str) -> DocumentRecord | None:
        """Get document metadata, or None if unindexed."""
        ...

    async def list_documents(self) -> list[DocumentRecord]:
        """List documents, newest first."""
        ...

    async def list_sections(self, document_id: str) -> list[Section]:
        """Sections sorted by order."""
        ...

    async def list_figures(self, document_id: str) -> list[Figure]:
        """Figures in detection order."""
        ...

    async def list_chunks(self, document_id: str) -> list[Chunk]:
        """Chunks in storage order."""
        ...
