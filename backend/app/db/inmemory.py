"""In-memory implementation of the document store."""

from backend.app.db.repositories import DocumentExistsError
from backend.app.models.docs import Chunk, Decomposition, DocumentRecord, Figure, Section


class InMemoryDocumentStore:
    """In-memory implementation of DocumentStore."""

    def __init__(self) -> None:
        self._documents: dict[str, DocumentRecord] = {}
        self._sections: dict[str, list[Section]] = {}
        self._figures: dict[str, list[Figure]] = {}
        self._chunks: dict[str, list[Chunk]] = {}

    async def save_decomposition(
        self, record: DocumentRecord, decomposition: Decomposition
    ) -> None:
        """Store document and collections in one step."""
        document_id = record.document_id
        if document_id in self._documents:
            raise DocumentExistsError(f"Document {document_id} already exists")

        # Build everything before publishing so readers never see a partial document
        sections = sorted(
            (s.model_copy(update={"document_id": document_id}) for s in decomposition.sections),
            key=lambda s: s.order,
        )
        figures = [f.model_copy(update={"document_id": document_id}) for f in decomposition.figures]
        chunks = [c.model_copy(update={"document_id": document_id}) for c in decomposition.chunks]

        self._sections[document_id] = sections
        self._figures[document_id] = figures
        self._chunks[document_id] = chunks
        self._documents[document_id] = record

    async def delete_document(self, document_id: str) -> bool:
        """Delete a document and everything it owns."""
        if self._documents.pop(document_id, None) is None:
            return False
        self._sections.pop(document_id, None)
        self._figures.pop(document_id, None)
        self._chunks.pop(document_id, None)
        return True

    async def get_document(self, document_id: str) -> DocumentRecord | None:
        """Get document metadata."""
        return self._documents.get(document_id)

    async def list_documents(self) -> list[DocumentRecord]:
        """List documents, newest first."""
        return sorted(self._documents.values(), key=lambda d: d.created_at, reverse=True)

    async def list_sections(self, document_id: str) -> list[Section]:
        """Sections sorted by order."""
        return list(self._sections.get(document_id, []))

    async def list_figures(self, document_id: str) -> list[Figure]:
        """Figures in detection order."""
        return list(self._figures.get(document_id, []))

    async def list_chunks(self, document_id: str) -> list[Chunk]:
        """Chunks in storage order."""
        return list(self._chunks.get(document_id, []))
