"""Concept index - read-side queries over indexed documents."""

from backend.app.db.repositories import DocumentStore
from backend.app.docs.retriever import ConceptRetriever, KeywordConceptRetriever
from backend.app.models.docs import Chunk, DocumentRecord, Figure, Section

# Sections keep their own trailing line breaks, so joining them needs no
# extra separator to reproduce the original text.
SECTION_SEPARATOR = ""


def normalize_document_id(document_id: int | str) -> str:
    """Document ids are opaque; integers are stored as their string form."""
    return str(document_id)


class ConceptIndex:
    """Structural and content queries keyed by document id.

    The index never writes: documents enter through ``ingest_document`` and
    leave through the store's ``delete_document``.
    """

    def __init__(self, store: DocumentStore, retriever: ConceptRetriever | None = None) -> None:
        self._store = store
        self._retriever = retriever or KeywordConceptRetriever(store)

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def retriever(self) -> ConceptRetriever:
        return self._retriever

    async def get_document(self, document_id: int | str) -> DocumentRecord | None:
        return await self._store.get_document(normalize_document_id(document_id))

    async def list_documents(self) -> list[DocumentRecord]:
        return await self._store.list_documents()

    async def get_full_text(self, document_id: int | str) -> str:
        """Section contents in reading order; empty for unindexed documents."""
        sections = await self.get_structure(document_id)
        return SECTION_SEPARATOR.join(section.content for section in sections)

    async def get_structure(self, document_id: int | str) -> list[Section]:
        """Sections sorted by order; empty for unindexed documents."""
        sections = await self._store.list_sections(normalize_document_id(document_id))
        return sorted(sections, key=lambda s: s.order)

    async def get_figures(self, document_id: int | str) -> list[Figure]:
        return await self._store.list_figures(normalize_document_id(document_id))

    async def get_chunks(self, document_id: int | str) -> list[Chunk]:
        return await self._store.list_chunks(normalize_document_id(document_id))

    async def search_by_concept(self, document_id: int | str, query: str) -> list[Chunk]:
        """Chunks of one document matching ``query`` via the configured retriever."""
        return await self._retriever.search(normalize_document_id(document_id), query)
