"""Concept retrievers - search a document's chunks by query.

``ConceptRetriever`` is the seam for swapping keyword matching for a
similarity-ranked retriever: same inputs, same outputs, only the ranking
differs.
"""

from typing import Protocol

from backend.app.db.repositories import DocumentStore
from backend.app.models.docs import Chunk


class ConceptRetriever(Protocol):
    """Protocol for concept search implementations."""

    async def search(self, document_id: str, query: str) -> list[Chunk]:
        """Return chunks of one document relevant to ``query``.

        Order is stable for a given implementation; callers must not assume
        anything beyond that.
        """
        ...


class KeywordConceptRetriever:
    """Case-insensitive substring match over chunk content.

    Returns every chunk containing the query and nothing else, in storage
    order.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def search(self, document_id: str, query: str) -> list[Chunk]:
        needle = query.lower()
        chunks = await self._store.list_chunks(document_id)
        return [chunk for chunk in chunks if needle in chunk.content.lower()]


class TokenOverlapRetriever:
    """Ranked retriever using simple token matching.

    Scoring strategy:
    - Tokenize query on whitespace (lowercase)
    - For each chunk, count how many query tokens appear as substrings
    - Filter out chunks with score = 0
    - Sort by score descending, then by chunk order (for determinism)
    """

    def __init__(self, store: DocumentStore, limit: int | None = None) -> None:
        self._store = store
        self._limit = limit

    async def search(self, document_id: str, query: str) -> list[Chunk]:
        query_tokens = [token for token in query.lower().split() if token]
        if not query_tokens:
            return []

        scored: list[tuple[Chunk, int]] = []
        for chunk in await self._store.list_chunks(document_id):
            text = chunk.content.lower()
            match_count = sum(1 for token in query_tokens if token in text)
            if match_count > 0:
                scored.append((chunk, match_count))

        scored.sort(key=lambda item: (-item[1], item[0].order))
        ranked = [chunk for chunk, _ in scored]
        return ranked[: self._limit] if self._limit is not None else ranked
