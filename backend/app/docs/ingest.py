"""Document ingestion - decompose and persist docs."""

import logging
from datetime import datetime, timezone
from uuid import uuid4

from backend.app.db.repositories import DocumentStore
from backend.app.docs.decomposer import decompose
from backend.app.docs.index import normalize_document_id
from backend.app.models.docs import DocumentRecord

logger = logging.getLogger(__name__)


async def ingest_document(
    *,
    title: str,
    text: str | bytes,
    store: DocumentStore,
    document_id: int | str | None = None,
    target_chunk_chars: int = 500,
) -> DocumentRecord:
    """Ingest a document: decompose it and persist all collections at once.

    Decomposition finishes before anything is written, so a failure leaves
    the document unindexed.

    Args:
        title: Document title
        text: Raw extracted text
        store: Document store to persist into
        document_id: Optional caller-chosen id (generated if omitted)
        target_chunk_chars: Maximum characters per chunk

    Returns:
        DocumentRecord with counts of the persisted collections

    Raises:
        DecompositionError: If the input is not text
        DocumentExistsError: If the id is already indexed
    """
    doc_id = normalize_document_id(document_id) if document_id is not None else uuid4().hex

    decomposition = decompose(doc_id, text, target_chunk_chars=target_chunk_chars)

    record = DocumentRecord(
        document_id=doc_id,
        title=title,
        created_at=datetime.now(timezone.utc),
        page_count=decomposition.page_count,
        section_count=len(decomposition.sections),
        chunk_count=len(decomposition.chunks),
        figure_count=len(decomposition.figures),
    )
    await store.save_decomposition(record, decomposition)

    logger.info(f"Ingested document {doc_id} ({title!r})")
    return record
