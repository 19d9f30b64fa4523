"""Document endpoints - ingest, inspect, search and delete indexed documents."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field, field_validator

from backend.app.db.repositories import DocumentExistsError
from backend.app.docs.decomposer import DecompositionError
from backend.app.docs.index import normalize_document_id
from backend.app.docs.ingest import ingest_document
from backend.app.models.docs import Chunk, DocumentRecord, Figure, Section
from backend.app.runtime import ProcessContext, get_process_context

router = APIRouter(prefix="/documents", tags=["documents"])
logger = logging.getLogger(__name__)


class CreateDocumentRequest(BaseModel):
    """Request body for POST /documents."""

    title: str = Field(..., min_length=1, max_length=200, description="Document title")
    text: str = Field(..., description="Raw extracted document text")
    document_id: str | None = Field(
        None, min_length=1, max_length=64, description="Optional caller-chosen id"
    )

    @field_validator("document_id", mode="before")
    @classmethod
    def normalize_integer_id(cls, v: Any) -> Any:
        """Accept integer ids as their string form."""
        if isinstance(v, int) and not isinstance(v, bool):
            return normalize_document_id(v)
        return v


class DocumentListResponse(BaseModel):
    """Response for GET /documents."""

    documents: list[DocumentRecord]


class FullTextResponse(BaseModel):
    """Response for GET /documents/{document_id}/text."""

    document_id: str
    text: str


class ConceptSearchResponse(BaseModel):
    """Response for GET /documents/{document_id}/search."""

    document_id: str
    query: str
    chunks: list[Chunk]


async def _require_document(ctx: ProcessContext, document_id: str) -> DocumentRecord:
    record = await ctx.index.get_document(document_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Document {document_id} not found",
        )
    return record


@router.post("", response_model=DocumentRecord, status_code=status.HTTP_201_CREATED)
async def create_document(
    request: CreateDocumentRequest,
    ctx: Annotated[ProcessContext, Depends(get_process_context)],
) -> DocumentRecord:
    """Decompose and index a document.

    Returns:
        Created document metadata with section/chunk/figure counts
    """
    try:
        return await ingest_document(
            title=request.title,
            text=request.text,
            store=ctx.store,
            document_id=request.document_id,
            target_chunk_chars=ctx.settings.chunk_target_chars,
        )
    except DecompositionError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except DocumentExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    ctx: Annotated[ProcessContext, Depends(get_process_context)],
) -> DocumentListResponse:
    """List indexed documents, newest first."""
    return DocumentListResponse(documents=await ctx.index.list_documents())


@router.get("/{document_id}", response_model=DocumentRecord)
async def get_document(
    document_id: str,
    ctx: Annotated[ProcessContext, Depends(get_process_context)],
) -> DocumentRecord:
    """Get document metadata."""
    return await _require_document(ctx, document_id)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: str,
    ctx: Annotated[ProcessContext, Depends(get_process_context)],
) -> Response:
    """Delete a document with its sections, figures and chunks."""
    if not await ctx.store.delete_document(document_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Document {document_id} not found",
        )
    logger.info(f"Deleted document {document_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{document_id}/text", response_model=FullTextResponse)
async def get_full_text(
    document_id: str,
    ctx: Annotated[ProcessContext, Depends(get_process_context)],
) -> FullTextResponse:
    """Full text reconstructed from sections in reading order."""
    await _require_document(ctx, document_id)
    return FullTextResponse(document_id=document_id, text=await ctx.index.get_full_text(document_id))


@router.get("/{document_id}/structure", response_model=list[Section])
async def get_structure(
    document_id: str,
    ctx: Annotated[ProcessContext, Depends(get_process_context)],
) -> list[Section]:
    """Sections in reading order (empty for unindexed documents)."""
    return await ctx.index.get_structure(document_id)


@router.get("/{document_id}/figures", response_model=list[Figure])
async def get_figures(
    document_id: str,
    ctx: Annotated[ProcessContext, Depends(get_process_context)],
) -> list[Figure]:
    return await ctx.index.get_figures(document_id)


@router.get("/{document_id}/chunks", response_model=list[Chunk])
async def get_chunks(
    document_id: str,
    ctx: Annotated[ProcessContext, Depends(get_process_context)],
) -> list[Chunk]:
    return await ctx.index.get_chunks(document_id)


@router.get("/{document_id}/search", response_model=ConceptSearchResponse)
async def search_by_concept(
    document_id: str,
    ctx: Annotated[ProcessContext, Depends(get_process_context)],
    query: Annotated[str, Query(min_length=1, max_length=200)],
) -> ConceptSearchResponse:
    """Search a document's chunks by concept."""
    chunks = await ctx.index.search_by_concept(document_id, query)
    return ConceptSearchResponse(document_id=document_id, query=query, chunks=chunks)
