"""SQL implementation of the document store."""

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.db.models import Document, DocumentChunk, DocumentFigure, DocumentSection
from backend.app.db.repositories import DocumentExistsError
from backend.app.models.docs import Chunk, Decomposition, DocumentRecord, Figure, Section


class SqlDocumentStore:
    """SQL implementation of DocumentStore.

    Each operation runs in its own session; writes commit once per document
    so a decomposition is stored whole or not at all.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def save_decomposition(
        self, record: DocumentRecord, decomposition: Decomposition
    ) -> None:
        """Persist document, sections, figures and chunks in one transaction."""
        async with self._session_factory() as session:
            existing = await session.get(Document, record.document_id)
            if existing is not None:
                raise DocumentExistsError(f"Document {record.document_id} already exists")

            doc = Document(
                document_id=record.document_id,
                title=record.title,
                page_count=record.page_count,
                created_at=record.created_at,
            )
            doc.sections = [
                DocumentSection(
                    order=s.order,
                    title=s.title,
                    content=s.content,
                    level=s.level,
                    page_start=s.page_start,
                    page_end=s.page_end,
                )
                for s in decomposition.sections
            ]
            doc.figures = [
                DocumentFigure(
                    page_number=f.page_number,
                    position=f.position,
                    kind=f.kind,
                    caption=f.caption,
                    context=f.context,
                    payload_ref=f.payload_ref,
                )
                for f in decomposition.figures
            ]
            doc.chunks = [
                DocumentChunk(
                    order=c.order,
                    content=c.content,
                    section_order=c.section_order,
                    keywords=list(c.keywords),
                )
                for c in decomposition.chunks
            ]
            session.add(doc)

            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DocumentExistsError(
                    f"Document {record.document_id} already exists"
                ) from e

    async def delete_document(self, document_id: str) -> bool:
        """Delete a document and cascade to its collections."""
        async with self._session_factory() as session:
            async with session.begin():
                for model in (DocumentChunk, DocumentFigure, DocumentSection):
                    await session.execute(delete(model).where(model.document_id == document_id))
                result = await session.execute(
                    delete(Document).where(Document.document_id == document_id)
                )
            return (result.rowcount or 0) > 0

    async def get_document(self, document_id: str) -> DocumentRecord | None:
        """Get document metadata with collection counts."""
        async with self._session_factory() as session:
            doc = await session.get(Document, document_id)
            if doc is None:
                return None
            return await self._to_record(session, doc)

    async def list_documents(self) -> list[DocumentRecord]:
        """List documents, newest first."""
        async with self._session_factory() as session:
            result = await session.execute(select(Document).order_by(Document.created_at.desc()))
            return [await self._to_record(session, doc) for doc in result.scalars().all()]

    async def list_sections(self, document_id: str) -> list[Section]:
        """Sections sorted by order."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(DocumentSection)
                .where(DocumentSection.document_id == document_id)
                .order_by(DocumentSection.order)
            )
            return [
                Section(
                    document_id=row.document_id,
                    order=row.order,
                    title=row.title,
                    content=row.content,
                    level=row.level,
                    page_start=row.page_start,
                    page_end=row.page_end,
                )
                for row in result.scalars().all()
            ]

    async def list_figures(self, document_id: str) -> list[Figure]:
        """Figures in detection order."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(DocumentFigure)
                .where(DocumentFigure.document_id == document_id)
                .order_by(DocumentFigure.position, DocumentFigure.id)
            )
            return [
                Figure(
                    document_id=row.document_id,
                    page_number=row.page_number,
                    position=row.position,
                    kind=row.kind,
                    caption=row.caption,
                    context=row.context,
                    payload_ref=row.payload_ref,
                )
                for row in result.scalars().all()
            ]

    async def list_chunks(self, document_id: str) -> list[Chunk]:
        """Chunks in storage order."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(DocumentChunk)
                .where(DocumentChunk.document_id == document_id)
                .order_by(DocumentChunk.order)
            )
            return [
                Chunk(
                    document_id=row.document_id,
                    order=row.order,
                    content=row.content,
                    section_order=row.section_order,
                    keywords=list(row.keywords or []),
                )
                for row in result.scalars().all()
            ]

    async def _to_record(self, session: AsyncSession, doc: Document) -> DocumentRecord:
        counts: dict[str, int] = {}
        for name, model in (
            ("section_count", DocumentSection),
            ("figure_count", DocumentFigure),
            ("chunk_count", DocumentChunk),
        ):
            counts[name] = await session.scalar(
                select(func.count()).select_from(model).where(model.document_id == doc.document_id)
            ) or 0
        return DocumentRecord(
            document_id=doc.document_id,
            title=doc.title,
            created_at=doc.created_at,
            page_count=doc.page_count,
            **counts,
        )
