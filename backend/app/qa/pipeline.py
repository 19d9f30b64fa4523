"""Citation-grounded question answering.

retrieve (concept index) -> number sources -> generate (gateway, with retry)
-> classify confidence. The pipeline only reads the index.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable

from backend.app.docs.index import ConceptIndex, normalize_document_id
from backend.app.docs.keywords import key_terms
from backend.app.llm.gateway import ProviderGateway, ProviderState
from backend.app.llm.retry import DEFAULT_BASE_DELAY_MS, DEFAULT_MAX_RETRIES, with_retry
from backend.app.models.answer import CitedAnswer, Source
from backend.app.models.docs import Chunk
from backend.app.qa.confidence import score_confidence
from backend.app.utils.metrics import RetryMetrics

logger = logging.getLogger(__name__)

DEFAULT_MAX_SOURCES = 8


class GenerationError(Exception):
    """Answer generation failed after retries, or with a non-retryable error."""

    pass


class CitedAnswerPipeline:
    """Answers questions over indexed documents with numbered sources."""

    def __init__(
        self,
        index: ConceptIndex,
        gateway: ProviderGateway,
        *,
        max_sources: int = DEFAULT_MAX_SOURCES,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
        metrics: RetryMetrics | None = None,
    ) -> None:
        self._index = index
        self._gateway = gateway
        self._max_sources = max_sources
        self._max_retries = max_retries
        self._base_delay_ms = base_delay_ms
        self._sleep = sleep_fn or asyncio.sleep
        self._metrics = metrics or RetryMetrics()

    async def retrieve(self, document_ids: Iterable[int | str], question: str) -> list[Chunk]:
        """Collect matching chunks, documents in caller order.

        The whole question is tried first. When it matches nothing in a
        document, the question's key terms are searched one at a time and
        merged in first-seen order.
        """
        terms = key_terms(question)
        seen_documents: set[str] = set()
        results: list[Chunk] = []

        for raw_id in document_ids:
            document_id = normalize_document_id(raw_id)
            if document_id in seen_documents:
                continue
            seen_documents.add(document_id)

            matches = list(await self._index.search_by_concept(document_id, question))
            if not matches:
                seen_chunks: set[int] = set()
                for term in terms:
                    for chunk in await self._index.search_by_concept(document_id, term):
                        if chunk.order not in seen_chunks:
                            seen_chunks.add(chunk.order)
                            matches.append(chunk)
            results.extend(matches)

        return results

    def to_sources(self, chunks: list[Chunk]) -> list[Source]:
        """Number chunks 1..n in order, bounded by max_sources."""
        if len(chunks) > self._max_sources:
            logger.info(f"Truncating {len(chunks)} matches to {self._max_sources} sources")
        return [
            Source(
                id=position,
                content=chunk.content,
                document_id=chunk.document_id,
                chunk_order=chunk.order,
            )
            for position, chunk in enumerate(chunks[: self._max_sources], start=1)
        ]

    async def answer(self, document_ids: Iterable[int | str], question: str) -> CitedAnswer:
        """Answer ``question`` from the given documents.

        Zero matching chunks still produces a (document-free) answer with no
        sources and low confidence. So does a degraded provider.

        Raises:
            GenerationError: Generation failed for good (original error chained)
            ProviderInitError: The answer provider could not be resolved
        """
        chunks = await self.retrieve(document_ids, question)
        sources = self.to_sources(chunks)
        if not sources:
            logger.info("No sources matched; generating a document-free answer")

        provider = await self._gateway.get_answer_provider()
        if self._gateway.state is ProviderState.DEGRADED:
            # The placeholder answer is backed by nothing that was retrieved
            sources = []

        start_time = time.monotonic()
        try:
            grounded = await with_retry(
                lambda: provider.generate_grounded_answer(question, sources),
                self._max_retries,
                self._base_delay_ms,
                name="generate_grounded_answer",
                sleep_fn=self._sleep,
                metrics=self._metrics,
            )
        except Exception as e:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            self._metrics.record_generation("error", elapsed_ms)
            logger.error(f"Grounded answer generation failed: {e}")
            raise GenerationError(str(e)) from e

        elapsed_ms = (time.monotonic() - start_time) * 1000
        self._metrics.record_generation("success", elapsed_ms)

        return CitedAnswer(
            answer=grounded.answer,
            sources=sources,
            confidence=score_confidence(grounded.answer, sources),
            cited_source_ids=grounded.cited_source_ids,
        )
