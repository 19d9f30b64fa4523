"""Process-scoped service context.

Everything with process lifetime (document store, concept index, provider
gateway, pipeline) hangs off one ``ProcessContext`` instead of module
globals. The API builds it once; tests build a fresh one per test.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine

from backend.app.config import Settings, get_settings
from backend.app.db.engine import create_async_engine_from_settings, create_session_factory
from backend.app.db.inmemory import InMemoryDocumentStore
from backend.app.db.repositories import DocumentStore
from backend.app.db.sql_repositories import SqlDocumentStore
from backend.app.docs.index import ConceptIndex
from backend.app.docs.retriever import ConceptRetriever
from backend.app.llm.client import AnswerProvider, resolve_openai_provider
from backend.app.llm.gateway import ProviderGateway, ProviderResolver
from backend.app.qa.pipeline import CitedAnswerPipeline
from backend.app.utils.metrics import PrometheusRetryMetrics, RetryMetrics


@dataclass
class ProcessContext:
    """Services shared by all requests of one process."""

    settings: Settings
    store: DocumentStore
    index: ConceptIndex
    gateway: ProviderGateway
    pipeline: CitedAnswerPipeline
    engine: AsyncEngine | None = None


def build_process_context(
    settings: Settings,
    *,
    store: DocumentStore | None = None,
    retriever: ConceptRetriever | None = None,
    resolver: ProviderResolver | None = None,
    sleep_fn: Callable[[float], Awaitable[None]] | None = None,
    metrics: RetryMetrics | None = None,
) -> ProcessContext:
    """Wire the services for one process; every collaborator is injectable."""
    engine: AsyncEngine | None = None
    if store is None:
        # SQL store when DATABASE_URL is set, in-memory otherwise
        if settings.database_url:
            engine = create_async_engine_from_settings(settings)
            store = SqlDocumentStore(create_session_factory(engine))
        else:
            store = InMemoryDocumentStore()
    metrics = metrics or PrometheusRetryMetrics()

    async def default_resolver() -> AnswerProvider:
        return await resolve_openai_provider(settings)

    index = ConceptIndex(store, retriever)
    gateway = ProviderGateway(resolver or default_resolver, metrics=metrics)
    pipeline = CitedAnswerPipeline(
        index,
        gateway,
        max_sources=settings.max_sources,
        max_retries=settings.retry_max_retries,
        base_delay_ms=settings.retry_base_delay_ms,
        sleep_fn=sleep_fn,
        metrics=metrics,
    )
    return ProcessContext(
        settings=settings,
        store=store,
        index=index,
        gateway=gateway,
        pipeline=pipeline,
        engine=engine,
    )


@lru_cache
def get_process_context() -> ProcessContext:
    """Get the cached process context (FastAPI dependency)."""
    return build_process_context(get_settings())
