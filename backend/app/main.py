"""FastAPI application."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend.app.api.routes.documents import router as documents_router
from backend.app.api.routes.health import router as health_router
from backend.app.api.routes.metrics import router as metrics_router
from backend.app.api.routes.qa import router as qa_router
from backend.app.config import get_settings
from backend.app.db.engine import create_tables
from backend.app.runtime import get_process_context
from backend.app.utils.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create tables for the SQL store on startup, dispose on shutdown."""
    configure_logging(get_settings().log_level)
    ctx = get_process_context()
    if ctx.engine is not None:
        await create_tables(ctx.engine)
    yield
    if ctx.engine is not None:
        await ctx.engine.dispose()


app = FastAPI(title="Document QA API", version="0.1.0", lifespan=lifespan)

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(documents_router, tags=["documents"])
app.include_router(qa_router, tags=["qa"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Document QA API", "version": "0.1.0"}
