"""Health check endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from backend.app.runtime import ProcessContext, get_process_context

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz")
async def healthz(
    ctx: Annotated[ProcessContext, Depends(get_process_context)],
) -> dict[str, Any]:
    """Component status: storage backend and answer provider state.

    The provider is reported as ``unresolved`` until the first question;
    this endpoint never triggers resolution.
    """
    return {
        "status": "ok",
        "components": {
            "store": "sql" if ctx.engine is not None else "memory",
            "provider": ctx.gateway.state.value,
        },
    }
