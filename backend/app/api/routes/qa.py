"""QA endpoint - POST /qa/ask."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from backend.app.docs.index import normalize_document_id
from backend.app.llm.gateway import ProviderInitError
from backend.app.models.answer import AskResponse
from backend.app.qa.pipeline import GenerationError
from backend.app.runtime import ProcessContext, get_process_context

router = APIRouter(prefix="/qa", tags=["qa"])
logger = logging.getLogger(__name__)


class AskRequest(BaseModel):
    """Request body for POST /qa/ask."""

    document_ids: list[str] = Field(default_factory=list, description="Documents to search")
    question: str = Field(..., min_length=1, max_length=2000)

    @field_validator("document_ids", mode="before")
    @classmethod
    def normalize_integer_ids(cls, v: Any) -> Any:
        """Accept integer ids as their string form."""
        if not isinstance(v, list):
            return v
        return [
            normalize_document_id(item) if isinstance(item, int) and not isinstance(item, bool) else item
            for item in v
        ]


@router.post("/ask", response_model=AskResponse)
async def ask(
    request: AskRequest,
    ctx: Annotated[ProcessContext, Depends(get_process_context)],
) -> AskResponse:
    """Answer a question from the given documents, with sources and confidence.

    Generation and provider failures are reported in the envelope
    (``success: false``) rather than as HTTP errors.
    """
    try:
        result = await ctx.pipeline.answer(request.document_ids, request.question)
    except (GenerationError, ProviderInitError) as e:
        logger.warning(f"QA request failed: {e}")
        return AskResponse(success=False, error=str(e))

    return AskResponse(
        success=True,
        answer=result.answer,
        sources=result.sources,
        confidence=result.confidence,
    )
