"""LLM client for grounded answers with OpenAI integration.

Security: Reads API key from settings/environment only, never hardcoded.
Provider failures are tagged with a FailureMarker at this boundary so the
retry layer never has to inspect SDK exception types.
"""

import logging
from typing import Protocol

from openai import AsyncOpenAI

from backend.app.citations.extract import extract_citation_ids
from backend.app.config import Settings
from backend.app.llm.retry import (
    RetryableTransientError,
    classify_failure,
    error_status,
    parse_retry_after,
)
from backend.app.models.answer import GroundedAnswer, Source

logger = logging.getLogger(__name__)

UNAVAILABLE_ANSWER = (
    "AI features are not configured. Please add an OPENAI_API_KEY to your .env file."
)
NO_ANSWER = "I don't know."
MAX_ANSWER_CHARS = 10000


class TextGenerator(Protocol):
    """Generative collaborator: prompt in, text out."""

    async def generate(self, prompt: str) -> str:
        """Generate a completion for ``prompt``."""
        ...


class AnswerProvider(Protocol):
    """Capability resolved by the provider gateway."""

    async def generate_grounded_answer(
        self, question: str, sources: list[Source]
    ) -> GroundedAnswer:
        """Answer ``question`` citing ``sources`` by id."""
        ...


def _retry_after_header(error: BaseException) -> float | None:
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None)
    if headers is None:
        return None
    value = headers.get("retry-after")
    try:
        return float(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def to_boundary_error(error: Exception) -> Exception:
    """Tag transient SDK failures; return anything else unchanged."""
    marker = classify_failure(error)
    if not marker.retryable:
        return error
    retry_after = parse_retry_after(error)
    if retry_after is None:
        retry_after = _retry_after_header(error)
    return RetryableTransientError(
        str(error),
        marker=marker,
        retry_after_seconds=retry_after,
        status=error_status(error),
    )


class OpenAITextGenerator:
    """OpenAI-backed text generator."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        *,
        base_url: str | None = None,
        stream: bool = False,
        timeout_seconds: float = 60.0,
    ):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (read from environment)
            model: Model name to use (default: gpt-4o-mini for cost efficiency)
            base_url: Optional OpenAI-compatible endpoint
            stream: Stream the completion and assemble it from fragments
            timeout_seconds: Per-request timeout
        """
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout_seconds)
        self.model = model
        self.stream = stream

    async def generate(self, prompt: str) -> str:
        """Generate a completion, tagging transient failures for retry."""
        messages = [{"role": "user", "content": prompt}]
        try:
            if self.stream:
                return await self._generate_streamed(messages)
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=0.2,
            )
            return response.choices[0].message.content or ""
        except RetryableTransientError:
            raise
        except Exception as e:
            boundary_error = to_boundary_error(e)
            if boundary_error is e:
                raise
            raise boundary_error from e

    async def _generate_streamed(self, messages: list[dict[str, str]]) -> str:
        stream = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=0.2,
            stream=True,
        )
        parts: list[str] = []
        async for fragment in stream:
            try:
                delta = fragment.choices[0].delta.content
            except (AttributeError, IndexError, TypeError) as e:
                # Malformed progress fragments are not fatal
                logger.debug(f"Skipping malformed stream fragment: {e}")
                continue
            if delta:
                parts.append(delta)
        return "".join(parts)


def build_grounded_prompt(question: str, sources: list[Source]) -> str:
    """Build the cited question-answering prompt."""
    lines: list[str] = []
    if sources:
        lines.append(
            "You are an AI assistant that answers questions based on the provided documents. "
            "You must cite the source for each sentence in your answer using its number in "
            "square brackets, for example [1]. If you cannot answer the question based on the "
            f'provided documents, you must respond with "{NO_ANSWER}"'
        )
        lines.append("")
        lines.append("Documents:")
        for source in sources:
            lines.append(f"[{source.id}] {source.content.strip()}")
    else:
        lines.append(
            "You are an AI assistant. No documents matched this question, so answer from "
            "general knowledge, keep the answer short, and do not include citations."
        )
    lines.append("")
    lines.append(f"Question: {question}")
    return "\n".join(lines)


class GroundedAnswerProvider:
    """Answer provider that prompts a text generator with numbered sources."""

    def __init__(self, generator: TextGenerator) -> None:
        self.generator = generator

    async def generate_grounded_answer(
        self, question: str, sources: list[Source]
    ) -> GroundedAnswer:
        prompt = build_grounded_prompt(question, sources)
        text = (await self.generator.generate(prompt)).strip()

        if not text:
            logger.warning("Generator returned empty response, answering with no-answer text")
            text = NO_ANSWER

        if len(text) > MAX_ANSWER_CHARS:
            logger.warning(
                f"Generator response unexpectedly large ({len(text)} chars), "
                f"truncating to {MAX_ANSWER_CHARS}"
            )
            text = text[:MAX_ANSWER_CHARS] + "\n\n[Truncated]"

        valid_ids = {source.id for source in sources}
        return GroundedAnswer(answer=text, cited_source_ids=extract_citation_ids(text, valid_ids))


class DegradedAnswerProvider:
    """Placeholder provider used when no credential is configured."""

    async def generate_grounded_answer(
        self, question: str, sources: list[Source]
    ) -> GroundedAnswer:
        return GroundedAnswer(answer=UNAVAILABLE_ANSWER, cited_source_ids=[])


async def resolve_openai_provider(settings: Settings) -> AnswerProvider:
    """Build the OpenAI-backed answer provider from settings.

    Raises:
        ValueError: If no API key is configured (a credential failure)
    """
    api_key = settings.openai_api_key
    if api_key is None or not api_key.get_secret_value():
        raise ValueError("OPENAI_API_KEY is not set; API key required for answer generation")

    logger.info(f"Using OpenAI model {settings.openai_model} for grounded answers")
    generator = OpenAITextGenerator(
        api_key=api_key.get_secret_value(),
        model=settings.openai_model,
        base_url=settings.openai_base_url,
        stream=settings.llm_stream,
        timeout_seconds=settings.llm_timeout_seconds,
    )
    return GroundedAnswerProvider(generator)
