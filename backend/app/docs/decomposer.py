"""Document decomposer - raw text into sections, figures and chunks.

Sections are heading-delimited exact slices of the raw text. Pages are
delimited by form feeds (as emitted by most PDF text extractors). Figure
detection is best-effort and can never abort a decomposition.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from backend.app.docs.chunker import chunk_text
from backend.app.docs.keywords import extract_keywords
from backend.app.models.docs import Chunk, Decomposition, Figure, Section

logger = logging.getLogger(__name__)

DEFAULT_SECTION_TITLE = "Introduction"
PAGE_BREAK = "\f"

_MARKDOWN_HEADING = re.compile(r"^(#{1,6})\s+(\S.*)$")
_NUMBERED_HEADING = re.compile(r"^(\d+(?:\.\d+)*)\.?\s+([A-Z][^.!?]{1,80})$")
_CHAPTER_HEADING = re.compile(r"^(?:chapter|part)\s+[\dIVXLC]+\b.{0,80}$", re.IGNORECASE)
_FIGURE_CAPTION = re.compile(r"^(fig(?:ure)?\.?|table)\s*(\d+[a-z]?)\b[.:\s-]*(.*)$", re.IGNORECASE)


class DecompositionError(Exception):
    """Input cannot be treated as text at all."""

    pass


@dataclass(frozen=True)
class Line:
    """One line of raw text with its location."""

    index: int
    offset: int  # character offset of the line start
    page: int  # 1-based
    text: str  # without line terminator


FigureExtractor = Callable[[str, list[Line]], list[Figure]]


def ensure_text(raw: str | bytes) -> str:
    """Return raw input as text or raise DecompositionError.

    Rejects bytes that are not UTF-8, NUL bytes, and text dominated by
    control characters (binary content passed off as text).
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecompositionError(f"Input is not valid UTF-8 text: {e}") from e

    if not isinstance(raw, str):
        raise DecompositionError(f"Expected text, got {type(raw).__name__}")

    if "\x00" in raw:
        raise DecompositionError("Input contains NUL bytes; binary content is not text")

    if raw:
        control = sum(1 for ch in raw if ord(ch) < 32 and ch not in "\n\r\t\f\v")
        if control / len(raw) > 0.1:
            raise DecompositionError(
                f"Input is mostly control characters ({control}/{len(raw)}); not text"
            )

    return raw


def split_lines(text: str) -> list[Line]:
    """Split text into lines, tracking offsets and form-feed pages."""
    lines: list[Line] = []
    offset = 0
    page = 1
    for index, raw_line in enumerate(text.splitlines(keepends=True)):
        body = raw_line.rstrip("\r\n")
        leading_breaks = len(raw_line) - len(raw_line.lstrip(PAGE_BREAK))
        lines.append(Line(index=index, offset=offset, page=page + leading_breaks, text=body))
        page += raw_line.count(PAGE_BREAK)
        offset += len(raw_line)
    return lines


def detect_heading(line: str) -> tuple[str, int] | None:
    """Return (title, level) if the line looks like a heading."""
    stripped = line.strip().strip(PAGE_BREAK).strip()
    if len(stripped) <= 3 or len(stripped) > 100:
        return None

    match = _MARKDOWN_HEADING.match(stripped)
    if match:
        return match.group(2).strip(), 1 if len(match.group(1)) == 1 else 2

    if _FIGURE_CAPTION.match(stripped):
        return None

    match = _NUMBERED_HEADING.match(stripped)
    if match:
        return stripped, 1 if "." not in match.group(1) else 2

    if _CHAPTER_HEADING.match(stripped):
        return stripped, 1

    letters = [ch for ch in stripped if ch.isalpha()]
    if (
        len(letters) >= 4
        and all(ch.isupper() for ch in letters)
        and len(stripped.split()) <= 8
        and not stripped.endswith((".", ","))
    ):
        return stripped, 1

    return None


def extract_figures(document_id: str, lines: list[Line]) -> list[Figure]:
    """Record figure and table captions as placeholder figures."""
    figures: list[Figure] = []
    for line in lines:
        stripped = line.text.strip().strip(PAGE_BREAK).strip()
        match = _FIGURE_CAPTION.match(stripped)
        if not match:
            continue
        label = match.group(1).lower()
        kind = "table" if label.startswith("table") else "figure"
        figures.append(
            Figure(
                document_id=document_id,
                page_number=line.page,
                position=line.index,
                kind=kind,
                caption=stripped,
                context=match.group(3).strip() or "Unclassified Figure",
            )
        )
    return figures


def _page_at(lines: list[Line], offset: int) -> int:
    page = 1
    for line in lines:
        if line.offset > offset:
            break
        page = line.page
    return page


def decompose(
    document_id: str,
    raw_text: str | bytes,
    *,
    target_chunk_chars: int = 500,
    figure_extractor: FigureExtractor = extract_figures,
) -> Decomposition:
    """Decompose raw text into ordered sections, figures and chunks.

    Args:
        document_id: Owning document id
        raw_text: Extracted document text (or UTF-8 bytes)
        target_chunk_chars: Maximum characters per chunk
        figure_extractor: Best-effort figure detection; failures are logged

    Returns:
        Decomposition with dense 0-based section and chunk orders

    Raises:
        DecompositionError: If the input is not text
    """
    text = ensure_text(raw_text)
    lines = split_lines(text)

    # (start offset, title, level) for each section
    starts: list[tuple[int, str, int]] = []
    for line in lines:
        heading = detect_heading(line.text)
        if heading is None:
            continue
        title, level = heading
        if not starts and text[: line.offset].strip():
            starts.append((0, DEFAULT_SECTION_TITLE, 1))
        elif not starts:
            # Blank preamble belongs to the first heading's section
            starts.append((0, title, level))
            continue
        starts.append((line.offset, title, level))

    if not starts:
        starts.append((0, DEFAULT_SECTION_TITLE, 1))

    sections: list[Section] = []
    chunks: list[Chunk] = []
    for order, (start, title, level) in enumerate(starts):
        end = starts[order + 1][0] if order + 1 < len(starts) else len(text)
        content = text[start:end]
        sections.append(
            Section(
                document_id=document_id,
                order=order,
                title=title,
                content=content,
                level=level,
                page_start=_page_at(lines, start),
                page_end=_page_at(lines, max(start, end - 1)),
            )
        )
        for piece in chunk_text(content, max_chars=target_chunk_chars):
            chunks.append(
                Chunk(
                    document_id=document_id,
                    order=len(chunks),
                    content=piece,
                    section_order=order,
                    keywords=extract_keywords(piece),
                )
            )

    try:
        figures = figure_extractor(document_id, lines)
    except Exception as e:
        logger.warning(f"Figure extraction failed for document {document_id}: {e}")
        figures = []

    logger.info(
        f"Decomposed document {document_id}: {len(sections)} sections, "
        f"{len(chunks)} chunks, {len(figures)} figures"
    )
    return Decomposition(sections=sections, figures=figures, chunks=chunks)
