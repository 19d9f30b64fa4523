"""Document chunker - deterministic sentence-window splitting."""

import re

# Sentence end (terminal punctuation followed by whitespace or end of text) or
# a paragraph break. Trailing whitespace stays with the preceding sentence.
_SEGMENT_END = re.compile(r"[.!?]+(?:\s+|\Z)|\n[ \t]*\n\s*")


def split_sentences(text: str) -> list[str]:
    """Split text into sentence segments that concatenate back to ``text``."""
    segments: list[str] = []
    start = 0
    for match in _SEGMENT_END.finditer(text):
        end = match.end()
        if end > start:
            segments.append(text[start:end])
            start = end
    if start < len(text):
        segments.append(text[start:])
    return segments


def _split_oversized(segment: str, max_chars: int) -> list[str]:
    """Cut a single oversized segment at whitespace, or hard-cut."""
    pieces: list[str] = []
    rest = segment
    while len(rest) > max_chars:
        window = rest[:max_chars]
        cut = max(window.rfind(" "), window.rfind("\n"))
        if cut <= max_chars // 2:
            cut = max_chars
        else:
            cut += 1  # keep the whitespace with the left piece
        pieces.append(rest[:cut])
        rest = rest[cut:]
    if rest:
        pieces.append(rest)
    return pieces


def chunk_text(text: str, *, max_chars: int = 500) -> list[str]:
    """Chunk text into sentence windows of at most ``max_chars``.

    Pure function with no I/O or randomness. Chunks are exact contiguous
    slices: ``"".join(chunk_text(t)) == t`` for any text that is not blank.

    Args:
        text: Section text to chunk
        max_chars: Target maximum characters per chunk (default 500)

    Returns:
        Ordered list of chunk strings, empty for blank text

    Strategy:
        1. Split on sentence ends and paragraph breaks
        2. Cut any segment longer than max_chars at whitespace (or hard-cut)
        3. Greedily pack segments into windows <= max_chars
    """
    if max_chars < 1:
        raise ValueError("max_chars must be positive")
    if not text.strip():
        return []

    chunks: list[str] = []
    current = ""

    for sentence in split_sentences(text):
        for piece in _split_oversized(sentence, max_chars):
            if current and len(current) + len(piece) > max_chars:
                chunks.append(current)
                current = ""
            current += piece

    if current:
        chunks.append(current)

    return chunks
