"""Key-term extraction shared by chunking, retrieval and confidence scoring."""

import re
from collections import Counter

STOP_WORDS = frozenset(
    {
        "the", "is", "at", "which", "on", "and", "a", "an", "in", "to", "of", "for", "with",
        "by", "that", "this", "it", "as", "are", "was", "were", "be", "or", "from", "not",
        "but", "can", "will", "has", "have", "had", "what", "does", "when", "where", "who",
        "why", "how", "into", "than", "then", "them", "they", "their", "there", "these",
        "those", "some", "such", "also", "been", "being", "about", "would", "could",
        "should", "your", "yours", "ours", "know", "dont",
        "introduction", "chapter", "section", "figure", "table",
    }
)

_WORD_RE = re.compile(r"[^\w\s]")


def tokenize(text: str) -> list[str]:
    """Lowercase word tokens with punctuation removed."""
    return _WORD_RE.sub("", text.lower()).split()


def key_terms(text: str) -> list[str]:
    """Distinct content words in first-seen order.

    Words shorter than four characters, stop words and bare numbers are
    dropped.
    """
    seen: dict[str, None] = {}
    for word in tokenize(text):
        if len(word) > 3 and word not in STOP_WORDS and not word.isdigit():
            seen.setdefault(word, None)
    return list(seen)


def extract_keywords(text: str, limit: int = 5) -> list[str]:
    """Most frequent key terms, ties broken by first occurrence."""
    counts = Counter(
        word
        for word in tokenize(text)
        if len(word) > 3 and word not in STOP_WORDS and not word.isdigit()
    )
    # Counter.most_common keeps insertion order for equal counts
    return [word for word, _ in counts.most_common(limit)]
