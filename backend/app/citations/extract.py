"""Citation extraction from generated answer text.

Answers cite sources with bracketed 1-based ids: ``[1]``, ``[2, 3]`` or
``[Source 4]``.
"""

import re

_CITATION = re.compile(r"\[(?:sources?\s*)?(\d+(?:\s*,\s*\d+)*)\]", re.IGNORECASE)


def extract_citation_ids(answer: str, valid_ids: set[int] | None = None) -> list[int]:
    """Extract unique cited source ids from answer text.

    Args:
        answer: Generated answer text
        valid_ids: If given, ids outside this set are dropped

    Returns:
        Deduplicated ids, sorted for deterministic ordering
    """
    cited: set[int] = set()
    for match in _CITATION.finditer(answer):
        for part in match.group(1).split(","):
            source_id = int(part.strip())
            if valid_ids is None or source_id in valid_ids:
                cited.add(source_id)
    return sorted(cited)
