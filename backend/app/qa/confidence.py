"""Lexical confidence scoring for cited answers.

The answer is split into clauses; a clause is non-trivial when it carries at
least one key term, and supported when some retrieved source shares one of
its key terms. Adding sources can only add support, so the level never drops
when evidence improves.
"""

import re
from dataclasses import dataclass

from backend.app.docs.keywords import key_terms
from backend.app.models.answer import ConfidenceLevel, Source

_CLAUSE_SPLIT = re.compile(r"[.;!?]+\s+|\n+")
_CITATION_MARK = re.compile(r"\[[^\]]*\]")


@dataclass(frozen=True)
class SupportReport:
    """Clause-level support breakdown behind a confidence level."""

    clauses: int
    supported: int

    @property
    def level(self) -> ConfidenceLevel:
        if self.clauses == 0 or self.supported == 0:
            return ConfidenceLevel.low
        if self.supported == self.clauses:
            return ConfidenceLevel.high
        return ConfidenceLevel.medium


def split_clauses(answer: str) -> list[str]:
    """Split answer text into candidate factual clauses."""
    without_citations = _CITATION_MARK.sub(" ", answer)
    return [clause.strip() for clause in _CLAUSE_SPLIT.split(without_citations) if clause.strip()]


def support_report(answer: str, sources: list[Source]) -> SupportReport:
    source_terms = [set(key_terms(source.content)) for source in sources]

    clauses = 0
    supported = 0
    for clause in split_clauses(answer):
        terms = set(key_terms(clause))
        if not terms:
            continue
        clauses += 1
        if any(terms & candidate for candidate in source_terms):
            supported += 1

    return SupportReport(clauses=clauses, supported=supported)


def score_confidence(answer: str, sources: list[Source]) -> ConfidenceLevel:
    """Classify how well ``answer`` is supported by ``sources``."""
    if not sources:
        return ConfidenceLevel.low
    return support_report(answer, sources).level
