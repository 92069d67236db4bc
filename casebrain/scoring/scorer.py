"""
Pattern-weighted scoring.

A single deterministic pass: every rule in the table is tested once against
the lower-cased corpus and contributes its full weight at most once. The
summed score is capped at 100 and banded into a level.
"""

from __future__ import annotations

import logging

from ..config import settings
from .patterns import BREACH_PATTERNS, CAUSATION_PATTERNS, HARM_PATTERNS
from .types import DimensionResult, EvidenceFlag, PatternSet

logger = logging.getLogger(__name__)

MAX_SCORE = 100


def has_sufficient_text(corpus: str | None, min_chars: int | None = None) -> bool:
    floor = settings.CORPUS_MIN_CHARS if min_chars is None else min_chars
    return len((corpus or "").strip()) >= floor


def score(
    corpus: str | None,
    pattern_set: PatternSet,
    *,
    min_chars: int | None = None,
) -> DimensionResult:
    if not has_sufficient_text(corpus, min_chars):
        return DimensionResult.empty(pattern_set.dimension)

    corpus_lower = (corpus or "").lower()
    flags: list[EvidenceFlag] = []
    total = 0
    for rule in pattern_set.rules:
        if not rule.matches(corpus_lower):
            continue
        total += rule.weight
        flags.append(
            EvidenceFlag(
                id=f"{pattern_set.dimension.value}-{len(flags)}",
                label=rule.label,
                severity=pattern_set.severity.severity_for(rule.weight),
                reasoning=rule.reasoning,
                dimension=pattern_set.dimension,
            )
        )

    capped = min(total, MAX_SCORE)
    logger.debug(
        "Scored %s: %d (raw %d) from %d matched rules",
        pattern_set.dimension.value,
        capped,
        total,
        len(flags),
    )
    return DimensionResult(
        dimension=pattern_set.dimension,
        score=capped,
        level=pattern_set.bands.level_for(capped),
        flags=tuple(flags),
    )


def analyse_breach(corpus: str | None) -> DimensionResult:
    return score(corpus, BREACH_PATTERNS)


def analyse_causation(corpus: str | None) -> DimensionResult:
    return score(corpus, CAUSATION_PATTERNS)


def analyse_harm(corpus: str | None) -> DimensionResult:
    return score(corpus, HARM_PATTERNS)

