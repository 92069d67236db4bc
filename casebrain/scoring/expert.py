"""
Expert-report presence.

Unlike the weighted dimensions this is a conjunctive gate: an expert report
is only treated as present when several distinct indicator rows match across
the corpus and the document names. A lone "causation" in a letter of claim
is not an expert report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from ..config import settings
from .patterns import EXPERT_CONTENT_PATTERNS, EXPERT_FILENAME_PATTERNS
from .scorer import MAX_SCORE, has_sufficient_text
from .types import Dimension, DimensionResult, EvidenceFlag, PatternRule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpertPresence:
    present: bool
    matched_indicators: tuple[str, ...] = ()
    required: int = 3
    result: DimensionResult = field(
        default_factory=lambda: DimensionResult.empty(Dimension.EXPERT)
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "present": self.present,
            "matched_indicators": list(self.matched_indicators),
            "required": self.required,
            "result": self.result.to_dict(),
        }


def detect_expert_presence(
    corpus: str | None,
    document_names: Iterable[str] = (),
    *,
    min_indicators: int | None = None,
) -> ExpertPresence:
    required = settings.EXPERT_MIN_INDICATORS if min_indicators is None else min_indicators
    names_lower = " | ".join(name for name in document_names if name).lower()

    matched: list[PatternRule] = []
    if has_sufficient_text(corpus):
        corpus_lower = (corpus or "").lower()
        matched.extend(
            rule for rule in EXPERT_CONTENT_PATTERNS.rules if rule.matches(corpus_lower)
        )
    if names_lower:
        matched.extend(
            rule for rule in EXPERT_FILENAME_PATTERNS.rules if rule.matches(names_lower)
        )

    labels = tuple(rule.label for rule in matched)
    if len(matched) < required:
        if matched:
            logger.debug(
                "Expert presence gate not met: %d of %d indicators (%s)",
                len(matched),
                required,
                ", ".join(labels),
            )
        return ExpertPresence(present=False, matched_indicators=labels, required=required)

    severity = EXPERT_CONTENT_PATTERNS.severity
    flags = tuple(
        EvidenceFlag(
            id=f"{Dimension.EXPERT.value}-{idx}",
            label=rule.label,
            severity=severity.severity_for(rule.weight),
            reasoning=rule.reasoning,
            dimension=Dimension.EXPERT,
        )
        for idx, rule in enumerate(matched)
    )
    total = min(sum(rule.weight for rule in matched), MAX_SCORE)
    result = DimensionResult(
        dimension=Dimension.EXPERT,
        score=total,
        level=EXPERT_CONTENT_PATTERNS.bands.level_for(total),
        flags=flags,
    )
    return ExpertPresence(
        present=True, matched_indicators=labels, required=required, result=result
    )
