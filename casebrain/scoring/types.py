from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Dimension(str, Enum):
    BREACH = "breach"
    CAUSATION = "causation"
    HARM = "harm"
    EXPERT = "expert"


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class DimensionLevel(str, Enum):
    NONE = "NONE"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    PRESENT = "PRESENT"  # Harm's top band, kept for external reports


@dataclass(frozen=True)
class PatternRule:
    """One row of a weighted pattern table.

    ``match`` is either a literal (substring test against the lower-cased
    corpus) or a compiled regex (case-insensitive search).
    """

    match: str | re.Pattern[str]
    weight: int
    label: str
    reasoning: str

    def __post_init__(self) -> None:
        if self.weight <= 0:
            raise ValueError(f"Pattern weight must be positive: {self.label!r}")

    def matches(self, corpus_lower: str) -> bool:
        if isinstance(self.match, str):
            return self.match.lower() in corpus_lower
        return self.match.search(corpus_lower) is not None


@dataclass(frozen=True)
class SeverityThresholds:
    high: int = 25
    medium: int = 20

    def severity_for(self, weight: int) -> Severity:
        if weight >= self.high:
            return Severity.HIGH
        if weight >= self.medium:
            return Severity.MEDIUM
        return Severity.LOW


@dataclass(frozen=True)
class BandThresholds:
    low_below: int = 20
    medium_below: int = 50
    top_level: DimensionLevel = DimensionLevel.HIGH

    def level_for(self, score: int) -> DimensionLevel:
        if score <= 0:
            return DimensionLevel.NONE
        if score < self.low_below:
            return DimensionLevel.LOW
        if score < self.medium_below:
            return DimensionLevel.MEDIUM
        return self.top_level


@dataclass(frozen=True)
class PatternSet:
    dimension: Dimension
    rules: tuple[PatternRule, ...]
    severity: SeverityThresholds = field(default_factory=SeverityThresholds)
    bands: BandThresholds = field(default_factory=BandThresholds)


@dataclass(frozen=True)
class EvidenceFlag:
    id: str
    label: str
    severity: Severity
    reasoning: str
    dimension: Dimension

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "severity": self.severity.value,
            "reasoning": self.reasoning,
            "dimension": self.dimension.value,
        }


@dataclass(frozen=True)
class DimensionResult:
    dimension: Dimension
    score: int
    level: DimensionLevel
    flags: tuple[EvidenceFlag, ...] = ()

    @property
    def detected(self) -> bool:
        return len(self.flags) > 0

    @property
    def indicators(self) -> list[str]:
        return [flag.label for flag in self.flags]

    @classmethod
    def empty(cls, dimension: Dimension) -> DimensionResult:
        return cls(dimension=dimension, score=0, level=DimensionLevel.NONE)

    def to_dict(self) -> dict[str, Any]:
        return {
            "dimension": self.dimension.value,
            "score": self.score,
            "level": self.level.value,
            "detected": self.detected,
            "flags": [flag.to_dict() for flag in self.flags],
            "indicators": self.indicators,
        }
