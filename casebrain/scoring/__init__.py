"""Pattern-weighted evidence scoring."""

from .expert import ExpertPresence, detect_expert_presence
from .patterns import (
    BREACH_PATTERNS,
    CAUSATION_PATTERNS,
    EXPERT_CONTENT_PATTERNS,
    EXPERT_FILENAME_PATTERNS,
    HARM_PATTERNS,
)
from .scorer import (
    analyse_breach,
    analyse_causation,
    analyse_harm,
    has_sufficient_text,
    score,
)
from .strength_patterns import FactorTable, StrengthSignal
from .types import (
    BandThresholds,
    Dimension,
    DimensionLevel,
    DimensionResult,
    EvidenceFlag,
    PatternRule,
    PatternSet,
    Severity,
    SeverityThresholds,
)

__all__ = [
    "BREACH_PATTERNS",
    "CAUSATION_PATTERNS",
    "EXPERT_CONTENT_PATTERNS",
    "EXPERT_FILENAME_PATTERNS",
    "HARM_PATTERNS",
    "BandThresholds",
    "Dimension",
    "DimensionLevel",
    "DimensionResult",
    "EvidenceFlag",
    "ExpertPresence",
    "FactorTable",
    "PatternRule",
    "PatternSet",
    "Severity",
    "SeverityThresholds",
    "StrengthSignal",
    "analyse_breach",
    "analyse_causation",
    "analyse_harm",
    "detect_expert_presence",
    "has_sufficient_text",
    "score",
]
