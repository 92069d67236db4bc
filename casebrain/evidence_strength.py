"""
Evidence-strength calibration.

Six factor analysers read the same corpus and each produce a 0-100 strength
from the signal tables in ``scoring.strength_patterns``. The overall strength
is a fixed-weight average of the six, and the calibration block turns it into
framing directives so that an aggressive narrative is not drafted against evidence
that is objectively strong.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from .config import settings
from .scoring.scorer import has_sufficient_text
from .scoring.strength_patterns import (
    DISCLOSURE_SIGNALS,
    DISCLOSURE_STRENGTH,
    FORENSICS_SIGNALS,
    IDENTIFICATION_SIGNALS,
    MAX_STRENGTH,
    MAX_WITNESS_COUNT,
    MEDICAL_SIGNALS,
    PROCEDURAL_MIN_SAFEGUARDS,
    PROCEDURAL_SAFEGUARDS,
    PROCEDURAL_SIGNALS,
    PROCEDURAL_STRENGTH,
    WITNESS_CONSISTENCY_MIN_COUNT,
    WITNESS_COUNT_STEPS,
    WITNESS_MENTION_PATTERN,
    WITNESS_SIGNALS,
)

logger = logging.getLogger(__name__)


class StrengthLevel(str, Enum):
    VERY_WEAK = "VERY_WEAK"
    WEAK = "WEAK"
    MODERATE = "MODERATE"
    STRONG = "STRONG"
    VERY_STRONG = "VERY_STRONG"


class LanguageTone(str, Enum):
    AGGRESSIVE = "AGGRESSIVE"
    MODERATE = "MODERATE"
    CONSERVATIVE = "CONSERVATIVE"


class GapSeverity(str, Enum):
    CRITICAL = "CRITICAL"
    MODERATE = "MODERATE"
    MINOR = "MINOR"
    NONE = "NONE"


# Weights in percent; they must sum to 100
FACTOR_WEIGHTS: dict[str, int] = {
    "identification": 25,
    "forensics": 25,
    "witnesses": 20,
    "procedural_compliance": 10,
    "medical": 10,
    "disclosure": 10,
}

STRENGTH_BANDS: tuple[tuple[int, StrengthLevel], ...] = (
    (80, StrengthLevel.VERY_STRONG),
    (60, StrengthLevel.STRONG),
    (40, StrengthLevel.MODERATE),
    (20, StrengthLevel.WEAK),
)

DOWNGRADE_THRESHOLD = 60
CONSERVATIVE_THRESHOLD = 70
MODERATE_TONE_THRESHOLD = 40


@dataclass(frozen=True)
class IdentificationFactor:
    strength: int
    has_cctv: bool
    has_witnesses: bool
    has_facial_recognition: bool
    has_formal_procedure: bool


@dataclass(frozen=True)
class ForensicsFactor:
    strength: int
    has_weapon: bool
    has_fingerprints: bool
    has_dna: bool
    has_chain_of_custody: bool


@dataclass(frozen=True)
class WitnessFactor:
    strength: int
    count: int
    has_complainant: bool
    has_independent: bool
    consistency: str


@dataclass(frozen=True)
class ProceduralComplianceFactor:
    strength: int
    is_compliant: bool
    has_solicitor: bool
    is_recorded: bool
    has_rights_given: bool
    has_breaches: bool


@dataclass(frozen=True)
class MedicalFactor:
    strength: int
    has_evidence: bool
    is_consistent: bool


@dataclass(frozen=True)
class DisclosureFactor:
    strength: int
    has_gaps: bool
    gap_severity: GapSeverity
    is_foundational: bool


@dataclass(frozen=True)
class EvidenceFactors:
    identification: IdentificationFactor
    forensics: ForensicsFactor
    witnesses: WitnessFactor
    procedural_compliance: ProceduralComplianceFactor
    medical: MedicalFactor
    disclosure: DisclosureFactor

    def strengths(self) -> dict[str, int]:
        return {name: getattr(self, name).strength for name in FACTOR_WEIGHTS}


@dataclass(frozen=True)
class Calibration:
    should_downgrade_disclosure_stay: bool
    should_downgrade_procedural: bool
    should_focus_on_plea_mitigation: bool
    disclosure_chase_recommended: bool
    realistic_outcome: str
    language_tone: LanguageTone


@dataclass(frozen=True)
class EvidenceStrengthResult:
    overall_strength: int
    level: StrengthLevel
    factors: EvidenceFactors
    calibration: Calibration
    warnings: tuple[str, ...] = field(default_factory=tuple)
    sufficient_evidence: bool = True

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["warnings"] = list(self.warnings)
        return _enum_values(data)


def _enum_values(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _enum_values(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_enum_values(item) for item in value]
    return value


def analyse_identification(text: str) -> IdentificationFactor:
    detected = IDENTIFICATION_SIGNALS.detect(text)
    return IdentificationFactor(
        strength=IDENTIFICATION_SIGNALS.strength(detected),
        has_cctv=detected["cctv"],
        has_witnesses=detected["witnesses"],
        has_facial_recognition=detected["facial_recognition"],
        has_formal_procedure=detected["formal_procedure"],
    )


def analyse_forensics(text: str) -> ForensicsFactor:
    detected = FORENSICS_SIGNALS.detect(text)
    return ForensicsFactor(
        strength=FORENSICS_SIGNALS.strength(detected),
        has_weapon=detected["weapon"],
        has_fingerprints=detected["fingerprints"],
        has_dna=detected["dna"],
        has_chain_of_custody=detected["chain_of_custody"],
    )


def analyse_witnesses(text: str) -> WitnessFactor:
    detected = WITNESS_SIGNALS.detect(text)
    count = min(len(WITNESS_MENTION_PATTERN.findall(text)), MAX_WITNESS_COUNT)

    strength = WITNESS_SIGNALS.strength(detected)
    strength += sum(bonus for minimum, bonus in WITNESS_COUNT_STEPS if count >= minimum)

    return WitnessFactor(
        strength=min(MAX_STRENGTH, strength),
        count=count,
        has_complainant=detected["complainant"],
        has_independent=detected["independent"],
        consistency="MEDIUM" if count >= WITNESS_CONSISTENCY_MIN_COUNT else "UNKNOWN",
    )


def analyse_procedural_compliance(text: str) -> ProceduralComplianceFactor:
    detected = PROCEDURAL_SIGNALS.detect(text)
    has_breaches = detected["breaches"]
    safeguards = sum(detected[key] for key in PROCEDURAL_SAFEGUARDS)
    is_compliant = not has_breaches and (
        detected["explicit_compliance"] or safeguards >= PROCEDURAL_MIN_SAFEGUARDS
    )

    if is_compliant:
        outcome = "compliant"
    elif has_breaches:
        outcome = "breached"
    else:
        outcome = "unclear"

    return ProceduralComplianceFactor(
        strength=PROCEDURAL_STRENGTH[outcome],
        is_compliant=is_compliant,
        has_solicitor=detected["solicitor"],
        is_recorded=detected["recorded"],
        has_rights_given=detected["rights_given"],
        has_breaches=has_breaches,
    )


def analyse_medical(text: str) -> MedicalFactor:
    detected = MEDICAL_SIGNALS.detect(text)
    return MedicalFactor(
        strength=MEDICAL_SIGNALS.strength(detected),
        has_evidence=detected["evidence"],
        is_consistent=detected["evidence"] and detected["consistent"],
    )


def analyse_disclosure(text: str) -> DisclosureFactor:
    detected = DISCLOSURE_SIGNALS.detect(text)
    has_gaps = detected["gap"]
    is_critical = detected["critical"]
    is_supplementary = detected["supplementary"]

    if not has_gaps:
        severity = GapSeverity.NONE
    elif is_critical:
        severity = GapSeverity.CRITICAL
    elif is_supplementary:
        severity = GapSeverity.MINOR
    else:
        severity = GapSeverity.MODERATE

    return DisclosureFactor(
        strength=DISCLOSURE_STRENGTH[severity.value],
        has_gaps=has_gaps,
        gap_severity=severity,
        is_foundational=has_gaps and is_critical and not is_supplementary,
    )


def _empty_factors() -> EvidenceFactors:
    return EvidenceFactors(
        identification=IdentificationFactor(0, False, False, False, False),
        forensics=ForensicsFactor(0, False, False, False, False),
        witnesses=WitnessFactor(0, 0, False, False, "UNKNOWN"),
        procedural_compliance=ProceduralComplianceFactor(0, False, False, False, False, False),
        medical=MedicalFactor(0, False, False),
        disclosure=DisclosureFactor(0, False, GapSeverity.NONE, False),
    )


def weighted_strength(strengths: dict[str, int]) -> int:
    """Fixed-weight average, rounded half up."""
    total = sum(strengths[name] * weight for name, weight in FACTOR_WEIGHTS.items())
    return (total + 50) // 100


def level_for(overall: int) -> StrengthLevel:
    for floor, level in STRENGTH_BANDS:
        if overall >= floor:
            return level
    return StrengthLevel.VERY_WEAK


def tone_for(overall: int) -> LanguageTone:
    if overall >= CONSERVATIVE_THRESHOLD:
        return LanguageTone.CONSERVATIVE
    if overall >= MODERATE_TONE_THRESHOLD:
        return LanguageTone.MODERATE
    return LanguageTone.AGGRESSIVE


def realistic_outcome_for(overall: int) -> str:
    if overall >= 80:
        return "Opposing evidence is very strong - focus on reduction, negotiated outcome and mitigation"
    if overall >= 60:
        return "Opposing evidence is moderately strong - procedural leverage and narrowing the issues"
    if overall >= 40:
        return "Opposing evidence is moderate - contested strategies remain viable"
    return "Opposing evidence is weak - assertive strategies are viable"


def calibrate(
    overall: int,
    factors: EvidenceFactors,
    *,
    opponent_status: str | None = None,
    opponent_average_days: int | None = None,
) -> tuple[Calibration, list[str]]:
    warnings: list[str] = []
    compliant = factors.procedural_compliance.is_compliant
    gap_severity = factors.disclosure.gap_severity

    should_downgrade_disclosure = (
        overall >= DOWNGRADE_THRESHOLD and gap_severity != GapSeverity.CRITICAL
    )
    should_downgrade_procedural = overall >= DOWNGRADE_THRESHOLD and compliant
    chase = opponent_status == "CONCERNING_SILENCE" or (
        opponent_average_days is not None
        and opponent_average_days > settings.OPPONENT_SLOW_AVERAGE_DAYS
    )

    if overall >= CONSERVATIVE_THRESHOLD:
        warnings.append(
            "Opposing evidence is strong - use conservative framing and focus on procedural leverage, not factual collapse"
        )
        warnings.append("Realistic outcomes: narrowed issues, negotiated resolution, mitigation")
    if compliant:
        warnings.append(
            "Procedure appears compliant - downgrade procedural breach angles and avoid asserting breaches"
        )
    if gap_severity == GapSeverity.MINOR and overall >= DOWNGRADE_THRESHOLD:
        warnings.append("Disclosure gaps are supplementary, not foundational - a stay is unlikely")
    if chase:
        if opponent_average_days is not None:
            warnings.append(
                f"Opponent is slow to respond (average {opponent_average_days} days) - chase outstanding disclosure in writing"
            )
        else:
            warnings.append("Opponent has gone silent - chase outstanding disclosure in writing")

    calibration = Calibration(
        should_downgrade_disclosure_stay=should_downgrade_disclosure,
        should_downgrade_procedural=should_downgrade_procedural,
        should_focus_on_plea_mitigation=overall >= CONSERVATIVE_THRESHOLD,
        disclosure_chase_recommended=chase,
        realistic_outcome=realistic_outcome_for(overall),
        language_tone=tone_for(overall),
    )
    return calibration, warnings


def analyse_evidence_strength(
    corpus: str | None,
    *,
    opponent_status: str | None = None,
    opponent_average_days: int | None = None,
) -> EvidenceStrengthResult:
    sufficient = has_sufficient_text(corpus)
    if sufficient:
        text = (corpus or "").lower()
        factors = EvidenceFactors(
            identification=analyse_identification(text),
            forensics=analyse_forensics(text),
            witnesses=analyse_witnesses(text),
            procedural_compliance=analyse_procedural_compliance(text),
            medical=analyse_medical(text),
            disclosure=analyse_disclosure(text),
        )
    else:
        factors = _empty_factors()

    overall = weighted_strength(factors.strengths())
    calibration, warnings = calibrate(
        overall,
        factors,
        opponent_status=opponent_status,
        opponent_average_days=opponent_average_days,
    )
    if not sufficient:
        warnings.insert(0, "Insufficient case text to assess evidence strength")

    return EvidenceStrengthResult(
        overall_strength=overall,
        level=level_for(overall),
        factors=factors,
        calibration=calibration,
        warnings=tuple(warnings),
        sufficient_evidence=sufficient,
    )
