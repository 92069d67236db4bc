"""
Signal tables for the evidence-strength factors.

Each factor reads a table of (key, match, weight, label, reasoning) rows. For
the additive factors the strength is the capped sum of matched weights plus
any corroboration bonus. Procedural compliance and disclosure are decided by
which signals match, so their rows carry weight 0 and the outcome strengths
live in the lookup tables below them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

MAX_STRENGTH = 100


def _rx(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


@dataclass(frozen=True)
class StrengthSignal:
    key: str
    match: re.Pattern[str]
    weight: int
    label: str
    reasoning: str

    def __post_init__(self) -> None:
        if self.weight < 0:
            raise ValueError(f"Signal weight must not be negative: {self.key!r}")

    def matches(self, text: str) -> bool:
        return self.match.search(text) is not None


@dataclass(frozen=True)
class FactorTable:
    factor: str
    signals: tuple[StrengthSignal, ...]
    # Bonus added when at least ``corroboration_min`` signals match; 0 disables
    corroboration_min: int = 0
    corroboration_bonus: int = 0

    def detect(self, text: str) -> dict[str, bool]:
        return {signal.key: signal.matches(text) for signal in self.signals}

    def strength(self, detected: dict[str, bool]) -> int:
        total = sum(signal.weight for signal in self.signals if detected.get(signal.key))
        if self.corroboration_min and sum(detected.values()) >= self.corroboration_min:
            total += self.corroboration_bonus
        return min(MAX_STRENGTH, total)


# =============================================================================
# Identification
# =============================================================================

IDENTIFICATION_SIGNALS = FactorTable(
    factor="identification",
    signals=(
        StrengthSignal(
            "cctv",
            _rx(r"\bcctv\b|\bvideo\b|footage|\brecording\b"),
            30,
            "CCTV or video evidence",
            "Recorded footage can place the accused at the scene without relying on memory.",
        ),
        StrengthSignal(
            "witnesses",
            _rx(r"witness|eyewitness|complainant"),
            25,
            "Witness identification",
            "A witness or the complainant purports to identify the accused.",
        ),
        StrengthSignal(
            "facial_recognition",
            _rx(r"facial recognition|facial rec\b|identified .{0,40}individual"),
            25,
            "Facial recognition match",
            "An automated or officer recognition links the accused to the images.",
        ),
        StrengthSignal(
            "formal_procedure",
            _rx(r"\bcode d\b|identification procedure|formal id|identified .{0,40}from .{0,20}stills|\bvipr\b"),
            20,
            "Formal identification procedure",
            "A Code D procedure was held, which carries more weight than a street identification.",
        ),
    ),
    corroboration_min=3,
    corroboration_bonus=10,
)

# =============================================================================
# Forensics
# =============================================================================

FORENSICS_SIGNALS = FactorTable(
    factor="forensics",
    signals=(
        StrengthSignal(
            "weapon",
            _rx(r"weapon|knife|blade|implement|metal (?:pipe|bar)"),
            30,
            "Weapon recovered",
            "A recovered weapon is physical evidence that can be examined and attributed.",
        ),
        StrengthSignal(
            "fingerprints",
            _rx(r"finger ?prints?|dactyloscopy"),
            30,
            "Fingerprint evidence",
            "Fingerprints attribute contact with an item or surface to an individual.",
        ),
        StrengthSignal(
            "dna",
            _rx(r"\bdna\b|genetic|biological sample"),
            20,
            "DNA evidence",
            "A DNA profile can link the accused to an item, subject to transfer arguments.",
        ),
        StrengthSignal(
            "chain_of_custody",
            _rx(r"chain of custody|custody record|\bexhibit\b|recovered .{0,30}forensically"),
            20,
            "Documented chain of custody",
            "Continuity of exhibits is recorded, which closes off contamination challenges.",
        ),
    ),
)

# =============================================================================
# Witnesses
# =============================================================================

WITNESS_SIGNALS = FactorTable(
    factor="witnesses",
    signals=(
        StrengthSignal(
            "complainant",
            _rx(r"complainant|victim"),
            30,
            "Complainant account",
            "The complainant has given an account of the incident.",
        ),
        StrengthSignal(
            "independent",
            _rx(r"independent witness|civilian witness"),
            30,
            "Independent witness",
            "A witness with no connection to either side supports the account.",
        ),
    ),
)

WITNESS_MENTION_PATTERN = _rx(r"witness|complainant|eyewitness")
MAX_WITNESS_COUNT = 5
# (minimum mentions, bonus); every step reached is added
WITNESS_COUNT_STEPS: tuple[tuple[int, int], ...] = ((2, 20), (3, 10))
WITNESS_CONSISTENCY_MIN_COUNT = 2

# =============================================================================
# Procedural compliance
# =============================================================================

PROCEDURAL_SIGNALS = FactorTable(
    factor="procedural_compliance",
    signals=(
        StrengthSignal(
            "solicitor",
            _rx(r"solicitor present|legal representative|duty solicitor|legal advice .{0,30}present"),
            0,
            "Legal representation at interview",
            "A solicitor was present, a core PACE safeguard.",
        ),
        StrengthSignal(
            "recorded",
            _rx(r"recorded interview|audio recorded|video recorded|interview was recorded"),
            0,
            "Interview recorded",
            "The interview was recorded, so its conduct can be checked.",
        ),
        StrengthSignal(
            "rights_given",
            _rx(r"rights given|\bcaution(?:ed)?\b|right to silence|pace rights"),
            0,
            "Rights and caution given",
            "The caution and rights were administered.",
        ),
        StrengthSignal(
            "breaches",
            _rx(r"pace breach|code [cd] breach|non-compliance|breach(?:es)? of pace"),
            0,
            "Procedural breach recorded",
            "A breach of the PACE codes is identified in the papers.",
        ),
        StrengthSignal(
            "explicit_compliance",
            _rx(r"pace compliance|pace compliant|codes? .{0,30}complied with|procedurally compliant"),
            0,
            "Compliance stated",
            "The papers state that the codes were complied with.",
        ),
    ),
)

PROCEDURAL_SAFEGUARDS = ("solicitor", "recorded", "rights_given")
PROCEDURAL_MIN_SAFEGUARDS = 2
PROCEDURAL_STRENGTH = {
    "compliant": 80,
    "breached": 30,
    "unclear": 50,
}

# =============================================================================
# Medical
# =============================================================================

MEDICAL_SIGNALS = FactorTable(
    factor="medical",
    signals=(
        StrengthSignal(
            "evidence",
            _rx(r"medical|injury|wound|hospital|\ba&e\b|surgery|fractured?"),
            50,
            "Medical evidence of injury",
            "Records document an injury.",
        ),
        StrengthSignal(
            "consistent",
            _rx(r"consistent with|serious injury|surgical intervention"),
            30,
            "Injury consistent with account",
            "The recorded injury is described as consistent with the alleged mechanism.",
        ),
    ),
)

# =============================================================================
# Disclosure
# =============================================================================

DISCLOSURE_SIGNALS = FactorTable(
    factor="disclosure",
    signals=(
        StrengthSignal(
            "gap",
            _rx(r"disclosure gap|outstanding disclosure|not (?:been )?provided|not disclosed|missing"),
            0,
            "Disclosure outstanding",
            "Material has been requested or referred to but not served.",
        ),
        StrengthSignal(
            "critical",
            _rx(r"critical|foundational|core evidence|essential"),
            0,
            "Gap goes to core evidence",
            "The outstanding material is foundational to the prosecution case.",
        ),
        StrengthSignal(
            "supplementary",
            _rx(r"supplementary|adjunct|additional"),
            0,
            "Gap is supplementary",
            "The outstanding material only adds to evidence already served.",
        ),
    ),
)

# Opposing strength by gap severity; fewer gaps means stronger opposing evidence
DISCLOSURE_STRENGTH = {
    "NONE": 100,
    "MINOR": 90,
    "MODERATE": 70,
    "CRITICAL": 40,
}
