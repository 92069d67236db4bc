"""
Weighted pattern tables for the clinical-negligence dimensions.

Each table is static configuration: (match, weight, label, reasoning). The
scorer is generic and never inspects the labels. Severity cut-offs differ by
dimension: breach and causation flag HIGH from weight 25, harm from 30.
"""

from __future__ import annotations

import re

from .types import (
    BandThresholds,
    Dimension,
    DimensionLevel,
    PatternRule,
    PatternSet,
    SeverityThresholds,
)


def _rx(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


# =============================================================================
# Breach of duty
# =============================================================================

_BREACH_IMAGING = (
    PatternRule(
        _rx(r"no fracture seen|no acute fracture identified|fracture not seen|fracture not identified"),
        25,
        "Initial imaging missed fracture",
        "Initial imaging report states no fracture, but later imaging confirms fracture was present.",
    ),
    PatternRule(
        _rx(r"retrospective review|on review|retrospective|addendum"),
        20,
        "Retrospective review identifies missed finding",
        "Subsequent review of imaging identifies findings that were initially missed.",
    ),
    PatternRule(
        _rx(r"subtle fracture identified|initially missed|missed on initial|overlooked"),
        30,
        "Fracture initially missed on imaging",
        "Fracture was present but not identified on initial imaging review.",
    ),
    PatternRule(
        _rx(r"fracture later identified|fracture confirmed on repeat|repeat imaging shows fracture"),
        25,
        "Fracture confirmed on repeat imaging",
        "Fracture visible on repeat imaging, indicating it was present but missed initially.",
    ),
)

_BREACH_ESCALATION = (
    PatternRule(
        _rx(r"no observations recorded|no obs\b|no observations taken"),
        15,
        "No observations recorded",
        "Failure to record observations when clinically indicated.",
    ),
    PatternRule(
        _rx(r"no bloods taken|no blood tests|no investigations"),
        15,
        "No investigations requested",
        "Failure to request appropriate investigations when clinically indicated.",
    ),
    PatternRule(
        _rx(r"no imaging requested|imaging not requested|no x-ray|no scan"),
        20,
        "Imaging not requested",
        "Failure to request imaging when clinically indicated (e.g., persistent pain, mechanism of injury).",
    ),
    PatternRule(
        _rx(r"no safety net|no safety-netting|no follow-up arranged"),
        15,
        "No safety-netting",
        "Failure to provide safety-netting advice or arrange follow-up when required.",
    ),
    PatternRule(
        _rx(r"not referred|no referral|should have been referred|fail(?:ed|ure) to refer"),
        20,
        "Failure to refer",
        "Failure to refer to specialist when clinically indicated.",
    ),
    PatternRule(
        _rx(r"discharged home despite|sent home despite|discharged despite"),
        20,
        "Discharged despite concerning symptoms",
        "Patient discharged despite symptoms or signs that warranted further investigation or admission.",
    ),
)

_BREACH_GUIDELINE = (
    PatternRule(
        _rx(r"should have been|should have|ought to have"),
        15,
        "Should have been done",
        "Documentation suggests action should have been taken but was not.",
    ),
    PatternRule(
        _rx(r"earlier review indicated|earlier intervention|timely treatment"),
        20,
        "Earlier intervention indicated",
        "Evidence suggests earlier intervention was indicated but delayed.",
    ),
    PatternRule(
        _rx(r"not in accordance with|not according to|not following|breach of"),
        25,
        "Not in accordance with policy/guidelines",
        "Care not provided in accordance with established guidelines or local policy.",
    ),
    # Referral failures are scored by the dedicated rule above
    PatternRule(
        _rx(r"\bfail(?:ed|ure) to (?!refer)|\bdid not\b|\bdidn't\b"),
        15,
        "Failure to act",
        "Documentation indicates failure to take required action.",
    ),
)

BREACH_PATTERNS = PatternSet(
    dimension=Dimension.BREACH,
    rules=_BREACH_IMAGING + _BREACH_ESCALATION + _BREACH_GUIDELINE,
    severity=SeverityThresholds(high=25, medium=20),
)


# =============================================================================
# Causation
# =============================================================================

_CAUSATION_DETERIORATION = (
    PatternRule(
        _rx(r"re-presented|re-presentation|returned to a&e|returned to ed\b|re-attended|re-attendance"),
        20,
        "Re-presentation with deterioration",
        "Patient re-presented, indicating condition did not resolve and may have worsened.",
    ),
    PatternRule(
        _rx(r"ongoing pain|persistent pain|continued pain|pain persisted"),
        15,
        "Ongoing/persistent pain",
        "Pain persisted beyond expected timeframe, suggesting delay may have contributed to ongoing symptoms.",
    ),
    PatternRule(
        _rx(r"worsening|deteriorated|deterioration|not improving|failed to improve"),
        25,
        "Condition worsened",
        "Condition deteriorated, suggesting delay in diagnosis/treatment may have contributed.",
    ),
    PatternRule(
        _rx(r"not improving|failed to improve|no improvement"),
        15,
        "No improvement",
        "Lack of improvement suggests delay may have contributed to ongoing issues.",
    ),
)

_CAUSATION_LINK = (
    PatternRule(
        _rx(r"in retrospect|retrospectively|on retrospective review"),
        20,
        "Retrospective identification",
        "Retrospective review identifies that earlier intervention would have been appropriate.",
    ),
    PatternRule(
        _rx(r"delay in diagnosis|diagnosis delayed|delayed diagnosis|delay to diagnosis"),
        30,
        "Delay in diagnosis",
        "Explicit documentation of delay in diagnosis, linking delay to outcome.",
    ),
    PatternRule(
        _rx(
            r"earlier intervention may have|earlier treatment would have|timely treatment"
            r"|earlier diagnosis would have"
        ),
        25,
        "Earlier intervention would have helped",
        "Documentation suggests earlier intervention would have improved outcome.",
    ),
    PatternRule(
        _rx(r"associated with worsening|linked to|contributed to|resulted in"),
        20,
        "Delay associated with harm",
        "Documentation links delay to worsening outcome.",
    ),
)

_CAUSATION_ESCALATION = (
    PatternRule(
        _rx(r"admitted to icu|icu admission|intensive care"),
        30,
        "ICU admission",
        "Requirement for intensive care suggests significant deterioration, potentially linked to delay.",
    ),
    PatternRule(
        _rx(r"emergency surgery|urgent surgery required|emergency operation"),
        25,
        "Emergency surgery required",
        "Requirement for emergency surgery suggests delay may have contributed to need for urgent intervention.",
    ),
    PatternRule(
        _rx(r"sepsis diagnosed|septic|septicaemia"),
        30,
        "Sepsis diagnosed",
        "Development of sepsis suggests delay in treatment may have contributed to serious deterioration.",
    ),
    PatternRule(
        _rx(r"fracture now displaced|displaced fracture|fracture displacement"),
        25,
        "Fracture displacement",
        "Fracture displacement suggests delay in treatment may have contributed to worsening.",
    ),
)

CAUSATION_PATTERNS = PatternSet(
    dimension=Dimension.CAUSATION,
    rules=_CAUSATION_DETERIORATION + _CAUSATION_LINK + _CAUSATION_ESCALATION,
    severity=SeverityThresholds(high=25, medium=20),
)


# =============================================================================
# Harm
# =============================================================================

_HARM_TREATMENT = (
    PatternRule(
        _rx(r"surgery|operation|surgical|surgical intervention"),
        25,
        "Surgery required",
        "Surgical intervention indicates significant harm requiring operative treatment.",
    ),
    PatternRule(
        _rx(r"\borif\b|fixation|internal fixation|surgical fixation"),
        30,
        "Surgical fixation required",
        "Requirement for surgical fixation indicates significant fracture/injury requiring operative treatment.",
    ),
    PatternRule(
        _rx(r"immobilised|immobilized|plaster|cast applied|splint"),
        15,
        "Immobilisation required",
        "Requirement for immobilisation indicates functional impact and treatment needs.",
    ),
)

_HARM_FUNCTIONAL = (
    PatternRule(
        _rx(r"restricted movement|reduced movement|limited movement"),
        20,
        "Restricted movement",
        "Restricted movement indicates functional impairment and ongoing impact.",
    ),
    PatternRule(
        _rx(r"reduced function|decreased function|loss of function|functional loss"),
        25,
        "Reduced function",
        "Reduced function indicates significant functional impairment.",
    ),
    PatternRule(
        _rx(r"ongoing symptoms|persistent symptoms|continued symptoms"),
        15,
        "Ongoing symptoms",
        "Ongoing symptoms indicate persistent impact from the injury/condition.",
    ),
    PatternRule(
        _rx(r"persistent pain|chronic pain|ongoing pain|continued pain"),
        20,
        "Persistent pain",
        "Persistent pain indicates ongoing harm and functional impact.",
    ),
    PatternRule(
        _rx(r"limited mobility|reduced mobility|decreased mobility|loss of mobility"),
        20,
        "Limited mobility",
        "Limited mobility indicates functional impairment affecting daily activities.",
    ),
)

_HARM_SERIOUS = (
    PatternRule(
        _rx(r"permanent deficit|permanent impairment|permanent disability"),
        40,
        "Permanent deficit",
        "Permanent deficit indicates long-term, irreversible harm.",
    ),
    PatternRule(
        _rx(r"long-term disability|chronic disability|ongoing disability"),
        35,
        "Long-term disability",
        "Long-term disability indicates significant ongoing harm.",
    ),
    PatternRule(
        _rx(r"chronic pain|persistent pain|long-term pain"),
        25,
        "Chronic pain",
        "Chronic pain indicates ongoing harm and functional impact.",
    ),
    PatternRule(
        _rx(r"residual weakness|ongoing weakness|persistent weakness"),
        20,
        "Residual weakness",
        "Residual weakness indicates ongoing functional impairment.",
    ),
)

HARM_PATTERNS = PatternSet(
    dimension=Dimension.HARM,
    rules=_HARM_TREATMENT + _HARM_FUNCTIONAL + _HARM_SERIOUS,
    severity=SeverityThresholds(high=30, medium=20),
    bands=BandThresholds(top_level=DimensionLevel.PRESENT),
)


# =============================================================================
# Expert presence
# =============================================================================

# Content signals. Presence needs several distinct rows to match; any single
# phrase here is ordinary legal vocabulary on its own.
EXPERT_CONTENT_PATTERNS = PatternSet(
    dimension=Dimension.EXPERT,
    rules=(
        PatternRule(
            _rx(r"expert report|medico-legal report|medicolegal report|report of (?:mr|mrs|ms|dr|professor)\b"),
            30,
            "Expert report",
            "Document is framed as an expert or medico-legal report.",
        ),
        PatternRule(
            _rx(r"in my (?:professional )?opinion|it is my opinion|i am of the opinion|my opinion is"),
            25,
            "Named expert opinion",
            "First-person opinion phrasing typical of an instructed expert.",
        ),
        PatternRule(
            "standard of care",
            20,
            "Standard of care",
            "Addresses whether care met the required standard.",
        ),
        PatternRule(
            _rx(r"\bcausation\b"),
            15,
            "Causation",
            "Addresses the causal link between breach and injury.",
        ),
        PatternRule(
            _rx(r"\bprognosis\b"),
            15,
            "Prognosis",
            "Gives a prognosis for the claimant's condition.",
        ),
        PatternRule(
            _rx(r"balance of probabilities|more likely than not"),
            20,
            "Civil standard applied",
            "Applies the balance-of-probabilities test to the evidence.",
        ),
        PatternRule(
            _rx(r"\bbolam\b|responsible body of|reasonable body of"),
            20,
            "Bolam test",
            "Applies the responsible-body-of-practitioners test.",
        ),
        PatternRule(
            _rx(r"fell below|below the standard|substandard"),
            20,
            "Care fell below standard",
            "Expert finding that care fell below the expected standard.",
        ),
        PatternRule(
            _rx(r"material contribution|but for\b"),
            20,
            "Causation test applied",
            "Applies the but-for or material contribution test.",
        ),
        PatternRule(
            _rx(r"statement of truth|duty to the court|part 35|cpr 35"),
            20,
            "CPR Part 35 declaration",
            "Contains the expert's declaration of duty to the court.",
        ),
    ),
)

# Filename signals. Matched against document names only.
EXPERT_FILENAME_PATTERNS = PatternSet(
    dimension=Dimension.EXPERT,
    rules=(
        PatternRule(
            _rx(r"expert"),
            30,
            "Expert document on file",
            "A document named as expert evidence has been uploaded.",
        ),
        PatternRule(
            _rx(r"medico[- ]?legal|\bcme\b|condition and prognosis"),
            25,
            "Medico-legal report on file",
            "A medico-legal or condition-and-prognosis report has been uploaded.",
        ),
        PatternRule(
            _rx(r"(?:breach|causation|liability) report"),
            25,
            "Liability report on file",
            "A report addressing breach, causation or liability has been uploaded.",
        ),
    ),
)
