"""
Case momentum.

Momentum is re-derived from scratch on every analysis run; there are no
incremental transitions. ``derive_momentum`` is the pure state function and
``assess_momentum`` wraps it with the explanation and locked options shown to
fee earners.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .scoring.types import DimensionResult


class MomentumState(str, Enum):
    WEAK = "WEAK"
    BALANCED = "BALANCED"
    STRONG = "STRONG"
    STRONG_EXPERT_PENDING = "STRONG_EXPERT_PENDING"

    @property
    def display_label(self) -> str:
        if self is MomentumState.STRONG_EXPERT_PENDING:
            return "STRONG (Expert Pending)"
        return self.value


# Options that need independent expert support before they are credible
EXPERT_LOCKED_OPTIONS: tuple[str, ...] = (
    "Apply to list liability trial",
    "Part 36 offer at full liability value",
    "Request early admission of causation",
    "Serve final schedule of loss",
)


def derive_momentum(
    breach_detected: bool,
    causation_detected: bool,
    harm_detected: bool,
    expert_present: bool,
) -> MomentumState:
    detected = sum((bool(breach_detected), bool(causation_detected), bool(harm_detected)))
    if detected == 3:
        return MomentumState.STRONG if expert_present else MomentumState.STRONG_EXPERT_PENDING
    if detected >= 2:
        return MomentumState.BALANCED
    return MomentumState.WEAK


@dataclass(frozen=True)
class MomentumAssessment:
    state: MomentumState
    explanation: str
    locked_options: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "explanation": self.explanation,
            "locked_options": list(self.locked_options),
        }


_STATE_EXPLANATIONS = {
    MomentumState.STRONG: (
        "Breach, causation and harm are all evidenced and an expert report supports them."
    ),
    MomentumState.STRONG_EXPERT_PENDING: (
        "Breach, causation and harm are all evidenced, but no expert report has been "
        "identified yet. Strategic options that rely on expert support stay locked."
    ),
    MomentumState.BALANCED: "Two of breach, causation and harm are evidenced.",
    MomentumState.WEAK: "Fewer than two of breach, causation and harm are evidenced.",
}

_OPPONENT_CONTEXT = {
    "CONCERNING_SILENCE": "The opponent has been silent for much longer than usual.",
    "SLOWER_THAN_USUAL": "The opponent is responding more slowly than usual.",
}


def assess_momentum(
    breach: DimensionResult,
    causation: DimensionResult,
    harm: DimensionResult,
    expert_present: bool,
    *,
    opponent_status: str | None = None,
) -> MomentumAssessment:
    state = derive_momentum(
        breach.detected, causation.detected, harm.detected, expert_present
    )

    missing = [
        result.dimension.value
        for result in (breach, causation, harm)
        if not result.detected
    ]
    parts = [_STATE_EXPLANATIONS[state]]
    if missing and state in (MomentumState.BALANCED, MomentumState.WEAK):
        parts.append(f"Not yet evidenced: {', '.join(missing)}.")
    # Context only, never changes the state
    if opponent_status in _OPPONENT_CONTEXT:
        parts.append(_OPPONENT_CONTEXT[opponent_status])

    locked = (
        EXPERT_LOCKED_OPTIONS
        if state is MomentumState.STRONG_EXPERT_PENDING
        else ()
    )
    return MomentumAssessment(state=state, explanation=" ".join(parts), locked_options=locked)
