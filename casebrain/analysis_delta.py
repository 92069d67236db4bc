"""
Structural diff between two analysis snapshots.

"No previous version" and "nothing changed" are different answers and are
reported as different kinds.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping

from .momentum import MomentumState

FIRST_ANALYSIS_NOTE = "This is the first full analysis for this case."


class DeltaKind(str, Enum):
    FIRST_ANALYSIS = "FIRST_ANALYSIS"
    UNCHANGED = "UNCHANGED"
    CHANGED = "CHANGED"


@dataclass(frozen=True)
class AnalysisSnapshot:
    """The parts of a version that a delta compares."""

    momentum: str | None
    key_issues: tuple[Mapping[str, Any], ...] = ()
    missing_evidence: tuple[Mapping[str, Any], ...] = ()

    @classmethod
    def from_version(cls, version: Any) -> AnalysisSnapshot:
        return cls(
            momentum=version.momentum,
            key_issues=tuple(version.key_issues or ()),
            missing_evidence=tuple(version.missing_evidence or ()),
        )


@dataclass(frozen=True)
class MomentumChange:
    from_state: str | None
    to_state: str | None
    note: str
    expert_confirmed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_state,
            "to": self.to_state,
            "note": self.note,
            "expert_confirmed": self.expert_confirmed,
        }


@dataclass(frozen=True)
class AnalysisDelta:
    kind: DeltaKind
    momentum_change: MomentumChange | None = None
    new_issues: tuple[dict[str, Any], ...] = ()
    resolved_issues: tuple[dict[str, Any], ...] = ()
    new_missing_evidence: tuple[dict[str, Any], ...] = ()
    resolved_missing_evidence: tuple[dict[str, Any], ...] = ()
    notes: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_first_analysis(self) -> bool:
        return self.kind is DeltaKind.FIRST_ANALYSIS

    @property
    def has_changes(self) -> bool:
        return self.kind is DeltaKind.CHANGED

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "momentum_change": self.momentum_change.to_dict() if self.momentum_change else None,
            "new_issues": list(self.new_issues),
            "resolved_issues": list(self.resolved_issues),
            "new_missing_evidence": list(self.new_missing_evidence),
            "resolved_missing_evidence": list(self.resolved_missing_evidence),
            "notes": list(self.notes),
        }


def _display_momentum(value: str | None) -> str:
    if not value:
        return "UNKNOWN"
    try:
        return MomentumState(value).display_label
    except ValueError:
        return value


def issue_key(issue: Mapping[str, Any]) -> str:
    if issue.get("id"):
        return str(issue["id"])
    return f"{issue.get('type') or 'unknown'}:{issue.get('label', '')}"


def missing_evidence_key(item: Mapping[str, Any]) -> str:
    return f"{item.get('area') or 'other'}:{item.get('label', '')}"


def _keyed(items: Iterable[Mapping[str, Any]], key_fn) -> dict[str, Mapping[str, Any]]:
    keyed: dict[str, Mapping[str, Any]] = {}
    for item in items:
        keyed.setdefault(key_fn(item), item)
    return keyed


def _set_difference(
    prev: Iterable[Mapping[str, Any]],
    nxt: Iterable[Mapping[str, Any]],
    key_fn,
) -> tuple[list[Mapping[str, Any]], list[Mapping[str, Any]]]:
    prev_map = _keyed(prev, key_fn)
    next_map = _keyed(nxt, key_fn)
    added = [item for key, item in next_map.items() if key not in prev_map]
    removed = [item for key, item in prev_map.items() if key not in next_map]
    return added, removed


def _momentum_change(prev: str | None, nxt: str | None) -> MomentumChange | None:
    if (prev or None) == (nxt or None):
        return None
    expert_confirmed = (
        prev == MomentumState.STRONG_EXPERT_PENDING.value
        and nxt == MomentumState.STRONG.value
    )
    if expert_confirmed:
        note = (
            "Expert evidence confirmed: momentum moved from STRONG (Expert Pending) "
            "to STRONG"
        )
    else:
        note = (
            f"Momentum changed from {_display_momentum(prev)} to {_display_momentum(nxt)}"
        )
    return MomentumChange(
        from_state=prev, to_state=nxt, note=note, expert_confirmed=expert_confirmed
    )


def compute_delta(
    previous: AnalysisSnapshot | None, current: AnalysisSnapshot
) -> AnalysisDelta:
    if previous is None:
        return AnalysisDelta(kind=DeltaKind.FIRST_ANALYSIS, notes=(FIRST_ANALYSIS_NOTE,))

    notes: list[str] = []
    change = _momentum_change(previous.momentum, current.momentum)
    if change is not None:
        notes.append(change.note)

    new_issues, resolved_issues = _set_difference(
        previous.key_issues, current.key_issues, issue_key
    )
    new_missing, resolved_missing = _set_difference(
        previous.missing_evidence, current.missing_evidence, missing_evidence_key
    )

    if new_issues:
        notes.append(
            "New issues identified: " + "; ".join(str(i.get("label", "")) for i in new_issues)
        )
    if resolved_issues:
        notes.append(
            "Issues resolved: " + "; ".join(str(i.get("label", "")) for i in resolved_issues)
        )
    if new_missing:
        notes.append(
            "New missing evidence identified: "
            + "; ".join(str(m.get("label", "")) for m in new_missing)
        )
    if resolved_missing:
        notes.append(
            "Missing evidence resolved: "
            + "; ".join(str(m.get("label", "")) for m in resolved_missing)
        )

    changed = bool(change or new_issues or resolved_issues or new_missing or resolved_missing)
    return AnalysisDelta(
        kind=DeltaKind.CHANGED if changed else DeltaKind.UNCHANGED,
        momentum_change=change,
        new_issues=tuple(
            {"id": issue_key(i), "type": i.get("type") or "unknown", "label": i.get("label"), "severity": i.get("severity")}
            for i in new_issues
        ),
        resolved_issues=tuple(
            {"id": issue_key(i), "type": i.get("type") or "unknown", "label": i.get("label")}
            for i in resolved_issues
        ),
        new_missing_evidence=tuple(
            {"area": m.get("area") or "other", "label": m.get("label")} for m in new_missing
        ),
        resolved_missing_evidence=tuple(
            {"area": m.get("area") or "other", "label": m.get("label")} for m in resolved_missing
        ),
        notes=tuple(notes),
    )
