"""
Full analysis run for one case.

corpus -> dimension scorers + expert gate -> correspondence/opponent signal
-> evidence strength -> momentum -> version row (with its delta).
"""

from __future__ import annotations

import logging
import re
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Sequence

from sqlalchemy.orm import Session

from .analysis_delta import AnalysisDelta
from .analysis_versions import VersionContent, create_version
from .config import settings
from .corpus import CorpusBuild, collect_corpus
from .correspondence import (
    CorrespondenceTimeline,
    OpponentActivity,
    build_correspondence_timeline,
    build_opponent_activity,
)
from .correspondence.timeline import as_utc
from .errors import (
    CaseNotFoundError,
    NoDocumentsSelectedError,
    TooManyDocumentsSelectedError,
)
from .evidence_strength import EvidenceStrengthResult, analyse_evidence_strength
from .models import Case, CaseAnalysisVersion
from .momentum import MomentumAssessment, assess_momentum
from .scoring import (
    BREACH_PATTERNS,
    CAUSATION_PATTERNS,
    HARM_PATTERNS,
    DimensionResult,
    ExpertPresence,
    detect_expert_presence,
    score,
)
from .sources import CaseSources, SqlCaseSources

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")

MISSING_DIMENSION_EVIDENCE = {
    "breach": "Evidence that the standard of care was breached",
    "causation": "Evidence linking the breach to the injury",
    "harm": "Evidence of injury, loss or damage",
}
EXPERT_REPORT_LABEL = "Independent expert report (breach and causation)"
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass
class DimensionScores:
    breach: DimensionResult
    causation: DimensionResult
    harm: DimensionResult
    expert: ExpertPresence


@dataclass
class AnalysisRun:
    version: CaseAnalysisVersion
    delta: AnalysisDelta
    momentum: MomentumAssessment
    scores: DimensionScores
    evidence_strength: EvidenceStrengthResult
    correspondence: CorrespondenceTimeline
    opponent_activity: OpponentActivity
    corpus: CorpusBuild


def slugify(label: str) -> str:
    return _SLUG_RE.sub("-", label.lower()).strip("-")


def score_case(corpus: CorpusBuild) -> DimensionScores:
    """Run the four dimension scorers concurrently; they share no state."""
    text = corpus.text
    with ThreadPoolExecutor(max_workers=max(1, settings.SCORER_MAX_WORKERS)) as pool:
        breach = pool.submit(score, text, BREACH_PATTERNS)
        causation = pool.submit(score, text, CAUSATION_PATTERNS)
        harm = pool.submit(score, text, HARM_PATTERNS)
        expert = pool.submit(detect_expert_presence, text, corpus.document_names)
        return DimensionScores(
            breach=breach.result(),
            causation=causation.result(),
            harm=harm.result(),
            expert=expert.result(),
        )


def derive_key_issues(scores: DimensionScores) -> list[dict[str, Any]]:
    issues: list[dict[str, Any]] = []
    seen: set[str] = set()
    for result in (scores.breach, scores.causation, scores.harm, scores.expert.result):
        for flag in result.flags:
            issue_id = f"{flag.dimension.value}:{slugify(flag.label)}"
            if issue_id in seen:
                continue
            seen.add(issue_id)
            issues.append(
                {
                    "id": issue_id,
                    "type": flag.dimension.value,
                    "label": flag.label,
                    "severity": flag.severity.value,
                    "notes": flag.reasoning,
                }
            )
    return issues


def derive_missing_evidence(
    scores: DimensionScores,
    extra_items: Sequence[dict[str, Any]] | None = None,
) -> list[dict[str, Any]]:
    missing: list[dict[str, Any]] = []
    for result in (scores.breach, scores.causation, scores.harm):
        if not result.detected:
            area = result.dimension.value
            missing.append(
                {"area": area, "label": MISSING_DIMENSION_EVIDENCE[area], "priority": "HIGH"}
            )
    if not scores.expert.present:
        missing.append({"area": "expert", "label": EXPERT_REPORT_LABEL, "priority": "HIGH"})

    keys = {(item["area"], item["label"]) for item in missing}
    for item in extra_items or ():
        label = item.get("label")
        if not label:
            continue
        area = item.get("area") or "other"
        if (area, label) in keys:
            continue
        keys.add((area, label))
        missing.append(
            {"area": area, "label": label, "priority": item.get("priority") or "MEDIUM"}
        )
    return missing


def derive_timeline(corpus: CorpusBuild) -> list[dict[str, Any]]:
    events = [event for event in corpus.timeline_events if event.description]
    events.sort(key=lambda e: (e.date is None, as_utc(e.date) if e.date else _EPOCH))
    return [
        {
            "date": event.date.isoformat() if event.date else None,
            "description": event.description,
        }
        for event in events
    ]


def build_summary(
    momentum: MomentumAssessment,
    strength: EvidenceStrengthResult,
    missing: Sequence[dict[str, Any]],
) -> str:
    lines = [momentum.explanation]
    lines.append(
        f"Evidence strength is {strength.level.value.replace('_', ' ').lower()} "
        f"({strength.overall_strength}/100)."
    )
    if missing:
        labels = "; ".join(item["label"] for item in missing[:3])
        more = f" and {len(missing) - 3} more" if len(missing) > 3 else ""
        lines.append(f"Outstanding evidence: {labels}{more}.")
    return " ".join(lines)


def run_case_analysis(
    db: Session,
    case_id: str | uuid.UUID,
    document_ids: Sequence[str | uuid.UUID],
    *,
    sources: CaseSources | None = None,
    now: datetime | None = None,
    extra_missing_evidence: Sequence[dict[str, Any]] | None = None,
    created_by: str | None = None,
) -> AnalysisRun:
    case_uuid = case_id if isinstance(case_id, uuid.UUID) else uuid.UUID(str(case_id))
    if db.get(Case, case_uuid) is None:
        raise CaseNotFoundError(case_id)
    if not document_ids:
        raise NoDocumentsSelectedError("Select at least one document to analyse")

    doc_ids = sorted({str(doc_id) for doc_id in document_ids})
    if len(doc_ids) > settings.CORPUS_DOCUMENT_LIMIT:
        raise TooManyDocumentsSelectedError(len(doc_ids), settings.CORPUS_DOCUMENT_LIMIT)
    if sources is None:
        sources = SqlCaseSources(db, document_ids=doc_ids)
    key = str(case_uuid)

    corpus = collect_corpus(key, sources)
    if not corpus.documents and "documents" not in corpus.failed_sources:
        raise NoDocumentsSelectedError("None of the selected documents belong to this case")

    # Record what reached the corpus; ids from other cases never do
    used_ids = [doc.id for doc in corpus.documents]
    if "documents" not in corpus.failed_sources and len(used_ids) < len(doc_ids):
        logger.warning(
            "Case %s: %d of %d selected documents were not found on the case",
            key,
            len(doc_ids) - len(used_ids),
            len(doc_ids),
        )

    scores = score_case(corpus)

    correspondence = build_correspondence_timeline(key, sources)
    opponent = build_opponent_activity(correspondence, now=now)

    strength = analyse_evidence_strength(
        corpus.text,
        opponent_status=opponent.status.value,
        opponent_average_days=correspondence.opponent_average_reply_days,
    )
    momentum = assess_momentum(
        scores.breach,
        scores.causation,
        scores.harm,
        scores.expert.present,
        opponent_status=opponent.status.value,
    )

    missing = derive_missing_evidence(scores, extra_missing_evidence)
    content = VersionContent(
        momentum=momentum.state.value,
        summary=build_summary(momentum, strength, missing),
        key_issues=derive_key_issues(scores),
        timeline=derive_timeline(corpus),
        missing_evidence=missing,
        dimensions={
            "breach": scores.breach.to_dict(),
            "causation": scores.causation.to_dict(),
            "harm": scores.harm.to_dict(),
            "expert": scores.expert.to_dict(),
            "evidence_strength": strength.to_dict(),
            "momentum": momentum.to_dict(),
            "opponent_activity": opponent.to_dict(),
            "corpus": {
                "chars": len(corpus.text),
                "fragments": len(corpus.fragments),
                "failed_sources": list(corpus.failed_sources),
            },
        },
    )

    version, delta = create_version(
        db, case_uuid, used_ids, content, created_by=created_by
    )
    return AnalysisRun(
        version=version,
        delta=delta,
        momentum=momentum,
        scores=scores,
        evidence_strength=strength,
        correspondence=correspondence,
        opponent_activity=opponent,
        corpus=corpus,
    )
