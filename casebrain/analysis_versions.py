"""
Append-only analysis version store.

Version numbers are assigned as max(existing) + 1 per case. Within one
process a striped per-case lock serialises writers; across processes the unique
constraint on (case_id, version_number) rejects the loser of a race, which
re-reads the latest version and tries again.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .analysis_delta import AnalysisDelta, AnalysisSnapshot, compute_delta
from .config import settings
from .errors import CaseNotFoundError, VersionConflictError
from .models import Case, CaseAnalysisVersion

logger = logging.getLogger(__name__)


@dataclass
class VersionContent:
    """Computed result to be frozen into a version row."""

    momentum: str
    summary: str | None = None
    key_issues: list[dict[str, Any]] = field(default_factory=list)
    timeline: list[dict[str, Any]] = field(default_factory=list)
    missing_evidence: list[dict[str, Any]] = field(default_factory=list)
    dimensions: dict[str, Any] = field(default_factory=dict)

    def snapshot(self) -> AnalysisSnapshot:
        return AnalysisSnapshot(
            momentum=self.momentum,
            key_issues=tuple(self.key_issues),
            missing_evidence=tuple(self.missing_evidence),
        )


# Fixed stripe of locks; cases that share a stripe just serialise together
LOCK_STRIPES = 64
_case_locks: tuple[threading.Lock, ...] = tuple(threading.Lock() for _ in range(LOCK_STRIPES))


def _lock_for(case_id: uuid.UUID) -> threading.Lock:
    return _case_locks[hash(case_id) % LOCK_STRIPES]


def _as_uuid(value: str | uuid.UUID) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


def get_latest_version(db: Session, case_id: str | uuid.UUID) -> CaseAnalysisVersion | None:
    return db.scalars(
        select(CaseAnalysisVersion)
        .where(CaseAnalysisVersion.case_id == _as_uuid(case_id))
        .order_by(CaseAnalysisVersion.version_number.desc())
        .limit(1)
    ).first()


def list_versions(db: Session, case_id: str | uuid.UUID) -> list[CaseAnalysisVersion]:
    return list(
        db.scalars(
            select(CaseAnalysisVersion)
            .where(CaseAnalysisVersion.case_id == _as_uuid(case_id))
            .order_by(CaseAnalysisVersion.version_number.desc())
        )
    )


def get_version(
    db: Session, case_id: str | uuid.UUID, version_number: int
) -> CaseAnalysisVersion | None:
    return db.scalars(
        select(CaseAnalysisVersion).where(
            CaseAnalysisVersion.case_id == _as_uuid(case_id),
            CaseAnalysisVersion.version_number == version_number,
        )
    ).first()


def _normalize_document_ids(document_ids: Sequence[str | uuid.UUID]) -> list[str]:
    return sorted({str(doc_id) for doc_id in document_ids})


def create_version(
    db: Session,
    case_id: str | uuid.UUID,
    document_ids: Sequence[str | uuid.UUID],
    content: VersionContent,
    *,
    created_by: str | None = None,
) -> tuple[CaseAnalysisVersion, AnalysisDelta]:
    """Insert the next version for ``case_id`` and return it with its delta.

    The delta is computed against whatever version is latest at insert time,
    so a retried insert diffs against the row that won the race.
    """
    case_uuid = _as_uuid(case_id)
    case = db.get(Case, case_uuid)
    if case is None:
        raise CaseNotFoundError(case_id)

    doc_ids = _normalize_document_ids(document_ids)
    max_attempts = settings.VERSION_CREATE_MAX_RETRIES

    with _lock_for(case_uuid):
        for attempt in range(1, max_attempts + 1):
            previous = get_latest_version(db, case_uuid)
            version_number = previous.version_number + 1 if previous else 1
            delta = compute_delta(
                AnalysisSnapshot.from_version(previous) if previous else None,
                content.snapshot(),
            )
            row = CaseAnalysisVersion(
                case_id=case_uuid,
                version_number=version_number,
                document_ids=doc_ids,
                momentum=content.momentum,
                summary=content.summary,
                key_issues=content.key_issues,
                timeline=content.timeline,
                missing_evidence=content.missing_evidence,
                dimensions=content.dimensions,
                analysis_delta=delta.to_dict(),
                created_by=created_by,
            )
            try:
                db.add(row)
                db.flush()
                db.execute(
                    Case.__table__.update()
                    .where(Case.id == case_uuid)
                    .values(latest_analysis_version=version_number)
                )
                db.commit()
            except IntegrityError:
                db.rollback()
                logger.info(
                    "Version %d for case %s already taken (attempt %d/%d), retrying",
                    version_number,
                    case_uuid,
                    attempt,
                    max_attempts,
                )
                continue

            db.refresh(row)
            logger.info(
                "Created analysis version %d for case %s, momentum: %s, documents: %d",
                version_number,
                case_uuid,
                content.momentum,
                len(doc_ids),
            )
            return row, delta

    raise VersionConflictError(case_uuid, max_attempts)
