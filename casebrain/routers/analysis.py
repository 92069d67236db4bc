"""
Case analysis API.

Rebuilds append a new immutable version; history and single versions are
read back as stored, never recomputed.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..analysis_pipeline import run_case_analysis
from ..analysis_versions import get_version, list_versions
from ..correspondence import build_correspondence_timeline, build_opponent_activity
from ..db import get_db
from ..errors import CaseNotFoundError, DocumentSelectionError, VersionConflictError
from ..models import Case
from ..schemas.analysis import (
    AnalysisVersionOut,
    CorrespondenceTimelineResponse,
    OpponentActivityResponse,
    RebuildAnalysisRequest,
    RebuildAnalysisResponse,
    VersionHistoryResponse,
    VersionSummary,
)
from ..sources import SqlCaseSources

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cases/{case_id}", tags=["case-analysis"])


def _require_case(db: Session, case_id: uuid.UUID) -> Case:
    case = db.get(Case, case_id)
    if case is None:
        raise HTTPException(status_code=404, detail="Case not found")
    return case


@router.post("/analysis/rebuild", response_model=RebuildAnalysisResponse)
def rebuild_analysis(
    case_id: uuid.UUID,
    payload: RebuildAnalysisRequest,
    db: Session = Depends(get_db),
):
    try:
        run = run_case_analysis(
            db,
            case_id,
            payload.document_ids,
            extra_missing_evidence=[item.model_dump() for item in payload.missing_evidence],
            created_by=payload.created_by,
        )
    except CaseNotFoundError:
        raise HTTPException(status_code=404, detail="Case not found")
    except DocumentSelectionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except VersionConflictError as e:
        db.rollback()
        logger.error("Version assignment failed for case %s: %s", case_id, e)
        raise HTTPException(status_code=503, detail="Analysis is busy, try again")
    except Exception as e:
        db.rollback()
        logger.exception(f"Error rebuilding analysis for case {case_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to rebuild analysis")

    return RebuildAnalysisResponse(
        version=AnalysisVersionOut.model_validate(run.version),
        locked_options=list(run.momentum.locked_options),
        warnings=list(run.evidence_strength.warnings),
    )


@router.get("/analysis/versions", response_model=VersionHistoryResponse)
def get_analysis_versions(case_id: uuid.UUID, db: Session = Depends(get_db)):
    case = _require_case(db, case_id)
    versions = list_versions(db, case_id)
    return VersionHistoryResponse(
        case_id=case.id,
        latest_version=case.latest_analysis_version,
        versions=[
            VersionSummary(
                version_number=v.version_number,
                momentum=v.momentum,
                created_at=v.created_at,
                document_count=len(v.document_ids or []),
                delta_kind=(v.analysis_delta or {}).get("kind"),
            )
            for v in versions
        ],
    )


@router.get(
    "/analysis/versions/{version_number}", response_model=AnalysisVersionOut
)
def get_analysis_version(
    case_id: uuid.UUID, version_number: int, db: Session = Depends(get_db)
):
    _require_case(db, case_id)
    version = get_version(db, case_id, version_number)
    if version is None:
        raise HTTPException(status_code=404, detail="Analysis version not found")
    return AnalysisVersionOut.model_validate(version)


@router.get(
    "/correspondence/timeline", response_model=CorrespondenceTimelineResponse
)
def get_correspondence_timeline(case_id: uuid.UUID, db: Session = Depends(get_db)):
    _require_case(db, case_id)
    timeline = build_correspondence_timeline(str(case_id), SqlCaseSources(db))
    return CorrespondenceTimelineResponse(**timeline.to_dict())


@router.get("/opponent-activity", response_model=OpponentActivityResponse)
def get_opponent_activity(case_id: uuid.UUID, db: Session = Depends(get_db)):
    _require_case(db, case_id)
    timeline = build_correspondence_timeline(str(case_id), SqlCaseSources(db))
    return OpponentActivityResponse(**build_opponent_activity(timeline).to_dict())
