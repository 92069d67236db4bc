from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class MissingEvidenceItem(BaseModel):
    area: Optional[str] = Field(default=None, description="Evidence area, e.g. expert, medical")
    label: str = Field(..., min_length=1, description="What is missing")
    priority: Optional[str] = Field(default=None, description="HIGH, MEDIUM or LOW")


class RebuildAnalysisRequest(BaseModel):
    document_ids: List[UUID] = Field(
        ..., description="Exact evidence set the new version is computed from"
    )
    missing_evidence: List[MissingEvidenceItem] = Field(
        default_factory=list,
        description="Checklist items from the practice-area pack still outstanding",
    )
    created_by: Optional[str] = Field(default=None, max_length=100)


class VersionSummary(BaseModel):
    version_number: int
    momentum: str
    created_at: Optional[datetime] = None
    document_count: int
    delta_kind: Optional[str] = None


class AnalysisVersionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    case_id: UUID
    version_number: int
    document_ids: List[str]
    momentum: str
    summary: Optional[str] = None
    key_issues: List[Dict[str, Any]] = Field(default_factory=list)
    timeline: List[Dict[str, Any]] = Field(default_factory=list)
    missing_evidence: List[Dict[str, Any]] = Field(default_factory=list)
    dimensions: Dict[str, Any] = Field(default_factory=dict)
    analysis_delta: Optional[Dict[str, Any]] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class RebuildAnalysisResponse(BaseModel):
    version: AnalysisVersionOut
    locked_options: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class VersionHistoryResponse(BaseModel):
    case_id: UUID
    latest_version: Optional[int] = None
    versions: List[VersionSummary] = Field(default_factory=list)


class CorrespondenceItemOut(BaseModel):
    id: str
    direction: str
    channel: str
    party: str
    display_name: str
    subject_or_label: str
    summary: Optional[str] = None
    created_at: datetime
    has_attachment: bool = False
    gap_since_previous_days: Optional[int] = None
    is_opponent_reply: bool = False


class LongGapOut(BaseModel):
    from_id: str
    to_id: str
    days: int


class CorrespondenceTimelineResponse(BaseModel):
    items: List[CorrespondenceItemOut] = Field(default_factory=list)
    long_gaps: List[LongGapOut] = Field(default_factory=list)
    opponent_average_reply_days: Optional[int] = None
    last_client_update_at: Optional[datetime] = None
    last_opponent_contact_at: Optional[datetime] = None


class OpponentActivityResponse(BaseModel):
    status: str
    status_message: str
    last_letter_sent_at: Optional[datetime] = None
    last_chase_sent_at: Optional[datetime] = None
    last_opponent_reply_at: Optional[datetime] = None
    days_since_last_contact: int = 0
    current_silence_days: int = 0
    average_response_days: Optional[int] = None
    generated_at: Optional[datetime] = None
