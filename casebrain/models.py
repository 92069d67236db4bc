from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    String,
    DateTime,
    Text,
    JSON,
    Integer,
    ForeignKey,
    Boolean,
    Index,
    Uuid,
    event,
)
import sqlalchemy as sa
from sqlalchemy.sql import func, expression
from sqlalchemy.orm import relationship, Mapped, mapped_column

from .db import Base
from .errors import ImmutableVersionError


# ============================================================================
# CASE MANAGEMENT
# ============================================================================


class Case(Base):
    """Legal matter. Tenancy and ownership live outside this service."""

    __tablename__ = "cases"
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    org_id: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    practice_area: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )  # clinical_negligence, personal_injury, housing_disrepair, criminal
    opponent_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    latest_analysis_version: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now()
    )


class Document(Base):
    """Uploaded case document with its extraction output."""

    __tablename__ = "documents"
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("cases.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(512), nullable=False)
    type: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )  # letter, email, medical_record, expert_report
    extracted_json: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    ai_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    case: Mapped[Case] = relationship("Case")


class CaseBundle(Base):
    """Paginated court bundle assembled for a case."""

    __tablename__ = "case_bundles"
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("cases.id"), nullable=False, index=True
    )
    total_pages: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class BundleChunk(Base):
    __tablename__ = "bundle_chunks"
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    bundle_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("case_bundles.id"), nullable=False
    )
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    raw_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    bundle: Mapped[CaseBundle] = relationship("CaseBundle")

    __table_args__ = (Index("idx_bundle_chunks_bundle", "bundle_id", "chunk_index"),)


class TimelineEvent(Base):
    """Timeline events for cases"""

    __tablename__ = "timeline_events"
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("cases.id"), nullable=False, index=True
    )
    event_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    description: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class CaseNote(Base):
    """File note: email intake notes, attendance notes, phone notes"""

    __tablename__ = "case_notes"
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("cases.id"), nullable=False, index=True
    )
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_attendance: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=expression.false(), default=False
    )
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class Letter(Base):
    """Letter drafted from a template (always outbound)"""

    __tablename__ = "letters"
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("cases.id"), nullable=False, index=True
    )
    template_id: Mapped[str] = mapped_column(String(100), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


# ============================================================================
# ANALYSIS VERSIONS
# ============================================================================


class CaseAnalysisVersion(Base):
    """Immutable snapshot of one analysis run.

    Rows are append-only: a rebuild always inserts version N+1. The unique
    constraint on (case_id, version_number) is what serialises concurrent
    writers; the loser of a race retries with a fresh number.
    """

    __tablename__ = "case_analysis_versions"
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    case_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("cases.id"), nullable=False
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    document_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    momentum: Mapped[str] = mapped_column(String(32), nullable=False)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    key_issues: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON)
    timeline: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON)
    missing_evidence: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON)
    dimensions: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    analysis_delta: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    case: Mapped[Case] = relationship("Case")

    __table_args__ = (
        sa.UniqueConstraint(
            "case_id", "version_number", name="uq_case_analysis_version"
        ),
        Index("idx_case_analysis_versions_case", "case_id", "version_number"),
    )


@event.listens_for(CaseAnalysisVersion, "before_update")
def _reject_version_update(mapper, connection, target: CaseAnalysisVersion) -> None:
    raise ImmutableVersionError(
        f"Analysis version {target.version_number} for case {target.case_id} "
        "is immutable; create a new version instead"
    )
