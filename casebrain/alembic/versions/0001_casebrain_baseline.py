"""Baseline schema: case sources and append-only analysis versions.

Revision ID: 0001_casebrain_baseline
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_casebrain_baseline"
down_revision: str | None = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None


def _uuid() -> sa.Uuid:
    return sa.Uuid(as_uuid=True)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=True,
    )


def upgrade() -> None:
    op.create_table(
        "cases",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("org_id", sa.String(100), nullable=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("practice_area", sa.String(100), nullable=True),
        sa.Column("opponent_name", sa.String(255), nullable=True),
        sa.Column("latest_analysis_version", sa.Integer(), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_cases_org_id", "cases", ["org_id"])

    op.create_table(
        "documents",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("case_id", _uuid(), sa.ForeignKey("cases.id"), nullable=False),
        sa.Column("name", sa.String(512), nullable=False),
        sa.Column("type", sa.String(100), nullable=True),
        sa.Column("extracted_json", sa.JSON(), nullable=True),
        sa.Column("ai_summary", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_documents_case_id", "documents", ["case_id"])

    op.create_table(
        "case_bundles",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("case_id", _uuid(), sa.ForeignKey("cases.id"), nullable=False),
        sa.Column("total_pages", sa.Integer(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_case_bundles_case_id", "case_bundles", ["case_id"])

    op.create_table(
        "bundle_chunks",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column(
            "bundle_id", _uuid(), sa.ForeignKey("case_bundles.id"), nullable=False
        ),
        sa.Column("chunk_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("raw_text", sa.Text(), nullable=True),
        sa.Column("ai_summary", sa.Text(), nullable=True),
    )
    op.create_index(
        "idx_bundle_chunks_bundle", "bundle_chunks", ["bundle_id", "chunk_index"]
    )

    op.create_table(
        "timeline_events",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("case_id", _uuid(), sa.ForeignKey("cases.id"), nullable=False),
        sa.Column("event_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_timeline_events_case_id", "timeline_events", ["case_id"])
    op.create_index("ix_timeline_events_event_date", "timeline_events", ["event_date"])

    op.create_table(
        "case_notes",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("case_id", _uuid(), sa.ForeignKey("cases.id"), nullable=False),
        sa.Column("body", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "is_attendance", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        _created_at(),
    )
    op.create_index("ix_case_notes_case_id", "case_notes", ["case_id"])

    op.create_table(
        "letters",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("case_id", _uuid(), sa.ForeignKey("cases.id"), nullable=False),
        sa.Column("template_id", sa.String(100), nullable=False),
        sa.Column("body", sa.Text(), nullable=False, server_default=""),
        _created_at(),
    )
    op.create_index("ix_letters_case_id", "letters", ["case_id"])

    op.create_table(
        "case_analysis_versions",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("case_id", _uuid(), sa.ForeignKey("cases.id"), nullable=False),
        sa.Column("version_number", sa.Integer(), nullable=False),
        sa.Column("document_ids", sa.JSON(), nullable=False),
        sa.Column("momentum", sa.String(32), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("key_issues", sa.JSON(), nullable=True),
        sa.Column("timeline", sa.JSON(), nullable=True),
        sa.Column("missing_evidence", sa.JSON(), nullable=True),
        sa.Column("dimensions", sa.JSON(), nullable=True),
        sa.Column("analysis_delta", sa.JSON(), nullable=True),
        sa.Column("created_by", sa.String(100), nullable=True),
        _created_at(),
        sa.UniqueConstraint(
            "case_id", "version_number", name="uq_case_analysis_version"
        ),
    )
    op.create_index(
        "idx_case_analysis_versions_case",
        "case_analysis_versions",
        ["case_id", "version_number"],
    )


def downgrade() -> None:
    op.drop_index("idx_case_analysis_versions_case", table_name="case_analysis_versions")
    op.drop_table("case_analysis_versions")
    op.drop_index("ix_letters_case_id", table_name="letters")
    op.drop_table("letters")
    op.drop_index("ix_case_notes_case_id", table_name="case_notes")
    op.drop_table("case_notes")
    op.drop_index("ix_timeline_events_event_date", table_name="timeline_events")
    op.drop_index("ix_timeline_events_case_id", table_name="timeline_events")
    op.drop_table("timeline_events")
    op.drop_index("idx_bundle_chunks_bundle", table_name="bundle_chunks")
    op.drop_table("bundle_chunks")
    op.drop_index("ix_case_bundles_case_id", table_name="case_bundles")
    op.drop_table("case_bundles")
    op.drop_index("ix_documents_case_id", table_name="documents")
    op.drop_table("documents")
    op.drop_index("ix_cases_org_id", table_name="cases")
    op.drop_table("cases")
