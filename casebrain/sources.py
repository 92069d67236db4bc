"""
Read-only record sources for a case.

The engine only needs flat records; ``CaseSources`` is the protocol it reads
through and ``SqlCaseSources`` is the SQLAlchemy-backed implementation used by
the API and the CLI. Tests pass in-memory fakes that satisfy the same protocol.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .models import BundleChunk, CaseBundle, CaseNote, Document, Letter, TimelineEvent


@dataclass(frozen=True)
class DocumentRecord:
    id: str
    name: str
    type: str | None = None
    extracted_facts: Any = None
    ai_summary: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class BundleChunkRecord:
    raw_text: str | None = None
    ai_summary: str | None = None


@dataclass(frozen=True)
class TimelineEventRecord:
    date: datetime | None
    description: str | None


@dataclass(frozen=True)
class NoteRecord:
    id: str
    body: str
    created_at: datetime
    is_attendance: bool = False


@dataclass(frozen=True)
class LetterRecord:
    id: str
    template_id: str
    created_at: datetime
    body: str = ""


class CaseSources(Protocol):
    def list_documents(self, case_id: str) -> Sequence[DocumentRecord]: ...

    def list_bundle_chunks(self, case_id: str) -> Sequence[BundleChunkRecord]: ...

    def list_timeline_events(self, case_id: str) -> Sequence[TimelineEventRecord]: ...

    def list_case_notes(self, case_id: str) -> Sequence[NoteRecord]: ...

    def list_letters(self, case_id: str) -> Sequence[LetterRecord]: ...

    def list_correspondence_documents(self, case_id: str) -> Sequence[DocumentRecord]: ...


def _as_uuid(value: str | uuid.UUID) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


class SqlCaseSources:
    """``CaseSources`` over the ORM tables.

    ``document_ids`` restricts ``list_documents`` to an explicit evidence set,
    which is how a rebuild pins the documents a version was computed from.
    """

    def __init__(self, db: Session, document_ids: Sequence[str] | None = None):
        self.db = db
        self.document_ids = (
            [_as_uuid(doc_id) for doc_id in document_ids]
            if document_ids is not None
            else None
        )

    def list_documents(self, case_id: str) -> list[DocumentRecord]:
        stmt = select(Document).where(Document.case_id == _as_uuid(case_id))
        if self.document_ids is not None:
            stmt = stmt.where(Document.id.in_(self.document_ids))
        stmt = stmt.order_by(Document.created_at.desc(), Document.id).limit(
            settings.CORPUS_DOCUMENT_LIMIT
        )
        return [
            DocumentRecord(
                id=str(doc.id),
                name=doc.name,
                type=doc.type,
                extracted_facts=doc.extracted_json,
                ai_summary=doc.ai_summary,
                created_at=doc.created_at,
            )
            for doc in self.db.scalars(stmt)
        ]

    def list_bundle_chunks(self, case_id: str) -> list[BundleChunkRecord]:
        bundle = self.db.scalars(
            select(CaseBundle)
            .where(CaseBundle.case_id == _as_uuid(case_id))
            .order_by(CaseBundle.created_at.desc())
            .limit(1)
        ).first()
        if bundle is None:
            return []
        chunks = self.db.scalars(
            select(BundleChunk)
            .where(BundleChunk.bundle_id == bundle.id)
            .order_by(BundleChunk.chunk_index)
            .limit(settings.CORPUS_BUNDLE_CHUNK_LIMIT)
        )
        return [
            BundleChunkRecord(raw_text=chunk.raw_text, ai_summary=chunk.ai_summary)
            for chunk in chunks
        ]

    def list_timeline_events(self, case_id: str) -> list[TimelineEventRecord]:
        events = self.db.scalars(
            select(TimelineEvent)
            .where(TimelineEvent.case_id == _as_uuid(case_id))
            .order_by(TimelineEvent.event_date)
            .limit(settings.CORPUS_TIMELINE_EVENT_LIMIT)
        )
        return [
            TimelineEventRecord(date=event.event_date, description=event.description)
            for event in events
        ]

    def list_case_notes(self, case_id: str) -> list[NoteRecord]:
        notes = self.db.scalars(
            select(CaseNote)
            .where(CaseNote.case_id == _as_uuid(case_id))
            .order_by(CaseNote.created_at)
        )
        return [
            NoteRecord(
                id=str(note.id),
                body=note.body or "",
                created_at=note.created_at or datetime.min,
                is_attendance=bool(note.is_attendance),
            )
            for note in notes
        ]

    def list_letters(self, case_id: str) -> list[LetterRecord]:
        letters = self.db.scalars(
            select(Letter)
            .where(Letter.case_id == _as_uuid(case_id))
            .order_by(Letter.created_at)
        )
        return [
            LetterRecord(
                id=str(letter.id),
                template_id=letter.template_id,
                created_at=letter.created_at or datetime.min,
                body=letter.body or "",
            )
            for letter in letters
        ]

    def list_correspondence_documents(self, case_id: str) -> list[DocumentRecord]:
        """All case documents, unrestricted by the rebuild's evidence set."""
        docs = self.db.scalars(
            select(Document)
            .where(Document.case_id == _as_uuid(case_id))
            .order_by(Document.created_at)
        )
        return [
            DocumentRecord(
                id=str(doc.id),
                name=doc.name,
                type=doc.type,
                extracted_facts=doc.extracted_json,
                ai_summary=doc.ai_summary,
                created_at=doc.created_at,
            )
            for doc in docs
        ]
