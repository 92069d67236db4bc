"""
Corpus aggregation.

Builds the single lower-case-agnostic text blob that every scorer reads. The
order of fragments is fixed: per document the AI summary, the named
extracted-fact fields and the raw extracted payload, then bundle chunk text and
summaries, then timeline event descriptions. A source that fails to read is
logged and skipped; it never aborts the analysis.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from .config import settings
from .sources import (
    BundleChunkRecord,
    CaseSources,
    DocumentRecord,
    TimelineEventRecord,
)

logger = logging.getLogger(__name__)


class ExtractedFacts(BaseModel):
    """Structured extraction payload stored on a document.

    Only three fields are read by name; anything else the extractor produced
    is kept as an extra and still reaches the corpus through the serialized
    payload.
    """

    model_config = ConfigDict(extra="allow")

    summary: str | None = None
    keyIssues: list[Any] | None = None
    timeline: list[Any] | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "ExtractedFacts | None":
        if payload is None:
            return None
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except ValueError:
                return None
        if not isinstance(payload, dict):
            return None
        try:
            return cls.model_validate(payload)
        except ValidationError:
            # Keep whichever named fields are usable
            return cls(
                summary=payload["summary"] if isinstance(payload.get("summary"), str) else None,
                keyIssues=payload["keyIssues"] if isinstance(payload.get("keyIssues"), list) else None,
                timeline=payload["timeline"] if isinstance(payload.get("timeline"), list) else None,
            )

    def fragments(self) -> list[str]:
        parts: list[str] = []
        if self.summary and self.summary.strip():
            parts.append(self.summary.strip())
        for items in (self.keyIssues, self.timeline):
            flattened = _flatten_items(items)
            if flattened:
                parts.append(flattened)
        return parts


def _item_text(item: Any) -> str | None:
    if isinstance(item, str):
        return item.strip() or None
    if isinstance(item, dict):
        for key in ("label", "description"):
            value = item.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


def _flatten_items(items: list[Any] | None) -> str:
    if not items:
        return ""
    return " ".join(text for text in (_item_text(item) for item in items) if text)


def _serialize_payload(payload: Any) -> str | None:
    if payload is None:
        return None
    if isinstance(payload, str):
        return payload.strip() or None
    try:
        return json.dumps(payload, default=str, ensure_ascii=False)
    except (TypeError, ValueError):
        return None


def document_fragments(doc: DocumentRecord) -> list[str]:
    parts: list[str] = []
    summary = (doc.ai_summary or "").strip()
    if len(summary) > settings.CORPUS_SUMMARY_MIN_CHARS:
        parts.append(summary)

    facts = ExtractedFacts.from_payload(doc.extracted_facts)
    if facts is not None:
        parts.extend(facts.fragments())

    serialized = _serialize_payload(doc.extracted_facts)
    if serialized:
        parts.append(serialized)
    return parts


def chunk_fragments(chunk: BundleChunkRecord) -> list[str]:
    """Raw text then AI summary; either is skipped at or below the chunk floor."""
    parts: list[str] = []
    for value in (chunk.raw_text, chunk.ai_summary):
        text = (value or "").strip()
        if len(text) > settings.CORPUS_CHUNK_MIN_CHARS:
            parts.append(text)
    return parts


@dataclass
class CorpusBuild:
    case_id: str
    fragments: list[str] = field(default_factory=list)
    documents: list[DocumentRecord] = field(default_factory=list)
    timeline_events: list[TimelineEventRecord] = field(default_factory=list)
    failed_sources: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(self.fragments)

    @property
    def document_names(self) -> list[str]:
        return [doc.name for doc in self.documents if doc.name]


def collect_corpus(case_id: str, sources: CaseSources) -> CorpusBuild:
    build = CorpusBuild(case_id=case_id)

    try:
        build.documents = list(sources.list_documents(case_id))
    except Exception as e:
        logger.warning("Corpus source 'documents' failed for case %s: %s", case_id, e)
        build.failed_sources.append("documents")

    for doc in build.documents:
        try:
            build.fragments.extend(document_fragments(doc))
        except Exception as e:
            logger.warning(
                "Skipping document %s in corpus for case %s: %s", doc.id, case_id, e
            )
            build.failed_sources.append(f"document:{doc.id}")

    try:
        for chunk in sources.list_bundle_chunks(case_id):
            build.fragments.extend(chunk_fragments(chunk))
    except Exception as e:
        logger.warning("Corpus source 'bundle' failed for case %s: %s", case_id, e)
        build.failed_sources.append("bundle")

    try:
        build.timeline_events = list(sources.list_timeline_events(case_id))
        for event in build.timeline_events:
            if event.description and event.description.strip():
                build.fragments.append(event.description.strip())
    except Exception as e:
        logger.warning("Corpus source 'timeline' failed for case %s: %s", case_id, e)
        build.failed_sources.append("timeline")

    logger.debug(
        "Built corpus for case %s: %d fragments, %d chars, %d failed sources",
        case_id,
        len(build.fragments),
        len(build.text),
        len(build.failed_sources),
    )
    return build


def build_corpus(case_id: str, sources: CaseSources) -> str:
    return collect_corpus(case_id, sources).text
