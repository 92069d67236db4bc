"""
Correspondence timeline.

Merges file notes, correspondence documents and drafted letters into one
chronological feed, collapses same-day duplicates, annotates gaps between
items and derives how quickly the opponent replies.

Direction and party are inferred with ordered keyword checks per source
kind; the first matching rule wins.
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Sequence

from ..config import settings
from ..sources import CaseSources, DocumentRecord, LetterRecord, NoteRecord

logger = logging.getLogger(__name__)

_SUBJECT_PREFIX_RE = re.compile(r"^\s*(?:re|fw|fwd|aw|sv|wg|tr|fs)\s*:\s*", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")
_EMAIL_SUBJECT_RE = re.compile(r"subject:\s*([^\n]+)", re.IGNORECASE)

DEDUPE_LABEL_CHARS = 100
SUMMARY_CHARS = 150


class Direction(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class Channel(str, Enum):
    EMAIL = "email"
    LETTER = "letter"
    PHONE_NOTE = "phone_note"


class Party(str, Enum):
    CLIENT = "client"
    OPPONENT = "opponent"
    COURT = "court"
    INTERNAL = "internal"
    UNKNOWN = "unknown"


@dataclass
class CorrespondenceItem:
    id: str
    direction: Direction
    channel: Channel
    party: Party
    subject_or_label: str
    created_at: datetime
    summary: str | None = None
    display_name: str = ""
    has_attachment: bool = False
    gap_since_previous_days: int | None = None

    @property
    def is_opponent_reply(self) -> bool:
        return self.party is Party.OPPONENT and self.direction is Direction.INBOUND

    @property
    def is_outbound_to_opponent(self) -> bool:
        return self.party is Party.OPPONENT and self.direction is Direction.OUTBOUND

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "direction": self.direction.value,
            "channel": self.channel.value,
            "party": self.party.value,
            "display_name": self.display_name,
            "subject_or_label": self.subject_or_label,
            "summary": self.summary,
            "created_at": self.created_at.isoformat(),
            "has_attachment": self.has_attachment,
            "gap_since_previous_days": self.gap_since_previous_days,
            "is_opponent_reply": self.is_opponent_reply,
        }


@dataclass(frozen=True)
class LongGap:
    from_id: str
    to_id: str
    days: int

    def to_dict(self) -> dict[str, Any]:
        return {"from_id": self.from_id, "to_id": self.to_id, "days": self.days}


@dataclass
class CorrespondenceTimeline:
    items: list[CorrespondenceItem] = field(default_factory=list)
    long_gaps: list[LongGap] = field(default_factory=list)
    opponent_average_reply_days: int | None = None
    last_client_update_at: datetime | None = None
    last_opponent_contact_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [item.to_dict() for item in self.items],
            "long_gaps": [gap.to_dict() for gap in self.long_gaps],
            "opponent_average_reply_days": self.opponent_average_reply_days,
            "last_client_update_at": _iso(self.last_client_update_at),
            "last_opponent_contact_at": _iso(self.last_opponent_contact_at),
        }


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _summary_from_text(text: str) -> str:
    for line in text.split("\n"):
        if len(line.strip()) > 10:
            return line.strip()[:SUMMARY_CHARS]
    return text.strip()[:SUMMARY_CHARS]


# ---------------------------------------------------------------------------
# Party inference
# ---------------------------------------------------------------------------


def infer_note_party(body: str) -> tuple[Direction, Party, str]:
    lower = body.lower()
    if "email from" in lower:
        if "from client" in lower or "from the client" in lower:
            return Direction.INBOUND, Party.CLIENT, "Client"
        if "from defendant" in lower or "from opponent" in lower:
            return Direction.INBOUND, Party.OPPONENT, "Opponent"
        if "from court" in lower:
            return Direction.INBOUND, Party.COURT, "Court"
        return Direction.INBOUND, Party.UNKNOWN, "External"

    if "spoke with client" in lower or "call with client" in lower:
        return Direction.OUTBOUND, Party.CLIENT, "Client"
    if "spoke with defendant" in lower or "call with opponent" in lower:
        return Direction.OUTBOUND, Party.OPPONENT, "Opponent"
    return Direction.OUTBOUND, Party.INTERNAL, "Internal"


def infer_document_party(name: str) -> tuple[Direction, Party, str]:
    lower = name.lower()
    if "lba" in lower or "letter before action" in lower:
        return Direction.OUTBOUND, Party.OPPONENT, "To Opponent"
    if "to client" in lower or "client letter" in lower:
        return Direction.OUTBOUND, Party.CLIENT, "To Client"
    if "to court" in lower:
        return Direction.OUTBOUND, Party.COURT, "To Court"

    if "from defendant" in lower or "opponent response" in lower:
        return Direction.INBOUND, Party.OPPONENT, "From Opponent"
    if "from client" in lower:
        return Direction.INBOUND, Party.CLIENT, "From Client"
    if "from court" in lower or "court order" in lower:
        return Direction.INBOUND, Party.COURT, "From Court"
    if "response" in lower or "reply" in lower:
        return Direction.INBOUND, Party.OPPONENT, "Response Received"
    return Direction.OUTBOUND, Party.UNKNOWN, "Letter"


def infer_letter_recipient(template_id: str, body: str) -> Party:
    template = template_id.lower()
    lower = body.lower()
    if "client" in template or "dear client" in lower:
        return Party.CLIENT
    if (
        "defendant" in template
        or "opponent" in template
        or "dear sirs" in lower
        or "your client" in lower
    ):
        return Party.OPPONENT
    if "court" in template or "n1" in template:
        return Party.COURT
    return Party.UNKNOWN


_LETTER_DISPLAY_NAMES = {
    Party.CLIENT: "To Client",
    Party.OPPONENT: "To Opponent",
    Party.COURT: "To Court",
    Party.INTERNAL: "Internal",
}


# ---------------------------------------------------------------------------
# Source processing
# ---------------------------------------------------------------------------


def process_note(note: NoteRecord) -> CorrespondenceItem | None:
    """Email intake notes and phone/attendance notes; other notes are skipped."""
    body = note.body or ""
    lower = body.lower()
    is_email = "email from" in lower
    is_phone = (
        note.is_attendance
        or "telephone" in lower
        or "phone call" in lower
        or "spoke with" in lower
    )
    if not is_email and not is_phone:
        return None

    direction, party, display_name = infer_note_party(body)
    if is_email:
        match = _EMAIL_SUBJECT_RE.search(body)
        label = match.group(1).strip() if match else "Email"
    else:
        label = "Attendance Note" if note.is_attendance else "Phone Call"

    return CorrespondenceItem(
        id=note.id,
        direction=direction,
        channel=Channel.EMAIL if is_email else Channel.PHONE_NOTE,
        party=party,
        display_name=display_name,
        subject_or_label=label,
        summary=_summary_from_text(body),
        created_at=as_utc(note.created_at),
        has_attachment="attachment" in lower,
    )


_CORRESPONDENCE_DOC_TYPES = ("letter", "correspondence", "email")
_CORRESPONDENCE_NAME_HINTS = ("letter", "lba", "response", "reply")


def process_document(doc: DocumentRecord) -> CorrespondenceItem | None:
    if doc.created_at is None:
        return None
    name = doc.name or ""
    doc_type = (doc.type or "").lower()
    lower_name = name.lower()
    if not (
        any(hint in doc_type for hint in _CORRESPONDENCE_DOC_TYPES)
        or any(hint in lower_name for hint in _CORRESPONDENCE_NAME_HINTS)
    ):
        return None

    direction, party, display_name = infer_document_party(name)
    summary = None
    if isinstance(doc.extracted_facts, dict):
        raw = doc.extracted_facts.get("summary")
        if isinstance(raw, str) and raw.strip():
            summary = raw.strip()[:SUMMARY_CHARS]
    if summary is None and doc.ai_summary:
        summary = doc.ai_summary.strip()[:SUMMARY_CHARS] or None

    return CorrespondenceItem(
        id=doc.id,
        direction=direction,
        channel=Channel.LETTER,
        party=party,
        display_name=display_name,
        subject_or_label=name,
        summary=summary,
        created_at=as_utc(doc.created_at),
        # The document is the attachment
        has_attachment=True,
    )


def process_letter(letter: LetterRecord) -> CorrespondenceItem:
    """Drafted letters are always outbound."""
    party = infer_letter_recipient(letter.template_id, letter.body or "")
    return CorrespondenceItem(
        id=letter.id,
        direction=Direction.OUTBOUND,
        channel=Channel.LETTER,
        party=party,
        display_name=_LETTER_DISPLAY_NAMES.get(party, "Letter"),
        subject_or_label=f"Draft: {letter.template_id.replace('_', ' ')}",
        summary=(letter.body or "")[:SUMMARY_CHARS] or None,
        created_at=as_utc(letter.created_at),
    )


# ---------------------------------------------------------------------------
# Dedupe, gaps, opponent statistics
# ---------------------------------------------------------------------------


def normalize_label(label: str | None) -> str:
    s = _WHITESPACE_RE.sub(" ", (label or "").strip())
    while True:
        new_s = _SUBJECT_PREFIX_RE.sub("", s)
        if new_s == s:
            break
        s = new_s
    return s.strip().lower()[:DEDUPE_LABEL_CHARS]


def dedupe_key(item: CorrespondenceItem) -> str:
    day = as_utc(item.created_at).date().isoformat()
    raw = f"{day}|{normalize_label(item.subject_or_label)}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def dedupe_items(items: Iterable[CorrespondenceItem]) -> list[CorrespondenceItem]:
    """Collapse items sharing (day, normalized label); the richer summary wins."""
    seen: dict[str, CorrespondenceItem] = {}
    for item in items:
        key = dedupe_key(item)
        existing = seen.get(key)
        if existing is None or len(item.summary or "") > len(existing.summary or ""):
            seen[key] = item
    return sorted(seen.values(), key=lambda i: (as_utc(i.created_at), i.id))


def annotate_gaps(items: Sequence[CorrespondenceItem]) -> None:
    if items:
        items[0].gap_since_previous_days = None
    for prev, curr in zip(items, items[1:]):
        curr.gap_since_previous_days = (as_utc(curr.created_at) - as_utc(prev.created_at)).days


def find_long_gaps(
    items: Sequence[CorrespondenceItem], threshold_days: int | None = None
) -> list[LongGap]:
    threshold = settings.LONG_GAP_THRESHOLD_DAYS if threshold_days is None else threshold_days
    return [
        LongGap(from_id=prev.id, to_id=curr.id, days=curr.gap_since_previous_days)
        for prev, curr in zip(items, items[1:])
        if curr.gap_since_previous_days is not None
        and curr.gap_since_previous_days >= threshold
    ]


def opponent_reply_delays(items: Sequence[CorrespondenceItem]) -> list[int]:
    """Day counts from an outbound-to-opponent item to the next opponent reply.

    A later outbound item replaces an unanswered earlier one; a reply closes
    the pair. Delays outside (0, OPPONENT_REPLY_MAX_DAYS) are discarded.
    """
    delays: list[int] = []
    pending: CorrespondenceItem | None = None
    for item in items:
        if item.is_outbound_to_opponent:
            pending = item
        elif item.is_opponent_reply and pending is not None:
            days = (as_utc(item.created_at) - as_utc(pending.created_at)).days
            if 0 < days < settings.OPPONENT_REPLY_MAX_DAYS:
                delays.append(days)
            pending = None
    return delays


def average_reply_days(delays: Sequence[int]) -> int | None:
    if not delays:
        return None
    # Half-up rounding on an exact integer ratio
    return (2 * sum(delays) + len(delays)) // (2 * len(delays))


def _last_contact(items: Sequence[CorrespondenceItem], party: Party) -> datetime | None:
    for item in reversed(items):
        if item.party is party:
            return item.created_at
    return None


def build_timeline(
    notes: Iterable[NoteRecord] = (),
    documents: Iterable[DocumentRecord] = (),
    letters: Iterable[LetterRecord] = (),
) -> CorrespondenceTimeline:
    raw: list[CorrespondenceItem] = []
    for note in notes:
        item = process_note(note)
        if item is not None:
            raw.append(item)
    for doc in documents:
        item = process_document(doc)
        if item is not None:
            raw.append(item)
    raw.extend(process_letter(letter) for letter in letters)

    items = dedupe_items(raw)
    annotate_gaps(items)
    return CorrespondenceTimeline(
        items=items,
        long_gaps=find_long_gaps(items),
        opponent_average_reply_days=average_reply_days(opponent_reply_delays(items)),
        last_client_update_at=_last_contact(items, Party.CLIENT),
        last_opponent_contact_at=_last_contact(items, Party.OPPONENT),
    )


def build_correspondence_timeline(case_id: str, sources: CaseSources) -> CorrespondenceTimeline:
    """Read the three correspondence sources and build the timeline.

    Each source read is independent; a failing one is logged and treated as
    empty.
    """
    loaded: dict[str, list[Any]] = {}
    readers = {
        "case_notes": sources.list_case_notes,
        "documents": sources.list_correspondence_documents,
        "letters": sources.list_letters,
    }
    for name, reader in readers.items():
        try:
            loaded[name] = list(reader(case_id))
        except Exception as e:
            logger.warning(
                "Correspondence source '%s' failed for case %s: %s", name, case_id, e
            )
            loaded[name] = []

    return build_timeline(
        notes=loaded["case_notes"],
        documents=loaded["documents"],
        letters=loaded["letters"],
    )
