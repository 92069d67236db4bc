import os
import sys
import unittest
from datetime import datetime, timedelta, timezone

import pytest


# Provide minimal env for Settings validation during import.
os.environ.setdefault("DATABASE_URL", "sqlite:///test.db")

# Ensure `casebrain` is importable when running from repo root.
TEST_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if TEST_ROOT not in sys.path:
    sys.path.insert(0, TEST_ROOT)


from casebrain.correspondence.timeline import (  # noqa: E402
    Channel,
    Direction,
    Party,
    average_reply_days,
    build_correspondence_timeline,
    build_timeline,
    dedupe_items,
    infer_document_party,
    infer_letter_recipient,
    infer_note_party,
    normalize_label,
    process_document,
    process_note,
)
from casebrain.sources import DocumentRecord, LetterRecord, NoteRecord  # noqa: E402


def day(month: int, dom: int, year: int = 2024, hour: int = 10) -> datetime:
    return datetime(year, month, dom, hour, tzinfo=timezone.utc)


def to_opponent(letter_id: str, when: datetime, template: str = "letter_to_defendant"):
    return LetterRecord(id=letter_id, template_id=template, created_at=when, body="Dear Sirs")


def opponent_reply(doc_id: str, when: datetime, name: str = "Response from defendant.pdf"):
    return DocumentRecord(id=doc_id, name=name, type="letter", created_at=when)


def client_letter(doc_id: str, when: datetime, summary: str | None = None):
    return DocumentRecord(
        id=doc_id,
        name="Letter to client re progress.pdf",
        type="letter",
        ai_summary=summary,
        created_at=when,
    )


class TestDedupe(unittest.TestCase):
    def test_same_day_duplicates_keep_the_richer_summary(self):
        short = client_letter("a", day(1, 5, hour=9), summary="Update")
        rich = client_letter("b", day(1, 5, hour=15), summary="Update on liability and quantum")
        for order in ((short, rich), (rich, short)):
            timeline = build_timeline(documents=order)
            self.assertEqual(len(timeline.items), 1)
            self.assertEqual(timeline.items[0].id, "b")

    def test_equal_summaries_keep_the_first_seen(self):
        first = client_letter("a", day(1, 5), summary="Same")
        second = client_letter("b", day(1, 5), summary="Same")
        self.assertEqual([i.id for i in build_timeline(documents=[first, second]).items], ["a"])

    def test_reply_prefixes_do_not_defeat_dedupe(self):
        notes = [
            NoteRecord(id="n1", body="Email from client\nSubject: Re: Fw: Update", created_at=day(2, 1)),
            NoteRecord(id="n2", body="Email from client\nSubject: update", created_at=day(2, 1, hour=16)),
        ]
        self.assertEqual(len(build_timeline(notes=notes).items), 1)

    def test_different_days_are_not_collapsed(self):
        docs = [client_letter("a", day(1, 5)), client_letter("b", day(1, 6))]
        self.assertEqual(len(build_timeline(documents=docs).items), 2)

    def test_dedupe_is_idempotent(self):
        docs = [
            client_letter("a", day(1, 5), summary="x"),
            client_letter("b", day(1, 5), summary="longer"),
            opponent_reply("c", day(1, 9)),
        ]
        once = build_timeline(documents=docs).items
        twice = dedupe_items(once)
        self.assertEqual([i.id for i in once], [i.id for i in twice])


class TestGaps(unittest.TestCase):
    def test_gap_annotation_and_long_gaps(self):
        docs = [
            client_letter("a", day(1, 1)),
            opponent_reply("b", day(1, 3)),
            DocumentRecord(id="c", name="Letter to court.pdf", type="letter", created_at=day(1, 20)),
        ]
        timeline = build_timeline(documents=docs)
        self.assertEqual([i.gap_since_previous_days for i in timeline.items], [None, 2, 17])
        self.assertEqual(len(timeline.long_gaps), 1)
        gap = timeline.long_gaps[0]
        self.assertEqual((gap.from_id, gap.to_id, gap.days), ("b", "c", 17))

    def test_gap_uses_whole_days(self):
        docs = [
            client_letter("a", day(1, 1, hour=23)),
            opponent_reply("b", day(1, 15, hour=1)),
        ]
        timeline = build_timeline(documents=docs)
        self.assertEqual(timeline.items[1].gap_since_previous_days, 13)
        self.assertEqual(timeline.long_gaps, [])

    def test_items_are_chronological(self):
        docs = [opponent_reply("late", day(3, 1)), client_letter("early", day(1, 1))]
        timeline = build_timeline(documents=docs)
        self.assertEqual([i.id for i in timeline.items], ["early", "late"])


class TestOpponentReplyAverage(unittest.TestCase):
    def test_average_rounds_half_up(self):
        timeline = build_timeline(
            documents=[opponent_reply("r1", day(1, 11)), opponent_reply("r2", day(2, 4))],
            letters=[to_opponent("l1", day(1, 1)), to_opponent("l2", day(2, 1))],
        )
        # 10 and 3 days
        self.assertEqual(timeline.opponent_average_reply_days, 7)

    def test_undefined_without_replies(self):
        timeline = build_timeline(letters=[to_opponent("l1", day(1, 1))])
        self.assertIsNone(timeline.opponent_average_reply_days)

    def test_outliers_are_discarded(self):
        timeline = build_timeline(
            documents=[
                opponent_reply("same-day", day(1, 1, hour=17)),
                opponent_reply("years", day(3, 1, year=2025)),
            ],
            letters=[to_opponent("l1", day(1, 1)), to_opponent("l2", day(2, 1))],
        )
        self.assertIsNone(timeline.opponent_average_reply_days)

    def test_later_letter_replaces_unanswered_one(self):
        timeline = build_timeline(
            documents=[opponent_reply("r1", day(1, 15))],
            letters=[
                to_opponent("l1", day(1, 1)),
                to_opponent("l2", day(1, 10), template="chase_defendant"),
            ],
        )
        self.assertEqual(timeline.opponent_average_reply_days, 5)

    def test_last_contacts(self):
        timeline = build_timeline(
            documents=[client_letter("c1", day(1, 2)), opponent_reply("r1", day(1, 9))],
            letters=[to_opponent("l1", day(1, 1))],
        )
        self.assertEqual(timeline.last_client_update_at, day(1, 2))
        self.assertEqual(timeline.last_opponent_contact_at, day(1, 9))


class TestSourceProcessing(unittest.TestCase):
    def test_plain_file_notes_are_skipped(self):
        note = NoteRecord(id="n", body="Reviewed the bundle index.", created_at=day(1, 1))
        self.assertIsNone(process_note(note))

    def test_attendance_note(self):
        note = NoteRecord(
            id="n",
            body="Attendance on client to discuss the expert report.",
            created_at=day(1, 1),
            is_attendance=True,
        )
        item = process_note(note)
        self.assertEqual(item.channel, Channel.PHONE_NOTE)
        self.assertEqual(item.subject_or_label, "Attendance Note")
        self.assertEqual(item.direction, Direction.OUTBOUND)

    def test_email_note_subject(self):
        note = NoteRecord(
            id="n",
            body="Email from opponent\nSubject: Without prejudice offer\nSee attachment.",
            created_at=day(1, 1),
        )
        item = process_note(note)
        self.assertEqual(item.channel, Channel.EMAIL)
        self.assertEqual(item.party, Party.OPPONENT)
        self.assertEqual(item.subject_or_label, "Without prejudice offer")
        self.assertTrue(item.has_attachment)
        self.assertTrue(item.is_opponent_reply)

    def test_non_correspondence_documents_are_skipped(self):
        doc = DocumentRecord(id="d", name="Radiology report.pdf", type="medical", created_at=day(1, 1))
        self.assertIsNone(process_document(doc))

    def test_document_summary_prefers_extracted_facts(self):
        doc = DocumentRecord(
            id="d",
            name="Letter to client.pdf",
            type="letter",
            extracted_facts={"summary": "Advice on merits"},
            ai_summary="Fallback summary",
            created_at=day(1, 1),
        )
        self.assertEqual(process_document(doc).summary, "Advice on merits")

    def test_failing_source_is_treated_as_empty(self):
        class Sources:
            def list_case_notes(self, case_id):
                return [NoteRecord(id="n", body="Phone call with client about dates", created_at=day(1, 1))]

            def list_correspondence_documents(self, case_id):
                raise RuntimeError("storage offline")

            def list_letters(self, case_id):
                return []

        with self.assertLogs("casebrain.correspondence.timeline", level="WARNING") as logs:
            timeline = build_correspondence_timeline("case-1", Sources())
        self.assertEqual([i.id for i in timeline.items], ["n"])
        self.assertIn("storage offline", logs.output[0])


@pytest.mark.parametrize(
    "body,expected",
    [
        ("Email from the client about dates", (Direction.INBOUND, Party.CLIENT)),
        ("Email from defendant solicitors", (Direction.INBOUND, Party.OPPONENT)),
        ("Email from court listing office", (Direction.INBOUND, Party.COURT)),
        ("Email from an expert's secretary", (Direction.INBOUND, Party.UNKNOWN)),
        ("Spoke with client re witness statement", (Direction.OUTBOUND, Party.CLIENT)),
        ("Spoke with defendant insurer", (Direction.OUTBOUND, Party.OPPONENT)),
        ("Telephone call to counsel's clerk", (Direction.OUTBOUND, Party.INTERNAL)),
    ],
)
def test_note_party(body, expected):
    direction, party, _ = infer_note_party(body)
    assert (direction, party) == expected


@pytest.mark.parametrize(
    "name,expected",
    [
        ("LBA - final.pdf", (Direction.OUTBOUND, Party.OPPONENT)),
        ("Letter to client 3.pdf", (Direction.OUTBOUND, Party.CLIENT)),
        ("Letter to court re directions.pdf", (Direction.OUTBOUND, Party.COURT)),
        ("Letter from defendant.pdf", (Direction.INBOUND, Party.OPPONENT)),
        ("Letter from client.pdf", (Direction.INBOUND, Party.CLIENT)),
        ("Court order 12 May.pdf", (Direction.INBOUND, Party.COURT)),
        ("Reply.pdf", (Direction.INBOUND, Party.OPPONENT)),
        ("Letter.pdf", (Direction.OUTBOUND, Party.UNKNOWN)),
    ],
)
def test_document_party(name, expected):
    direction, party, _ = infer_document_party(name)
    assert (direction, party) == expected


@pytest.mark.parametrize(
    "template,body,expected",
    [
        ("client_care", "", Party.CLIENT),
        ("generic", "Dear Client,", Party.CLIENT),
        ("generic", "Dear Sirs,", Party.OPPONENT),
        ("letter_to_opponent", "", Party.OPPONENT),
        ("n1_claim_form", "", Party.COURT),
        ("generic", "Hello", Party.UNKNOWN),
    ],
)
def test_letter_recipient(template, body, expected):
    assert infer_letter_recipient(template, body) == expected


@pytest.mark.parametrize(
    "label,expected",
    [
        ("  RE: Fw:  Re:   Hello   World ", "hello world"),
        ("FWD: Report", "report"),
        ("Regarding the report", "regarding the report"),
        ("", ""),
        (None, ""),
        ("x" * 150, "x" * 100),
    ],
)
def test_normalize_label(label, expected):
    assert normalize_label(label) == expected


@pytest.mark.parametrize(
    "delays,expected",
    [([], None), ([10], 10), ([10, 3], 7), ([1, 2], 2), ([1, 1, 2], 1)],
)
def test_average_reply_days(delays, expected):
    assert average_reply_days(delays) == expected


def test_naive_datetimes_are_treated_as_utc():
    naive = datetime(2024, 1, 1, 10)
    aware = naive.replace(tzinfo=timezone.utc) + timedelta(days=3)
    timeline = build_timeline(
        documents=[client_letter("a", naive), opponent_reply("b", aware)]
    )
    assert timeline.items[1].gap_since_previous_days == 3


if __name__ == "__main__":
    unittest.main()
