"""End-to-end rebuilds: corpus, scoring, momentum, versioning and deltas."""

import os
import sys
import unittest
import uuid
from datetime import datetime, timezone


# Provide minimal env for Settings validation during import.
os.environ.setdefault("DATABASE_URL", "sqlite:///test.db")

# Ensure `casebrain` is importable when running from repo root.
TEST_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if TEST_ROOT not in sys.path:
    sys.path.insert(0, TEST_ROOT)


from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from casebrain.analysis_pipeline import (  # noqa: E402
    EXPERT_REPORT_LABEL,
    run_case_analysis,
)
from casebrain.analysis_versions import get_latest_version, get_version  # noqa: E402
from casebrain.config import settings  # noqa: E402
from casebrain.db import Base  # noqa: E402
from casebrain.errors import (  # noqa: E402
    CaseNotFoundError,
    NoDocumentsSelectedError,
    TooManyDocumentsSelectedError,
)
from casebrain.models import Case, Document, Letter, TimelineEvent  # noqa: E402

ED_SUMMARY = (
    "Radiology report: no fracture seen on the initial wrist x-ray. The patient "
    "re-presented three weeks later with persistent pain and there was a delay in "
    "diagnosis of a scaphoid fracture. She underwent surgery with internal fixation."
)
EXPERT_SUMMARY = (
    "Medico-legal report of Mr J Patel. In my opinion the care provided fell below "
    "the standard of care expected of a reasonably competent clinician. On the "
    "balance of probabilities earlier treatment would have avoided surgery. "
    "Prognosis: guarded."
)


class TestAnalysisPipeline(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(self.engine)
        self.db = sessionmaker(bind=self.engine, autoflush=False)()

        case = Case(title="Jones v Riverside Hospital", practice_area="clinical_negligence")
        self.db.add(case)
        self.db.flush()
        self.case_id = case.id

        ed = Document(
            case_id=case.id,
            name="ED records.pdf",
            type="medical_record",
            ai_summary=ED_SUMMARY,
            extracted_json={"summary": "Missed scaphoid fracture", "keyIssues": ["Delay"]},
            created_at=datetime(2024, 1, 10, tzinfo=timezone.utc),
        )
        expert = Document(
            case_id=case.id,
            name="Expert report - Mr Patel.pdf",
            type="expert_report",
            ai_summary=EXPERT_SUMMARY,
            created_at=datetime(2024, 3, 1, tzinfo=timezone.utc),
        )
        self.db.add_all([ed, expert])
        self.db.add_all(
            [
                TimelineEvent(
                    case_id=case.id,
                    event_date=datetime(2024, 1, 31, tzinfo=timezone.utc),
                    description="Re-presented to ED",
                ),
                TimelineEvent(
                    case_id=case.id,
                    event_date=datetime(2024, 1, 10, tzinfo=timezone.utc),
                    description="Initial ED attendance",
                ),
                Letter(
                    case_id=case.id,
                    template_id="letter_of_claim_defendant",
                    body="Dear Sirs",
                    created_at=datetime(2024, 2, 1, tzinfo=timezone.utc),
                ),
            ]
        )
        self.db.commit()
        self.ed_id = str(ed.id)
        self.expert_id = str(expert.id)
        self.now = datetime(2024, 3, 20, tzinfo=timezone.utc)

    def tearDown(self):
        self.db.close()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()

    def test_expert_report_confirms_strong_momentum(self):
        first = run_case_analysis(self.db, self.case_id, [self.ed_id], now=self.now)
        self.assertEqual(first.version.version_number, 1)
        self.assertEqual(first.version.momentum, "STRONG_EXPERT_PENDING")
        self.assertTrue(first.delta.is_first_analysis)
        self.assertEqual(len(first.momentum.locked_options), 4)
        self.assertIn(
            EXPERT_REPORT_LABEL, [m["label"] for m in first.version.missing_evidence]
        )

        second = run_case_analysis(
            self.db, self.case_id, [self.ed_id, self.expert_id], now=self.now
        )
        self.assertEqual(second.version.version_number, 2)
        self.assertEqual(second.version.momentum, "STRONG")
        self.assertEqual(second.momentum.locked_options, ())
        change = second.delta.momentum_change
        self.assertTrue(change.expert_confirmed)
        self.assertIn(
            EXPERT_REPORT_LABEL,
            [m["label"] for m in second.delta.resolved_missing_evidence],
        )
        self.assertTrue(any(i["type"] == "expert" for i in second.delta.new_issues))
        self.assertEqual(second.version.document_ids, sorted([self.ed_id, self.expert_id]))

        self.db.expire_all()
        self.assertEqual(self.db.get(Case, self.case_id).latest_analysis_version, 2)
        self.assertEqual(
            get_version(self.db, self.case_id, 1).momentum, "STRONG_EXPERT_PENDING"
        )

    def test_dimensions_snapshot(self):
        run = run_case_analysis(self.db, self.case_id, [self.ed_id], now=self.now)
        dims = run.version.dimensions
        self.assertTrue(dims["breach"]["detected"])
        self.assertTrue(dims["causation"]["detected"])
        self.assertEqual(dims["harm"]["level"], "PRESENT")
        self.assertFalse(dims["expert"]["present"])
        self.assertEqual(dims["momentum"]["state"], "STRONG_EXPERT_PENDING")
        self.assertEqual(dims["corpus"]["failed_sources"], [])
        # Letter of claim 7 weeks ago, no reply
        self.assertEqual(dims["opponent_activity"]["status"], "SLOWER_THAN_USUAL")
        self.assertEqual(
            [e["description"] for e in run.version.timeline],
            ["Initial ED attendance", "Re-presented to ED"],
        )

    def test_rebuild_with_same_documents_is_unchanged(self):
        run_case_analysis(self.db, self.case_id, [self.ed_id], now=self.now)
        again = run_case_analysis(self.db, self.case_id, [self.ed_id], now=self.now)
        self.assertEqual(again.version.version_number, 2)
        self.assertEqual(again.delta.kind.value, "UNCHANGED")

    def test_checklist_items_join_missing_evidence(self):
        run = run_case_analysis(
            self.db,
            self.case_id,
            [self.ed_id],
            now=self.now,
            extra_missing_evidence=[
                {"area": "medical", "label": "GP records"},
                {"area": "medical", "label": "GP records"},
                {"label": ""},
            ],
        )
        gp = [m for m in run.version.missing_evidence if m["label"] == "GP records"]
        self.assertEqual(len(gp), 1)
        self.assertEqual(gp[0]["priority"], "MEDIUM")

    def test_unknown_case(self):
        with self.assertRaises(CaseNotFoundError):
            run_case_analysis(self.db, uuid.uuid4(), [self.ed_id])

    def test_empty_selection(self):
        with self.assertRaises(NoDocumentsSelectedError):
            run_case_analysis(self.db, self.case_id, [])

    def test_documents_from_another_case_are_ignored(self):
        with self.assertRaises(NoDocumentsSelectedError):
            run_case_analysis(self.db, self.case_id, [str(uuid.uuid4())])

    def test_version_records_only_documents_that_were_analysed(self):
        foreign = str(uuid.uuid4())
        run = run_case_analysis(
            self.db, self.case_id, [self.ed_id, foreign, self.ed_id], now=self.now
        )
        self.assertEqual([d.id for d in run.corpus.documents], [self.ed_id])
        self.assertEqual(run.version.document_ids, [self.ed_id])

    def _add_documents(self, count):
        docs = [
            Document(
                case_id=self.case_id,
                name=f"Bundle section {i}.pdf",
                type="medical_record",
                created_at=datetime(2024, 2, 1 + i, tzinfo=timezone.utc),
            )
            for i in range(count)
        ]
        self.db.add_all(docs)
        self.db.commit()
        return [str(doc.id) for doc in docs]

    def test_selection_over_the_corpus_limit_is_rejected(self):
        limit = settings.CORPUS_DOCUMENT_LIMIT
        doc_ids = self._add_documents(limit + 5)
        with self.assertRaises(TooManyDocumentsSelectedError) as ctx:
            run_case_analysis(self.db, self.case_id, doc_ids, now=self.now)
        self.assertEqual(ctx.exception.selected, limit + 5)
        self.assertIsNone(get_latest_version(self.db, self.case_id))

    def test_selection_at_the_corpus_limit_is_recorded_in_full(self):
        limit = settings.CORPUS_DOCUMENT_LIMIT
        doc_ids = [self.ed_id] + self._add_documents(limit - 1)
        run = run_case_analysis(self.db, self.case_id, doc_ids, now=self.now)
        self.assertEqual(len(run.corpus.documents), limit)
        self.assertEqual(run.version.document_ids, sorted(doc_ids))


if __name__ == "__main__":
    unittest.main()
