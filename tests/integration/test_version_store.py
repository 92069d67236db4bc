"""Version store against a real (in-memory SQLite) database."""

import os
import sys
import unittest
import uuid
from unittest import mock


# Provide minimal env for Settings validation during import.
os.environ.setdefault("DATABASE_URL", "sqlite:///test.db")

# Ensure `casebrain` is importable when running from repo root.
TEST_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if TEST_ROOT not in sys.path:
    sys.path.insert(0, TEST_ROOT)


from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from casebrain import analysis_versions  # noqa: E402
from casebrain.analysis_versions import (  # noqa: E402
    VersionContent,
    create_version,
    get_version,
    list_versions,
)
from casebrain.db import Base  # noqa: E402
from casebrain.errors import (  # noqa: E402
    CaseNotFoundError,
    ImmutableVersionError,
    VersionConflictError,
)
from casebrain.models import Case  # noqa: E402


def _content(momentum="WEAK", **kwargs) -> VersionContent:
    return VersionContent(momentum=momentum, summary="test", **kwargs)


class TestVersionStore(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine, autoflush=False)
        self.db = self.Session()
        case = Case(title="Smith v Northshire NHS Trust", practice_area="clinical_negligence")
        self.db.add(case)
        self.db.commit()
        self.case_id = case.id

    def tearDown(self):
        self.db.close()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()

    def test_version_numbers_are_sequential(self):
        numbers = [
            create_version(self.db, self.case_id, ["d1"], _content())[0].version_number
            for _ in range(3)
        ]
        self.assertEqual(numbers, [1, 2, 3])
        self.assertEqual(
            [v.version_number for v in list_versions(self.db, self.case_id)], [3, 2, 1]
        )
        self.assertEqual(self.db.get(Case, self.case_id).latest_analysis_version, 3)

    def test_first_version_has_first_analysis_delta(self):
        row, delta = create_version(self.db, self.case_id, ["d1"], _content())
        self.assertTrue(delta.is_first_analysis)
        self.assertEqual(row.analysis_delta["kind"], "FIRST_ANALYSIS")

    def test_delta_compares_against_previous_version(self):
        create_version(
            self.db,
            self.case_id,
            ["d1"],
            _content(
                "STRONG_EXPERT_PENDING",
                missing_evidence=[{"area": "expert", "label": "Expert report"}],
            ),
        )
        row, delta = create_version(self.db, self.case_id, ["d1", "d2"], _content("STRONG"))
        self.assertTrue(delta.momentum_change.expert_confirmed)
        self.assertEqual(row.analysis_delta["momentum_change"]["to"], "STRONG")
        self.assertEqual(len(delta.resolved_missing_evidence), 1)

    def test_document_ids_are_stored_sorted_and_unique(self):
        row, _ = create_version(self.db, self.case_id, ["b", "a", "b"], _content())
        self.assertEqual(row.document_ids, ["a", "b"])

    def test_unknown_case(self):
        with self.assertRaises(CaseNotFoundError):
            create_version(self.db, uuid.uuid4(), ["d1"], _content())

    def test_lost_race_retries_with_next_number(self):
        create_version(self.db, self.case_id, ["d1"], _content())
        real = analysis_versions.get_latest_version
        calls = {"n": 0}

        def stale_then_real(db, case_id):
            calls["n"] += 1
            # First read misses the existing row, as a concurrent writer would
            return None if calls["n"] == 1 else real(db, case_id)

        with mock.patch.object(
            analysis_versions, "get_latest_version", side_effect=stale_then_real
        ):
            with self.assertLogs("casebrain.analysis_versions", level="INFO") as logs:
                row, delta = create_version(self.db, self.case_id, ["d1"], _content())

        self.assertEqual(row.version_number, 2)
        self.assertEqual(delta.kind.value, "UNCHANGED")
        self.assertTrue(any("already taken" in line for line in logs.output))
        self.assertEqual(len(list_versions(self.db, self.case_id)), 2)

    def test_persistent_conflict_raises(self):
        create_version(self.db, self.case_id, ["d1"], _content())
        with mock.patch.object(analysis_versions, "get_latest_version", return_value=None):
            with self.assertRaises(VersionConflictError) as ctx:
                create_version(self.db, self.case_id, ["d1"], _content())
        self.assertEqual(ctx.exception.attempts, 5)
        self.assertEqual(len(list_versions(self.db, self.case_id)), 1)

    def test_versions_are_immutable(self):
        create_version(self.db, self.case_id, ["d1"], _content())
        row = get_version(self.db, self.case_id, 1)
        row.summary = "rewritten"
        with self.assertRaises(ImmutableVersionError):
            self.db.flush()
        self.db.rollback()
        self.assertEqual(get_version(self.db, self.case_id, 1).summary, "test")

    def test_get_missing_version(self):
        self.assertIsNone(get_version(self.db, self.case_id, 7))


class TestCaseLocks(unittest.TestCase):
    def test_same_case_always_gets_the_same_lock(self):
        case_id = uuid.uuid4()
        self.assertIs(
            analysis_versions._lock_for(case_id),
            analysis_versions._lock_for(uuid.UUID(str(case_id))),
        )

    def test_lock_pool_does_not_grow_with_cases(self):
        before = len(analysis_versions._case_locks)
        locks = {id(analysis_versions._lock_for(uuid.uuid4())) for _ in range(500)}
        self.assertEqual(len(analysis_versions._case_locks), before)
        self.assertLessEqual(len(locks), analysis_versions.LOCK_STRIPES)


if __name__ == "__main__":
    unittest.main()
