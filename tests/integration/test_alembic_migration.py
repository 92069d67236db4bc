"""Baseline migration upgrades and downgrades cleanly on SQLite."""

import os
import sys
import tempfile
import unittest


# Provide minimal env for Settings validation during import.
os.environ.setdefault("DATABASE_URL", "sqlite:///test.db")

# Ensure `casebrain` is importable when running from repo root.
TEST_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if TEST_ROOT not in sys.path:
    sys.path.insert(0, TEST_ROOT)


from alembic import command  # noqa: E402
from alembic.config import Config  # noqa: E402
from sqlalchemy import create_engine, inspect  # noqa: E402

EXPECTED_TABLES = {
    "cases",
    "documents",
    "case_bundles",
    "bundle_chunks",
    "timeline_events",
    "case_notes",
    "letters",
    "case_analysis_versions",
}


class TestBaselineMigration(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.url = f"sqlite:///{os.path.join(self.tmpdir.name, 'migrate.db')}"
        self.config = Config(os.path.join(TEST_ROOT, "alembic.ini"))
        self.config.set_main_option(
            "script_location", os.path.join(TEST_ROOT, "casebrain", "alembic")
        )
        self.config.set_main_option("sqlalchemy.url", self.url)
        self.config.attributes["configure_logger"] = False

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_upgrade_and_downgrade(self):
        command.upgrade(self.config, "head")

        engine = create_engine(self.url)
        try:
            inspector = inspect(engine)
            self.assertTrue(EXPECTED_TABLES.issubset(set(inspector.get_table_names())))
            uniques = inspector.get_unique_constraints("case_analysis_versions")
            self.assertIn(
                ["case_id", "version_number"], [u["column_names"] for u in uniques]
            )
        finally:
            engine.dispose()

        command.downgrade(self.config, "base")

        engine = create_engine(self.url)
        try:
            remaining = set(inspect(engine).get_table_names())
            self.assertFalse(EXPECTED_TABLES & remaining)
        finally:
            engine.dispose()


if __name__ == "__main__":
    unittest.main()
