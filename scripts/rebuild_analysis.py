#!/usr/bin/env python3
"""
Rebuild the analysis for a case from the command line.

Runs the same pipeline as POST /api/cases/{case_id}/analysis/rebuild and
prints the new version (and its delta against the previous one) as JSON.

Usage:
    python scripts/rebuild_analysis.py <case_id>             # all case documents
    python scripts/rebuild_analysis.py <case_id> --document <id> --document <id>
"""

import json
import sys
import uuid
from pathlib import Path

# Allow running from a checkout without installing the package
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import select

from casebrain.analysis_pipeline import run_case_analysis
from casebrain.config import settings
from casebrain.db import SessionLocal
from casebrain.errors import CaseBrainError
from casebrain.logging_utils import configure_logging
from casebrain.models import Document


def rebuild(case_id: str, document_ids: list[str], created_by: str | None) -> dict:
    session = SessionLocal()
    try:
        if not document_ids:
            document_ids = [
                str(doc_id)
                for doc_id in session.scalars(
                    select(Document.id).where(Document.case_id == uuid.UUID(case_id))
                )
            ]
        run = run_case_analysis(session, case_id, document_ids, created_by=created_by)
        version = run.version
        return {
            "case_id": str(version.case_id),
            "version_number": version.version_number,
            "momentum": version.momentum,
            "summary": version.summary,
            "document_ids": version.document_ids,
            "locked_options": list(run.momentum.locked_options),
            "warnings": list(run.evidence_strength.warnings),
            "analysis_delta": version.analysis_delta,
        }
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Rebuild case analysis")
    parser.add_argument("case_id", help="Case UUID")
    parser.add_argument(
        "--document",
        dest="document_ids",
        action="append",
        default=[],
        help="Document UUID to include (repeatable, default: every case document)",
    )
    parser.add_argument("--created-by", default="cli", help="Recorded on the version")
    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL)
    try:
        result = rebuild(args.case_id, args.document_ids, args.created_by)
    except CaseBrainError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    main()
