#!/usr/bin/env python3
"""
Run one recruitment triage pass from the shell (no Celery, no API).

Usage (from backend/; use the project venv):
  ./.venv/bin/python scripts/run_pipeline.py

Common examples:
  # Indeed applications instead of direct ones
  ./.venv/bin/python scripts/run_pipeline.py --source indeed

  # Dry-run (classify and sort, log the replies/labels, send nothing)
  ./.venv/bin/python scripts/run_pipeline.py --dry-run
"""

import argparse
import json
import os
import sys

# Ensure backend package is importable when run as script from backend or project root
_script_dir = os.path.dirname(os.path.abspath(__file__))
_backend = os.path.dirname(_script_dir)
if _backend not in sys.path:
    sys.path.insert(0, _backend)

from recruit_triage.config import configure_logging, load_settings
from recruit_triage.exceptions import RecruitTriageError
from recruit_triage.langgraph_pipeline import run_pipeline
from recruit_triage.schemas import PipelineTrigger
from recruit_triage.services.sources import SOURCES


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Run the recruitment triage pipeline once.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--source", choices=sorted(SOURCES), default="direct", help="Application source (default: direct)")
    parser.add_argument("--dry-run", action="store_true", help="Do not send replies or change labels")
    parser.add_argument("--workers", type=int, default=None, help="Extraction batch width (default: from settings)")
    args = parser.parse_args()

    overrides = {}
    if args.dry_run:
        overrides["dry_run"] = True
    if args.workers:
        overrides["extraction_workers"] = args.workers

    try:
        settings = load_settings(**overrides)
    except RecruitTriageError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    configure_logging(settings)

    trigger = PipelineTrigger(source=args.source, triggered_by="manual")
    try:
        result = run_pipeline(settings, trigger)
    except RecruitTriageError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    print(json.dumps(result.model_dump(mode="json"), indent=2))
    return 0 if not result.errors else 1


if __name__ == "__main__":
    raise SystemExit(main())
