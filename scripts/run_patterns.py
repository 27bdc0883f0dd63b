from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from apps.worker.pattern_job import run_pattern_job
from packages.shared.config import DetectionConfig
from packages.shared.models import ValidationMode, ensure_utc

logger = logging.getLogger("chartcheck.run_patterns")

EXIT_BAD_INPUT = 2


def _load_json(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run clinical pattern detection and citation validation on a snapshot.")
    parser.add_argument("--snapshot", type=Path, required=True, help="Snapshot JSON (model or clinical-summary shape).")
    parser.add_argument("--insights", type=Path, default=None, help="JSON list of generated insight strings.")
    parser.add_argument("--mode", choices=[m.value for m in ValidationMode], default=ValidationMode.MARK.value)
    parser.add_argument("--now", default=None, help="ISO timestamp anchoring trailing windows (default: now).")
    parser.add_argument("--patient-id", default=None)
    parser.add_argument("--persist", action="store_true", help="Store alerts in DATABASE_URL.")
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL when persisting.")
    parser.add_argument("--out", type=Path, default=None, help="Write the JSON report here instead of stdout.")
    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=os.getenv("CHARTCHECK_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    args = _build_parser().parse_args(argv)

    if args.persist and not args.patient_id:
        logger.error("--persist requires --patient-id")
        return EXIT_BAD_INPUT

    try:
        snapshot = _load_json(args.snapshot)
        insights = _load_json(args.insights) if args.insights else None
        now: datetime | None = ensure_utc(args.now) if args.now else None
        config = DetectionConfig.from_env()
    except (OSError, ValueError) as exc:
        logger.error("Could not read input: %s", exc)
        return EXIT_BAD_INPUT
    if insights is not None and not (isinstance(insights, list) and all(isinstance(i, str) for i in insights)):
        logger.error("--insights must be a JSON list of strings")
        return EXIT_BAD_INPUT
    if not isinstance(snapshot, dict):
        logger.error("--snapshot must be a JSON object")
        return EXIT_BAD_INPUT

    if args.persist:
        from packages.db.database import configure_database, init_db

        if args.database_url:
            configure_database(args.database_url)
        init_db()

    try:
        result = run_pattern_job(
            snapshot,
            insights=insights,
            mode=args.mode,
            now=now,
            config=config,
            patient_id=args.patient_id,
            persist=args.persist,
        )
    except ValidationError as exc:
        logger.error("Snapshot failed validation: %s", exc)
        return EXIT_BAD_INPUT

    payload = result.model_dump_json(indent=2)
    if args.out:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_text(payload, encoding="utf-8")
        logger.info("Wrote report to %s", args.out)
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
