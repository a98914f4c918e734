"""Re-run JSON extraction and plan validation on a stored response artifact.

Usage:
    python scripts/replay_artifact.py response_20250101T120000000000Z_000002.txt
    python scripts/replay_artifact.py --latest
"""

import argparse
import json
import sys

from exam_planner.debug.artifacts import get_artifact_store
from exam_planner.errors import ArtifactNameError, ArtifactNotFoundError, ExtractionError
from exam_planner.utils.llm_parse import extract
from exam_planner.validation.plan_validator import collect_violations


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replay extraction/validation on a response artifact.")
    parser.add_argument("filename", nargs="?", help="Artifact filename under DEBUG_DIR.")
    parser.add_argument(
        "--latest",
        action="store_true",
        help="Use the newest response artifact.",
    )
    return parser.parse_args()


def _pick(filename: str | None, latest: bool) -> str:
    if filename:
        return filename
    if latest:
        for artifact in get_artifact_store().list():
            if artifact.kind == "response":
                return artifact.filename
    raise SystemExit("No artifact given and no response artifact found.")


def main() -> int:
    args = _parse_args()
    filename = _pick(args.filename, args.latest)
    try:
        raw = get_artifact_store().read(filename)
    except (ArtifactNameError, ArtifactNotFoundError) as exc:
        print(f"{filename}: {exc}", file=sys.stderr)
        return 2

    try:
        result = extract(raw)
    except ExtractionError as exc:
        print(f"extraction failed ({exc.raw_length} chars)")
        for strategy, error in exc.failures:
            print(f"  {strategy}: {error}")
        return 1
    print(f"extracted with '{result.strategy}' strategy")

    plan, violations = collect_violations(result.payload)
    if plan is None:
        print(f"{len(violations)} violation(s):")
        for violation in violations:
            print(f"  {violation}")
        return 1
    print(json.dumps({"phases": len(plan.phases), "dailyPlans": len(plan.daily_plans)}))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
