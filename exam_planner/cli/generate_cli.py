"""Command-line client: submit a survey, poll until done, print the plan."""

from __future__ import annotations

import argparse
import json
import sys
import time

import requests


def poll(base_url: str, request_id: str, *, interval: float, timeout: int, deadline: float) -> dict:
    """Poll the status endpoint until a terminal status or ``deadline``."""
    status_url = f"{base_url}/study-plans/generate/{request_id}"
    while True:
        resp = requests.get(status_url, timeout=timeout)
        resp.raise_for_status()
        data = resp.json()
        print(f"\r{data['status']:<10} {data['progress']:>3}%", end="", flush=True)
        if data["status"] in {"success", "error"}:
            print()
            return data
        if time.monotonic() >= deadline:
            print()
            raise TimeoutError(f"Generation {request_id} still running after deadline")
        time.sleep(interval)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Generate a study plan from a survey JSON file")
    parser.add_argument("survey", help="Path to the survey answers JSON file ('-' for stdin)")
    parser.add_argument(
        "--url",
        default="http://127.0.0.1:8000",
        help="Service base URL",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=30,
        help="Per-request timeout in seconds",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=2.0,
        help="Seconds between status polls",
    )
    parser.add_argument(
        "--max-wait",
        type=float,
        default=600.0,
        help="Give up polling after this many seconds",
    )
    parser.add_argument("--output", help="Write the plan JSON here instead of stdout")
    args = parser.parse_args(argv)

    if args.survey == "-":
        survey = json.load(sys.stdin)
    else:
        with open(args.survey, encoding="utf-8") as fh:
            survey = json.load(fh)

    base_url = args.url.rstrip("/")
    resp = requests.post(f"{base_url}/study-plans/generate", json={"survey": survey}, timeout=args.timeout)
    if resp.status_code != 202:
        print(f"Error {resp.status_code}: {resp.text}", file=sys.stderr)
        return 1
    accepted = resp.json()
    request_id = accepted["requestId"]
    print(f"Request {request_id} accepted (estimated {accepted['estimatedTimeMs'] // 1000}s)")

    try:
        result = poll(
            base_url,
            request_id,
            interval=args.interval,
            timeout=args.timeout,
            deadline=time.monotonic() + args.max_wait,
        )
    except TimeoutError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    if result["status"] == "error":
        print(f"Generation failed: {result.get('error', 'unknown error')}", file=sys.stderr)
        return 1

    plan_resp = requests.get(f"{base_url}/study-plans/{result['planId']}", timeout=args.timeout)
    plan_resp.raise_for_status()
    rendered = json.dumps(plan_resp.json(), ensure_ascii=False, indent=2)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(rendered + "\n")
        print(f"Plan {result['planId']} written to {args.output}")
    else:
        print(rendered)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
