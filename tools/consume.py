"""Consume fixtures and validate against the Python specs."""

from __future__ import annotations

import json
from pathlib import Path
import sys
from typing import Any

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT))

from messenger_spec.state_digest import compute_state_digest  # noqa: E402
from messenger_spec.state_transition import apply_call  # noqa: E402
from tools.fixtures_io import (  # noqa: E402
    call_from_json,
    event_to_json,
    state_from_json,
    state_to_json,
)


def check_case(case: dict[str, Any]) -> str | None:
    """Re-apply one fixture case; returns a failure tag or None."""
    pre_state = state_from_json(case["pre_state"])
    call = call_from_json(case["call"])
    post_state, result = apply_call(pre_state, call)

    expected = case["expected"]
    if result.ok != expected["ok"]:
        return "ok_mismatch"

    actual_err = result.error.code.name if result.error else None
    if actual_err != expected["error"]:
        return "error_mismatch"

    if [event_to_json(e) for e in result.events] != expected.get("events", []):
        return "events_mismatch"

    actual_digest = compute_state_digest(state_to_json(post_state))
    if actual_digest != compute_state_digest(expected["post_state"]):
        return "post_state_mismatch"

    return None


def check_state_cases(path: Path) -> tuple[int, list[str]]:
    failures: list[str] = []
    checked = 0
    data = json.loads(path.read_text())

    for case in data.get("cases", []):
        if not case.get("runnable", True):
            continue
        checked += 1
        failure = check_case(case)
        if failure:
            failures.append(f"{path.name}:{case['name']}: {failure}")

    return checked, failures


def main() -> None:
    fixtures = ROOT / "fixtures"

    failures: list[str] = []
    checked = 0
    for path in sorted(fixtures.glob("calls/*.json")):
        n, f = check_state_cases(path)
        checked += n
        failures.extend(f)

    if failures:
        for f in failures:
            print("FAIL", f)
        raise SystemExit(1)

    print(f"All {checked} fixtures passed")


if __name__ == "__main__":
    main()
