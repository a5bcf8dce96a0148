#!/usr/bin/env python3
"""Convert spec fixtures into client-consumable vectors.

State-transition fixtures become YAML suites for the conformance harness,
each case carrying pre/post state digests and a numeric error code. Model
vectors (``test_vectors`` files) are mirrored as YAML unchanged.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT))

from messenger_spec.errors import ErrorCode  # noqa: E402
from messenger_spec.state_digest import compute_state_digest  # noqa: E402
from tools.yaml_dump import write_yaml  # noqa: E402

MAPPING = {
    "calls": "execution/calls",
    "models": "state/models",
}

# Generated suites live under these directories; accounts.json is hand-kept.
GENERATED_DIRS = ("execution", "state", "unmapped")


def map_dest(rel: Path) -> Path:
    if not rel.parts:
        return Path("unmapped")
    mapped = MAPPING.get(rel.parts[0])
    if not mapped:
        return Path("unmapped") / rel
    return Path(mapped) / Path(*rel.parts[1:])


def map_error_code(name: str | None) -> int:
    if not name:
        return int(ErrorCode.SUCCESS)
    try:
        return int(ErrorCode[name])
    except KeyError:
        return int(ErrorCode.UNKNOWN)


def case_to_vector(case: dict[str, Any]) -> dict[str, Any]:
    expected = case.get("expected", {})
    pre_state = case.get("pre_state")
    post_state = expected.get("post_state")

    vec: dict[str, Any] = {
        "name": case.get("name", ""),
        "description": case.get("description", ""),
    }
    if case.get("runnable") is False:
        vec["runnable"] = False
    vec.update(
        {
            "pre_state": pre_state,
            "pre_state_digest": compute_state_digest(pre_state) if pre_state else "",
            "call": case.get("call"),
            "expected": {
                "success": bool(expected.get("ok", False)),
                "error": expected.get("error"),
                "error_code": map_error_code(expected.get("error")),
                "events": expected.get("events", []),
                "state_digest": compute_state_digest(post_state) if post_state else "",
                "post_state": post_state,
            },
        }
    )
    return vec


def main() -> None:
    parser = argparse.ArgumentParser(description="Convert fixtures to vectors")
    parser.add_argument("--fixtures", default=str(ROOT / "fixtures"))
    parser.add_argument("--vectors", default=str(ROOT / "vectors"))
    args = parser.parse_args()

    fixtures = Path(args.fixtures).resolve()
    vectors = Path(args.vectors).resolve()

    if not fixtures.exists():
        raise SystemExit(f"fixtures dir not found: {fixtures}")

    vectors.mkdir(parents=True, exist_ok=True)
    old_files = {
        p.resolve()
        for d in GENERATED_DIRS
        for p in (vectors / d).rglob("*")
        if p.is_file()
    }
    written: set[Path] = set()

    for path in sorted(fixtures.rglob("*.json")):
        rel = path.relative_to(fixtures)
        dest = (vectors / map_dest(rel)).with_suffix(".yaml")
        dest.parent.mkdir(parents=True, exist_ok=True)

        data = json.loads(path.read_text())
        if isinstance(data, dict) and isinstance(data.get("cases"), list):
            out = {"test_vectors": [case_to_vector(c) for c in data["cases"]]}
        elif isinstance(data, dict) and isinstance(data.get("test_vectors"), list):
            out = data
        else:
            print(f"skipping {rel}: unrecognized fixture layout")
            continue

        write_yaml(dest, out)
        written.add(dest.resolve())

    removed = 0
    for old in sorted(old_files - written):
        old.unlink()
        removed += 1
    for d in GENERATED_DIRS:
        for sub in sorted((vectors / d).rglob("*"), reverse=True):
            if sub.is_dir() and not any(sub.iterdir()):
                sub.rmdir()

    print(f"Written {len(written)} vector files into {vectors}")
    if removed:
        print(f"Removed {removed} stale files")


if __name__ == "__main__":
    main()
