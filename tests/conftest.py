"""Pytest hooks to generate fixtures (EEST-style)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from messenger_spec.config import FIXTURE_FORMAT_VERSION
from messenger_spec.state_transition import TransitionResult, apply_call
from messenger_spec.types import Call, LedgerState
from tools.fixtures_io import call_to_json, event_to_json, state_to_json

_STATE_CASES: dict[str, list[dict[str, Any]]] = {}
_VECTOR_CASES: dict[str, list[dict[str, Any]]] = {}

StateTestGroup = Callable[..., tuple[LedgerState, TransitionResult]]


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--output",
        action="store",
        default=None,
        help="Output directory for generated fixtures",
    )


@pytest.fixture
def state_test_group() -> StateTestGroup:
    """Collect a state transition case under a specific fixture path.

    Returns ``(post_state, result)`` so the test can assert on it. Pass
    ``runnable=False`` for inputs that do not survive JSON (e.g. an int
    text payload); those are recorded but skipped by consumers.
    """

    def _state_test_group(
        rel_path: str,
        name: str,
        pre_state: LedgerState,
        call: Call,
        runnable: bool = True,
    ) -> tuple[LedgerState, TransitionResult]:
        pre_json = state_to_json(pre_state)
        post_state, result = apply_call(pre_state, call)
        _STATE_CASES.setdefault(rel_path, []).append(
            {
                "name": name,
                "runnable": runnable,
                "pre_state": pre_json,
                "call": call_to_json(call),
                "expected": {
                    "ok": result.ok,
                    "error": result.error.code.name if result.error else None,
                    "events": [event_to_json(e) for e in result.events],
                    "post_state": state_to_json(post_state),
                },
            }
        )
        return post_state, result

    return _state_test_group


@pytest.fixture
def vector_test_group() -> Callable[[str, dict[str, Any]], None]:
    """Collect pre-built test_vectors under a specific fixture path."""

    def _vector_test_group(rel_path: str, vector: dict[str, Any]) -> None:
        _VECTOR_CASES.setdefault(rel_path, []).append(vector)

    return _vector_test_group


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    output_dir = session.config.getoption("--output")
    if not output_dir:
        return

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    for rel_path, cases in _STATE_CASES.items():
        if not cases:
            continue
        target = out / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            json.dumps({"format_version": FIXTURE_FORMAT_VERSION, "cases": cases}, indent=2)
        )

    for rel_path, vectors in _VECTOR_CASES.items():
        if not vectors:
            continue
        target = out / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps({"test_vectors": vectors}, indent=2))
