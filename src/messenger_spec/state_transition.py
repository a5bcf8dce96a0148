"""State transition entrypoints for the Messenger Python spec."""

from __future__ import annotations

from copy import deepcopy
from typing import Optional

from .errors import ErrorCode, SpecError
from .types import Call, CallType, LedgerState, Notification
from .tx import messenger as tx_messenger

_MESSENGER_TYPES = frozenset({
    CallType.POST,
    CallType.ACCEPT,
    CallType.DENY,
})


class TransitionResult:
    """Thin wrapper for verify/apply results."""

    def __init__(
        self,
        ok: bool,
        error: Optional[SpecError] = None,
        events: Optional[list[Notification]] = None,
    ):
        self.ok = ok
        self.error = error
        self.events = events if events is not None else []

    @classmethod
    def success(cls, events: Optional[list[Notification]] = None) -> "TransitionResult":
        return cls(True, None, events)

    @classmethod
    def failure(cls, error: SpecError) -> "TransitionResult":
        return cls(False, error)

    def __repr__(self) -> str:
        if self.ok:
            return f"TransitionResult(ok=True, events={self.events!r})"
        return f"TransitionResult(ok=False, error={self.error})"


def _dispatch_verify(state: LedgerState, call: Call) -> None:
    if call.call_type in _MESSENGER_TYPES:
        return tx_messenger.verify(state, call)

    raise SpecError(ErrorCode.NOT_IMPLEMENTED, f"verify not implemented for {call.call_type}")


def _dispatch_apply(state: LedgerState, call: Call) -> list[Notification]:
    if call.call_type in _MESSENGER_TYPES:
        return tx_messenger.apply(state, call)

    raise SpecError(ErrorCode.NOT_IMPLEMENTED, f"apply not implemented for {call.call_type}")


def verify_call(state: LedgerState, call: Call) -> TransitionResult:
    """Validate a call against `state` without mutating it."""
    try:
        _dispatch_verify(state, call)
        return TransitionResult.success()
    except SpecError as exc:
        return TransitionResult.failure(exc)


def apply_call(state: LedgerState, call: Call) -> tuple[LedgerState, TransitionResult]:
    """Apply a call to state after verification.

    Failed-call semantics:
    - Verification failure: state unchanged, no notifications
    - Execution failure (value transfer): state unchanged, no notifications

    On success the returned state is a new object; `state` is never mutated.
    """
    try:
        _dispatch_verify(state, call)
    except SpecError as exc:
        return state, TransitionResult.failure(exc)

    working = deepcopy(state)
    try:
        events = _dispatch_apply(working, call)
    except SpecError as exc:
        return state, TransitionResult.failure(exc)

    return working, TransitionResult.success(events)


def apply_calls(state: LedgerState, calls: list[Call]) -> tuple[LedgerState, TransitionResult]:
    """Apply a batch of calls in order (batch-atomic semantics).

    If any call fails, the whole batch is rejected and the state is unchanged.
    Notifications of a committed batch are returned in call order.
    """
    working = state
    events: list[Notification] = []
    for call in calls:
        working, result = apply_call(working, call)
        if not result.ok:
            return state, result
        events.extend(result.events)
    return working, TransitionResult.success(events)
