"""Ledger-wide properties checked over long call sequences."""

from __future__ import annotations

import random

import pytest

from messenger_spec.errors import ErrorCode
from messenger_spec.state_transition import apply_call, apply_calls, verify_call
from messenger_spec.test_accounts import ALICE, BOB, CAROL, DAVE
from messenger_spec.types import (
    AccountState,
    Call,
    CallType,
    LedgerState,
    PostPayload,
    ResolvePayload,
)
from messenger_spec.views import list_received, list_sent, pending_total, total_value

_PARTIES = [ALICE, BOB, CAROL, DAVE]


def _funded_state() -> LedgerState:
    state = LedgerState()
    for i, addr in enumerate(_PARTIES):
        state.accounts[addr] = AccountState(address=addr, balance=1_000 * (i + 1))
    return state


def _random_call(rng: random.Random, state: LedgerState) -> Call:
    caller = rng.choice(_PARTIES)
    roll = rng.random()
    if roll < 0.5 or not state.messages:
        return Call(
            CallType.POST,
            caller,
            PostPayload(text=f"m{len(state.messages)}", receiver=rng.choice(_PARTIES)),
            rng.randrange(0, 400),
        )
    index = rng.randrange(0, len(state.messages) + 1)  # sometimes out of range
    # Bias resolutions towards the actual receiver so most of them commit.
    if index < len(state.messages) and rng.random() < 0.7:
        caller = state.messages[index].receiver
    call_type = CallType.ACCEPT if roll < 0.75 else CallType.DENY
    return Call(call_type, caller, ResolvePayload(index=index))


@pytest.mark.parametrize("seed", [0, 1, 2, 3, 4])
def test_conservation_and_exactly_once(seed: int) -> None:
    rng = random.Random(seed)
    state = _funded_state()
    initial_value = total_value(state)
    resolved: set[int] = set()
    posted = 0

    for _ in range(300):
        call = _random_call(rng, state)
        before = state
        state, result = apply_call(state, call)

        if not result.ok:
            assert state is before
            assert result.events == []
        elif call.call_type == CallType.POST:
            assert result.events[0].index == posted
            posted += 1
        else:
            index = call.payload.index
            assert index not in resolved
            resolved.add(index)

        if call.call_type != CallType.POST and result.ok is False:
            index = call.payload.index
            if index in resolved and call.caller == state.messages[index].receiver:
                assert result.error.code == ErrorCode.ALREADY_RESOLVED

        assert state.escrow_balance == pending_total(state)
        assert total_value(state) == initial_value

    assert len(state.messages) == posted
    for index in resolved:
        assert state.messages[index].is_pending is False


@pytest.mark.parametrize("seed", [10, 11])
def test_index_stability(seed: int) -> None:
    rng = random.Random(seed)
    state = _funded_state()
    for _ in range(100):
        state, result = apply_call(
            state,
            Call(
                CallType.POST,
                rng.choice(_PARTIES),
                PostPayload(text="x", receiver=rng.choice(_PARTIES)),
                rng.randrange(0, 5),
            ),
        )
        assert result.ok

    for addr in _PARTIES:
        sent = state.by_sender.get(addr, [])
        received = state.by_receiver.get(addr, [])
        assert sent == sorted(sent)
        assert received == sorted(received)
        assert [m.sender for m in list_sent(state, addr)] == [addr] * len(sent)
        assert [m.receiver for m in list_received(state, addr)] == [addr] * len(received)

    # Every message sits in exactly one sender bucket and one receiver bucket.
    all_sent = sorted(i for bucket in state.by_sender.values() for i in bucket)
    all_received = sorted(i for bucket in state.by_receiver.values() for i in bucket)
    assert all_sent == list(range(len(state.messages)))
    assert all_received == list(range(len(state.messages)))


@pytest.mark.parametrize("call_type", [CallType.ACCEPT, CallType.DENY])
@pytest.mark.parametrize("caller", [ALICE, CAROL, DAVE])
def test_only_receiver_can_resolve(call_type: CallType, caller: bytes) -> None:
    state = _funded_state()
    state, _ = apply_call(state, Call(CallType.POST, ALICE, PostPayload("t", BOB), 10))

    post, result = apply_call(state, Call(call_type, caller, ResolvePayload(index=0)))

    assert result.error.code == ErrorCode.UNAUTHORIZED
    assert post is state
    assert post.messages[0].is_pending


def test_verify_call_does_not_mutate() -> None:
    state = _funded_state()
    call = Call(CallType.POST, ALICE, PostPayload("t", BOB), 10)

    result = verify_call(state, call)

    assert result.ok
    assert state.messages == []
    assert state.accounts[ALICE].balance == 1_000


def test_verify_call_reports_error() -> None:
    result = verify_call(LedgerState(), Call(CallType.ACCEPT, BOB, ResolvePayload(index=0)))

    assert not result.ok
    assert result.error.code == ErrorCode.INVALID_INDEX


def test_unknown_call_type_rejected() -> None:
    state = _funded_state()
    call = Call("withdraw", ALICE, ResolvePayload(index=0))  # type: ignore[arg-type]

    post, result = apply_call(state, call)

    assert result.error.code == ErrorCode.NOT_IMPLEMENTED
    assert post is state


def test_batch_commits_all_events_in_order() -> None:
    state = _funded_state()
    calls = [
        Call(CallType.POST, ALICE, PostPayload("a", BOB), 10),
        Call(CallType.POST, CAROL, PostPayload("b", BOB), 20),
        Call(CallType.ACCEPT, BOB, ResolvePayload(index=1)),
        Call(CallType.DENY, BOB, ResolvePayload(index=0)),
    ]

    post, result = apply_calls(state, calls)

    assert result.ok
    assert [type(e).__name__ for e in result.events] == [
        "NewMessage",
        "NewMessage",
        "MessageConfirmed",
        "MessageConfirmed",
    ]
    assert [e.index for e in result.events] == [0, 1, 1, 0]
    assert post.accounts[BOB].balance == 2_000 + 20
    assert post.accounts[ALICE].balance == 1_000
    assert post.escrow_balance == 0


def test_batch_is_atomic() -> None:
    state = _funded_state()
    calls = [
        Call(CallType.POST, ALICE, PostPayload("a", BOB), 10),
        Call(CallType.ACCEPT, BOB, ResolvePayload(index=0)),
        Call(CallType.ACCEPT, BOB, ResolvePayload(index=0)),
    ]

    post, result = apply_calls(state, calls)

    assert result.error.code == ErrorCode.ALREADY_RESOLVED
    assert post is state
    assert state.messages == []
    assert state.accounts[BOB].balance == 2_000
