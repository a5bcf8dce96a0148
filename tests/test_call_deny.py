"""Deny call fixtures."""

from __future__ import annotations

from messenger_spec.config import ALREADY_CONFIRMED_MESSAGE, U256_MAX
from messenger_spec.errors import ErrorCode
from messenger_spec.test_accounts import ALICE, BOB, CAROL
from messenger_spec.types import (
    AccountState,
    Call,
    CallType,
    LedgerState,
    Message,
    MessageConfirmed,
    Outcome,
    ResolvePayload,
)

_FIXTURE = "calls/deny.json"


def _pending_state(deposit: int = 10) -> LedgerState:
    state = LedgerState()
    state.accounts[ALICE] = AccountState(address=ALICE, balance=100 - deposit)
    state.accounts[BOB] = AccountState(address=BOB, balance=0)
    state.messages.append(
        Message(sender=ALICE, receiver=BOB, text="text", deposit_in_wei=deposit)
    )
    state.escrow_balance = deposit
    state.rebuild_indices()
    return state


def _mk_deny(caller: bytes, index: int) -> Call:
    return Call(call_type=CallType.DENY, caller=caller, payload=ResolvePayload(index=index))


def test_deny_success(state_test_group) -> None:
    state = _pending_state()
    post, result = state_test_group(_FIXTURE, "deny_success", state, _mk_deny(BOB, 0))

    assert result.ok
    assert result.events == [MessageConfirmed(index=0, outcome=Outcome.DENIED)]
    assert post.messages[0].is_pending is False


def test_deny_refunds_sender(state_test_group) -> None:
    state = _pending_state(deposit=10)
    post, result = state_test_group(_FIXTURE, "deny_refunds_sender", state, _mk_deny(BOB, 0))

    assert result.ok
    assert post.accounts[ALICE].balance == 100
    assert post.accounts[BOB].balance == 0
    assert post.escrow_balance == 0


def test_deny_duplicate(state_test_group) -> None:
    state = _pending_state()
    state, first = state_test_group(_FIXTURE, "deny_first", state, _mk_deny(BOB, 0))
    assert first.ok

    post, result = state_test_group(_FIXTURE, "deny_duplicate", state, _mk_deny(BOB, 0))

    assert result.error.code == ErrorCode.ALREADY_RESOLVED
    assert str(result.error).endswith(ALREADY_CONFIRMED_MESSAGE)
    assert post.accounts[ALICE].balance == 100


def test_accept_after_deny(state_test_group) -> None:
    state = _pending_state()
    state, _ = state_test_group(_FIXTURE, "deny_before_accept", state, _mk_deny(BOB, 0))
    call = Call(CallType.ACCEPT, BOB, ResolvePayload(index=0))
    post, result = state_test_group(_FIXTURE, "accept_after_deny", state, call)

    assert result.error.code == ErrorCode.ALREADY_RESOLVED
    assert post.accounts[BOB].balance == 0


def test_deny_by_sender_unauthorized(state_test_group) -> None:
    """The sender cannot pull back a deposit on their own."""
    state = _pending_state()
    post, result = state_test_group(
        _FIXTURE, "deny_by_sender_unauthorized", state, _mk_deny(ALICE, 0)
    )

    assert result.error.code == ErrorCode.UNAUTHORIZED
    assert post.messages[0].is_pending is True
    assert post.accounts[ALICE].balance == 90


def test_deny_by_third_party_unauthorized(state_test_group) -> None:
    state = _pending_state()
    _, result = state_test_group(
        _FIXTURE, "deny_by_third_party_unauthorized", state, _mk_deny(CAROL, 0)
    )

    assert result.error.code == ErrorCode.UNAUTHORIZED


def test_deny_self_addressed(state_test_group) -> None:
    state = LedgerState()
    state.accounts[ALICE] = AccountState(address=ALICE, balance=0)
    state.messages.append(Message(sender=ALICE, receiver=ALICE, text="note", deposit_in_wei=5))
    state.escrow_balance = 5
    state.rebuild_indices()
    post, result = state_test_group(_FIXTURE, "deny_self_addressed", state, _mk_deny(ALICE, 0))

    assert result.ok
    assert post.accounts[ALICE].balance == 5
    assert post.escrow_balance == 0


def test_deny_invalid_index(state_test_group) -> None:
    state = _pending_state()
    _, result = state_test_group(_FIXTURE, "deny_invalid_index", state, _mk_deny(BOB, 5))

    assert result.error.code == ErrorCode.INVALID_INDEX


def test_deny_bool_index_rejected(state_test_group) -> None:
    state = _pending_state()
    _, result = state_test_group(
        _FIXTURE, "deny_bool_index_rejected", state, _mk_deny(BOB, True), runnable=False
    )

    assert result.error.code == ErrorCode.INVALID_INDEX


def test_deny_sender_balance_overflow(state_test_group) -> None:
    """Refund that would push the sender past uint256 is rejected atomically."""
    state = _pending_state(deposit=10)
    state.accounts[ALICE].balance = U256_MAX - 5
    post, result = state_test_group(
        _FIXTURE, "deny_sender_balance_overflow", state, _mk_deny(BOB, 0)
    )

    assert result.error.code == ErrorCode.OVERFLOW
    assert post is state
    assert post.messages[0].is_pending is True
    assert post.escrow_balance == 10
