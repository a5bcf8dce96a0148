"""Read projection specs (list_sent / list_received / get_own_messages)."""

from __future__ import annotations

import pytest

from messenger_spec.errors import ErrorCode, SpecError
from messenger_spec.state_transition import apply_calls
from messenger_spec.test_accounts import ALICE, BOB, CAROL, EVE
from messenger_spec.types import (
    AccountState,
    Call,
    CallType,
    LedgerState,
    Message,
    PostPayload,
    ResolvePayload,
)
from messenger_spec.views import (
    get_message,
    get_own_messages,
    list_received,
    list_sent,
    pending_messages,
    pending_total,
    received_indices,
    sent_indices,
)


def _populated_state() -> LedgerState:
    state = LedgerState()
    state.accounts[ALICE] = AccountState(address=ALICE, balance=100)
    state.accounts[CAROL] = AccountState(address=CAROL, balance=100)
    state, result = apply_calls(
        state,
        [
            Call(CallType.POST, ALICE, PostPayload("first", BOB), 1),
            Call(CallType.POST, CAROL, PostPayload("second", BOB), 2),
            Call(CallType.POST, ALICE, PostPayload("third", CAROL), 3),
            Call(CallType.ACCEPT, BOB, ResolvePayload(index=1)),
        ],
    )
    assert result.ok
    return state


def test_list_received_first_message() -> None:
    """A posts to B with value 1; B's inbox holds it, pending."""
    state = _populated_state()

    msg = list_received(state, BOB)[0]

    assert msg == Message(sender=ALICE, receiver=BOB, text="first", deposit_in_wei=1, is_pending=True)


def test_list_received_in_creation_order() -> None:
    state = _populated_state()

    assert [m.text for m in list_received(state, BOB)] == ["first", "second"]
    assert [m.is_pending for m in list_received(state, BOB)] == [True, False]
    assert [m.text for m in list_received(state, CAROL)] == ["third"]


def test_list_sent_in_creation_order() -> None:
    state = _populated_state()

    assert [m.text for m in list_sent(state, ALICE)] == ["first", "third"]
    assert [m.text for m in list_sent(state, CAROL)] == ["second"]
    assert list_sent(state, BOB) == []


def test_unknown_account_has_empty_views() -> None:
    state = _populated_state()

    assert list_sent(state, EVE) == []
    assert list_received(state, EVE) == []
    assert get_own_messages(state, EVE) == []


def test_get_own_messages_is_inbox() -> None:
    state = _populated_state()

    assert get_own_messages(state, BOB) == list_received(state, BOB)


def test_views_return_copies() -> None:
    state = _populated_state()

    inbox = list_received(state, BOB)
    inbox[0].is_pending = False
    inbox[0].deposit_in_wei = 0

    assert state.messages[0].is_pending is True
    assert state.messages[0].deposit_in_wei == 1


def test_index_lists() -> None:
    state = _populated_state()

    assert sent_indices(state, ALICE) == [0, 2]
    assert received_indices(state, BOB) == [0, 1]
    sent_indices(state, ALICE).append(99)
    assert state.by_sender[ALICE] == [0, 2]


def test_get_message() -> None:
    state = _populated_state()

    assert get_message(state, 2).text == "third"
    with pytest.raises(SpecError) as exc:
        get_message(state, 3)
    assert exc.value.code == ErrorCode.INVALID_INDEX


def test_pending_projection() -> None:
    state = _populated_state()

    assert [i for i, _ in pending_messages(state)] == [0, 2]
    assert pending_total(state) == 4
    assert state.escrow_balance == 4


def test_rebuild_indices_matches_incremental() -> None:
    state = _populated_state()
    by_sender, by_receiver = state.by_sender, state.by_receiver

    state.rebuild_indices()

    assert state.by_sender == by_sender
    assert state.by_receiver == by_receiver
