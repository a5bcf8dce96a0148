"""Messenger call specs (post / accept / deny)."""

from __future__ import annotations

from ..balances import AccountBook, lock_in_escrow, release_from_escrow
from ..config import ADDRESS_SIZE, ALREADY_CONFIRMED_MESSAGE, U256_MAX, UNAUTHORIZED_MESSAGE
from ..errors import ErrorCode, SpecError
from ..types import (
    Call,
    CallType,
    LedgerState,
    Message,
    MessageConfirmed,
    NewMessage,
    Notification,
    Outcome,
    PostPayload,
    ResolvePayload,
)

_RESOLVE_OUTCOMES = {
    CallType.ACCEPT: Outcome.ACCEPTED,
    CallType.DENY: Outcome.DENIED,
}


def is_address(v: object) -> bool:
    return isinstance(v, bytes) and len(v) == ADDRESS_SIZE


def _require_address(v: object, what: str) -> None:
    if not is_address(v):
        raise SpecError(ErrorCode.INVALID_ADDRESS, f"{what} must be a {ADDRESS_SIZE}-byte address")


def _require_index(state: LedgerState, index: object) -> int:
    # bool is an int subclass; reject it explicitly.
    if not isinstance(index, int) or isinstance(index, bool):
        raise SpecError(ErrorCode.INVALID_INDEX, "message index must be an integer")
    if index < 0 or index >= len(state.messages):
        raise SpecError(ErrorCode.INVALID_INDEX, f"message {index} does not exist")
    return index


def verify(state: LedgerState, call: Call) -> None:
    _require_address(call.caller, "caller")

    value = call.value
    if not isinstance(value, int) or isinstance(value, bool):
        raise SpecError(ErrorCode.INVALID_AMOUNT, "value must be an integer")
    if value < 0 or value > U256_MAX:
        raise SpecError(ErrorCode.INVALID_AMOUNT, "value out of uint256 range")

    ct = call.call_type
    if ct == CallType.POST:
        _verify_post(state, call)
    elif ct in _RESOLVE_OUTCOMES:
        _verify_resolve(state, call)
    else:
        raise SpecError(ErrorCode.INVALID_TYPE, f"unsupported call type: {ct}")


def apply(state: LedgerState, call: Call) -> list[Notification]:
    """Apply `call` to `state` in place and return the emitted notifications.

    Callers own atomicity: `state` must be a working copy that is discarded
    if this raises.
    """
    ct = call.call_type
    if ct == CallType.POST:
        return _apply_post(state, call)
    if ct in _RESOLVE_OUTCOMES:
        return _apply_resolve(state, call, _RESOLVE_OUTCOMES[ct])
    raise SpecError(ErrorCode.INVALID_TYPE, f"unsupported call type: {ct}")


# --- POST ---

def _verify_post(state: LedgerState, call: Call) -> None:
    p = call.payload
    if not isinstance(p, PostPayload):
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "post payload must be PostPayload")
    # Text is opaque; only its Python type is checked.
    if not isinstance(p.text, (str, bytes)):
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "text must be str or bytes")
    # Self-addressed messages are allowed.
    _require_address(p.receiver, "receiver")

    if AccountBook(state).balance_of(call.caller) < call.value:
        raise SpecError(ErrorCode.INSUFFICIENT_FUNDS, "insufficient funds for deposit")


def _apply_post(state: LedgerState, call: Call) -> list[Notification]:
    p = call.payload
    book = AccountBook(state)

    # Transfer first: a message is never created on a failed transfer.
    lock_in_escrow(state, book, call.caller, call.value)

    index = len(state.messages)
    state.messages.append(
        Message(
            sender=call.caller,
            receiver=p.receiver,
            text=p.text,
            deposit_in_wei=call.value,
            is_pending=True,
        )
    )
    state.by_sender.setdefault(call.caller, []).append(index)
    state.by_receiver.setdefault(p.receiver, []).append(index)

    return [
        NewMessage(
            index=index,
            sender=call.caller,
            receiver=p.receiver,
            text=p.text,
            deposit_in_wei=call.value,
        )
    ]


# --- ACCEPT / DENY ---

def _verify_resolve(state: LedgerState, call: Call) -> None:
    p = call.payload
    if not isinstance(p, ResolvePayload):
        raise SpecError(ErrorCode.INVALID_PAYLOAD, "resolve payload must be ResolvePayload")
    # accept/deny are non-payable.
    if call.value != 0:
        raise SpecError(ErrorCode.INVALID_AMOUNT, "accept/deny do not take value")

    index = _require_index(state, p.index)
    msg = state.messages[index]
    if call.caller != msg.receiver:
        raise SpecError(ErrorCode.UNAUTHORIZED, UNAUTHORIZED_MESSAGE)
    if not msg.is_pending:
        raise SpecError(ErrorCode.ALREADY_RESOLVED, ALREADY_CONFIRMED_MESSAGE)


def _apply_resolve(state: LedgerState, call: Call, outcome: Outcome) -> list[Notification]:
    index = call.payload.index
    msg = state.messages[index]
    payee = msg.receiver if outcome == Outcome.ACCEPTED else msg.sender

    release_from_escrow(state, AccountBook(state), payee, msg.deposit_in_wei)
    msg.is_pending = False

    return [MessageConfirmed(index=index, outcome=outcome)]
