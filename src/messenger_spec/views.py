"""Read projections over ledger state.

Every function here is pure: it never mutates `state` and returns copies of
message records, so callers cannot reach into the ledger's own table.
"""

from __future__ import annotations

from dataclasses import replace

from .errors import ErrorCode, SpecError
from .types import Address, LedgerState, Message, MessageIndex


def _project(state: LedgerState, indices: list[MessageIndex]) -> list[Message]:
    return [replace(state.messages[i]) for i in indices]


def list_sent(state: LedgerState, account: Address) -> list[Message]:
    """Messages posted by `account`, in creation order."""
    return _project(state, state.by_sender.get(account, []))


def list_received(state: LedgerState, account: Address) -> list[Message]:
    """Messages addressed to `account`, in creation order."""
    return _project(state, state.by_receiver.get(account, []))


def get_own_messages(state: LedgerState, caller: Address) -> list[Message]:
    """Inbox of the calling account (the contract's `getOwnMessages`)."""
    return list_received(state, caller)


def sent_indices(state: LedgerState, account: Address) -> list[MessageIndex]:
    return list(state.by_sender.get(account, []))


def received_indices(state: LedgerState, account: Address) -> list[MessageIndex]:
    return list(state.by_receiver.get(account, []))


def get_message(state: LedgerState, index: MessageIndex) -> Message:
    if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < len(state.messages):
        raise SpecError(ErrorCode.INVALID_INDEX, f"message {index} does not exist")
    return replace(state.messages[index])


def pending_messages(state: LedgerState) -> list[tuple[MessageIndex, Message]]:
    return [(i, replace(m)) for i, m in enumerate(state.messages) if m.is_pending]


def pending_total(state: LedgerState) -> int:
    """Sum of deposits still held; equals `state.escrow_balance` in a valid state."""
    return sum(m.deposit_in_wei for m in state.messages if m.is_pending)


def total_value(state: LedgerState) -> int:
    """Account balances plus escrow. Constant across every committed call."""
    return sum(a.balance for a in state.accounts.values()) + state.escrow_balance
