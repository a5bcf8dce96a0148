"""Value transfer between accounts and the ledger's escrow.

Native value movement is modeled as a capability with `debit` / `credit` over
the account table held in `LedgerState`. Both raise `SpecError` before
touching the balance, so a failed transfer never leaves a partial change.
"""

from __future__ import annotations

from typing import Protocol

from .config import U256_MAX
from .errors import ErrorCode, SpecError
from .types import AccountState, Address, LedgerState


class ValueTransfer(Protocol):
    def balance_of(self, address: Address) -> int: ...

    def debit(self, address: Address, amount: int) -> None: ...

    def credit(self, address: Address, amount: int) -> None: ...


def apply_balance_change(balance: int, delta: int) -> int:
    """Apply +/- balance with u256 bounds."""
    new_balance = balance + delta
    if new_balance < 0:
        raise SpecError(ErrorCode.INSUFFICIENT_FUNDS, "insufficient funds")
    if new_balance > U256_MAX:
        raise SpecError(ErrorCode.OVERFLOW, "balance overflow")
    return new_balance


class AccountBook:
    """`ValueTransfer` over the account table of a `LedgerState`.

    Unknown addresses read as a zero balance; the account record is created
    on first credit.
    """

    def __init__(self, state: LedgerState):
        self.state = state

    def balance_of(self, address: Address) -> int:
        acct = self.state.accounts.get(address)
        return acct.balance if acct is not None else 0

    def debit(self, address: Address, amount: int) -> None:
        acct = self.state.accounts.get(address)
        balance = acct.balance if acct is not None else 0
        new_balance = apply_balance_change(balance, -amount)
        if acct is None:
            # Zero-value debit from an unknown account.
            return
        acct.balance = new_balance

    def credit(self, address: Address, amount: int) -> None:
        acct = self.state.accounts.get(address)
        balance = acct.balance if acct is not None else 0
        new_balance = apply_balance_change(balance, amount)
        if acct is None:
            acct = AccountState(address=address, balance=0)
            self.state.accounts[address] = acct
        acct.balance = new_balance


def lock_in_escrow(state: LedgerState, book: ValueTransfer, payer: Address, amount: int) -> None:
    """Move `amount` from `payer` into the ledger's escrow."""
    if state.escrow_balance + amount > U256_MAX:
        raise SpecError(ErrorCode.OVERFLOW, "escrow balance overflow")
    book.debit(payer, amount)
    state.escrow_balance += amount


def release_from_escrow(state: LedgerState, book: ValueTransfer, payee: Address, amount: int) -> None:
    """Pay `amount` out of the ledger's escrow to `payee`."""
    if state.escrow_balance < amount:
        raise SpecError(ErrorCode.INSUFFICIENT_FUNDS, "escrow cannot cover payout")
    book.credit(payee, amount)
    state.escrow_balance -= amount
