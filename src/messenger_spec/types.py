"""Core types for the Messenger Python spec.

The ledger tracks a single append-only message table, the escrow balance
held against pending messages, and per-account sender/receiver indices.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from .config import DEFAULT_CONTRACT_ADDRESS

Address = bytes
MessageIndex = int
# Opaque message body; never inspected by the ledger.
Text = Union[str, bytes]


class CallType(Enum):
    POST = "post"
    ACCEPT = "accept"
    DENY = "deny"


class Outcome(Enum):
    ACCEPTED = "accepted"
    DENIED = "denied"


@dataclass
class Message:
    sender: Address
    receiver: Address
    text: Text
    deposit_in_wei: int
    is_pending: bool = True


@dataclass
class AccountState:
    address: Address
    balance: int = 0


# --- Calls ---


@dataclass
class PostPayload:
    text: Text
    receiver: Address


@dataclass
class ResolvePayload:
    index: MessageIndex


@dataclass
class Call:
    call_type: CallType
    caller: Address
    payload: Union[PostPayload, ResolvePayload]
    value: int = 0


# --- Notifications ---


@dataclass(frozen=True)
class NewMessage:
    index: MessageIndex
    sender: Address
    receiver: Address
    text: Text
    deposit_in_wei: int


@dataclass(frozen=True)
class MessageConfirmed:
    index: MessageIndex
    outcome: Outcome


Notification = Union[NewMessage, MessageConfirmed]


# --- LedgerState ---


@dataclass
class LedgerState:
    accounts: dict[Address, AccountState] = field(default_factory=dict)
    messages: list[Message] = field(default_factory=list)
    escrow_balance: int = 0
    contract_address: Address = DEFAULT_CONTRACT_ADDRESS
    # Derived indices; rebuilt from `messages` when loading exported state.
    by_sender: dict[Address, list[MessageIndex]] = field(default_factory=dict)
    by_receiver: dict[Address, list[MessageIndex]] = field(default_factory=dict)

    def rebuild_indices(self) -> None:
        self.by_sender = {}
        self.by_receiver = {}
        for index, msg in enumerate(self.messages):
            self.by_sender.setdefault(msg.sender, []).append(index)
            self.by_receiver.setdefault(msg.receiver, []).append(index)
