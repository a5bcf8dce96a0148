"""Helpers to serialize/deserialize minimal fixtures for Messenger specs."""

from __future__ import annotations

from typing import Any

from messenger_spec.types import (
    AccountState,
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
    Text,
)


def _hex_to_bytes(v: str) -> bytes:
    v = v[2:] if v.startswith(("0x", "0X")) else v
    return bytes.fromhex(v)


def _bytes_to_hex(v: bytes) -> str:
    return v.hex()


def _text_to_json(text: Any) -> dict[str, Any]:
    # Raw-bytes text travels as `text_hex` so it stays distinct from str text.
    if isinstance(text, (bytes, bytearray)):
        return {"text_hex": _bytes_to_hex(bytes(text))}
    return {"text": text}


def _text_from_json(data: dict[str, Any]) -> Text:
    if "text_hex" in data:
        return _hex_to_bytes(data["text_hex"])
    return data.get("text", "")


def state_to_json(state: LedgerState) -> dict[str, Any]:
    # Indices are derived from message order, so only the message table is exported.
    return {
        "contract_address": _bytes_to_hex(state.contract_address),
        "escrow_balance": state.escrow_balance,
        "accounts": [
            {
                "address": _bytes_to_hex(a.address),
                "balance": a.balance,
            }
            for a in state.accounts.values()
        ],
        "messages": [
            {
                "sender": _bytes_to_hex(m.sender),
                "receiver": _bytes_to_hex(m.receiver),
                **_text_to_json(m.text),
                "deposit_in_wei": m.deposit_in_wei,
                "is_pending": m.is_pending,
            }
            for m in state.messages
        ],
    }


def state_from_json(data: dict[str, Any]) -> LedgerState:
    state = LedgerState(escrow_balance=data.get("escrow_balance", 0))
    if data.get("contract_address"):
        state.contract_address = _hex_to_bytes(data["contract_address"])

    for a in data.get("accounts", []):
        acct = AccountState(
            address=_hex_to_bytes(a["address"]),
            balance=a.get("balance", 0),
        )
        state.accounts[acct.address] = acct

    for m in data.get("messages", []):
        state.messages.append(
            Message(
                sender=_hex_to_bytes(m["sender"]),
                receiver=_hex_to_bytes(m["receiver"]),
                text=_text_from_json(m),
                deposit_in_wei=m.get("deposit_in_wei", 0),
                is_pending=m.get("is_pending", True),
            )
        )
    state.rebuild_indices()
    return state


def _json_safe(v: Any) -> Any:
    """Keep malformed test inputs representable (bytes as hex, others as-is)."""
    if isinstance(v, (bytes, bytearray)):
        return _bytes_to_hex(bytes(v))
    return v


def call_to_json(call: Call) -> dict[str, Any]:
    payload: Any
    p = call.payload
    if isinstance(p, PostPayload):
        payload = {**_text_to_json(p.text), "receiver": _json_safe(p.receiver)}
    elif isinstance(p, ResolvePayload):
        payload = {"index": p.index}
    else:
        payload = _json_safe(p)

    call_type = call.call_type.value if isinstance(call.call_type, CallType) else call.call_type
    return {
        "call_type": call_type,
        "caller": _json_safe(call.caller),
        "payload": payload,
        "value": call.value,
    }


def call_from_json(data: dict[str, Any]) -> Call:
    call_type = CallType(data["call_type"])
    p = data.get("payload") or {}

    payload: Any
    if call_type == CallType.POST:
        payload = PostPayload(text=_text_from_json(p), receiver=_hex_to_bytes(p["receiver"]))
    else:
        payload = ResolvePayload(index=p["index"])

    return Call(
        call_type=call_type,
        caller=_hex_to_bytes(data["caller"]),
        payload=payload,
        value=data.get("value", 0),
    )


def event_to_json(event: Notification) -> dict[str, Any]:
    if isinstance(event, NewMessage):
        return {
            "event": "NewMessage",
            "index": event.index,
            "sender": _bytes_to_hex(event.sender),
            "receiver": _bytes_to_hex(event.receiver),
            **_text_to_json(event.text),
            "deposit_in_wei": event.deposit_in_wei,
        }
    if isinstance(event, MessageConfirmed):
        return {
            "event": "MessageConfirmed",
            "index": event.index,
            "outcome": event.outcome.value,
        }
    raise TypeError(f"unknown notification: {event!r}")


def event_from_json(data: dict[str, Any]) -> Notification:
    kind = data["event"]
    if kind == "NewMessage":
        return NewMessage(
            index=data["index"],
            sender=_hex_to_bytes(data["sender"]),
            receiver=_hex_to_bytes(data["receiver"]),
            text=_text_from_json(data),
            deposit_in_wei=data["deposit_in_wei"],
        )
    if kind == "MessageConfirmed":
        return MessageConfirmed(index=data["index"], outcome=Outcome(data["outcome"]))
    raise ValueError(f"unknown event kind: {kind}")
