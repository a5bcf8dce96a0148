"""Canonical state digest implementation (v1)."""
from __future__ import annotations

from typing import Any

from blake3 import blake3

from .config import ADDRESS_SIZE


def _hex_to_bytes(value: str | None) -> bytes:
    if value is None:
        return b""
    if not isinstance(value, str):
        raise TypeError("hex value must be string")
    v = value[2:] if value.startswith(("0x", "0X")) else value
    if v == "":
        return b""
    return bytes.fromhex(v)


def _u256_be(value: int) -> bytes:
    if value < 0:
        raise ValueError("u256 must be non-negative")
    return int(value).to_bytes(32, "big", signed=False)


def _address(value: str) -> bytes:
    addr = _hex_to_bytes(value)
    if len(addr) != ADDRESS_SIZE:
        raise ValueError(f"address must be {ADDRESS_SIZE} bytes, got {len(addr)}")
    return addr


def compute_state_digest(post_state: dict[str, Any]) -> str:
    """Compute state digest v1 from an exported ledger state.

    Layout, hashed with BLAKE3-256:
    contract_address | escrow_balance | accounts sorted by address
    (address | balance) | message count | messages in index order
    (sender | receiver | deposit | is_pending | text kind | len(text) | text).
    Text kind is 0x00 for `text` (utf-8, surrogates passed through) and 0x01
    for `text_hex` (raw bytes).
    Zero-balance accounts are skipped so implicit and explicit empty
    accounts digest the same.
    """
    if not isinstance(post_state, dict):
        raise TypeError("post_state must be a dict")

    buf = bytearray()
    buf += _address(post_state.get("contract_address", "00" * ADDRESS_SIZE))
    buf += _u256_be(int(post_state.get("escrow_balance", 0)))

    sortable = []
    for acc in post_state.get("accounts", []):
        balance = int(acc.get("balance", 0))
        if balance == 0:
            continue
        sortable.append((_address(acc.get("address", "")), balance))
    sortable.sort(key=lambda x: x[0])

    buf += _u256_be(len(sortable))
    for addr, balance in sortable:
        buf += addr
        buf += _u256_be(balance)

    messages = post_state.get("messages", [])
    buf += _u256_be(len(messages))
    for msg in messages:
        buf += _address(msg["sender"])
        buf += _address(msg["receiver"])
        buf += _u256_be(int(msg.get("deposit_in_wei", 0)))
        buf += b"\x01" if msg.get("is_pending", True) else b"\x00"
        if "text_hex" in msg:
            buf += b"\x01"
            text = _hex_to_bytes(msg["text_hex"])
        else:
            buf += b"\x00"
            # surrogatepass keeps lone surrogates hashable.
            text = str(msg.get("text", "")).encode("utf-8", "surrogatepass")
        buf += _u256_be(len(text))
        buf += text

    return blake3(buf).hexdigest()
