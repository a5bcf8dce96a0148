"""Stateful ledger facade for hosts embedding the Messenger spec.

`Ledger` owns one `LedgerState` and funnels every mutation through
`state_transition.apply_call`. A single lock serializes writers.

Notifications are queued at commit time and delivered to subscribed sinks
after the state lock is released, in commit order. Sinks may read from or
call back into the ledger. A sink that raises is logged and skipped; the
commit stands and the remaining sinks still see the event.

Example:
    ledger = Ledger(LedgerState())
    ledger.fund(ALICE, 100)
    index = ledger.post("hello", BOB, 10, caller=ALICE)
    ledger.accept(index, caller=BOB)
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from copy import deepcopy
from typing import Callable, Optional

from . import views
from .balances import AccountBook
from .state_transition import TransitionResult, apply_call, apply_calls, verify_call
from .types import (
    Address,
    Call,
    CallType,
    LedgerState,
    Message,
    MessageIndex,
    Notification,
    PostPayload,
    ResolvePayload,
    Text,
)

logger = logging.getLogger(__name__)

EventSink = Callable[[Notification], None]


class Ledger:
    """Single-writer owner of a `LedgerState`.

    Mutating methods raise `SpecError` on rejection and leave state,
    balances and the notification log untouched. Once a call commits it
    returns normally whatever its sinks do.
    """

    def __init__(self, state: Optional[LedgerState] = None, sinks: Optional[list[EventSink]] = None):
        if state is None:
            state = LedgerState()
        else:
            state = deepcopy(state)
            state.rebuild_indices()
        self._state = state
        self._lock = threading.Lock()
        self._sinks: list[EventSink] = list(sinks or [])
        self.events: list[Notification] = []

        # Delivery side: events wait in the outbox until one thread drains it.
        self._outbox: deque[Notification] = deque()
        self._delivery_lock = threading.RLock()
        self._draining = False

    # --- notifications ---

    def subscribe(self, sink: EventSink) -> None:
        with self._lock:
            self._sinks.append(sink)

    def _commit(self, new_state: LedgerState, events: list[Notification]) -> None:
        # Caller holds self._lock.
        self._state = new_state
        self.events.extend(events)
        self._outbox.extend(events)

    def _deliver(self) -> None:
        with self._delivery_lock:
            # Re-entered from a sink on this thread: the outer loop delivers.
            if self._draining:
                return
            self._draining = True
            try:
                while True:
                    with self._lock:
                        if not self._outbox:
                            return
                        event = self._outbox.popleft()
                        sinks = list(self._sinks)
                    for sink in sinks:
                        try:
                            sink(event)
                        except Exception:
                            logger.exception("sink %r failed on %s", sink, type(event).__name__)
            finally:
                self._draining = False

    # --- writes ---

    def execute(self, call: Call) -> TransitionResult:
        """Apply one call; returns the result instead of raising."""
        with self._lock:
            new_state, result = apply_call(self._state, call)
            if not result.ok:
                logger.info(
                    "rejected %s from %s: %s",
                    call.call_type.value if isinstance(call.call_type, CallType) else call.call_type,
                    _short(call.caller),
                    result.error,
                )
                return result
            self._commit(new_state, result.events)
            logger.debug("committed %s from %s", call.call_type.value, _short(call.caller))
        self._deliver()
        return result

    def execute_batch(self, calls: list[Call]) -> TransitionResult:
        """Apply calls all-or-nothing."""
        with self._lock:
            new_state, result = apply_calls(self._state, calls)
            if not result.ok:
                logger.info("rejected batch of %d calls: %s", len(calls), result.error)
                return result
            self._commit(new_state, result.events)
            logger.debug("committed batch of %d calls", len(calls))
        self._deliver()
        return result

    def _execute_or_raise(self, call: Call) -> TransitionResult:
        result = self.execute(call)
        if not result.ok:
            raise result.error
        return result

    def post(self, text: Text, receiver: Address, value: int = 0, *, caller: Address) -> MessageIndex:
        result = self._execute_or_raise(
            Call(CallType.POST, caller, PostPayload(text=text, receiver=receiver), value)
        )
        return result.events[0].index

    def accept(self, index: MessageIndex, *, caller: Address) -> None:
        self._execute_or_raise(Call(CallType.ACCEPT, caller, ResolvePayload(index=index)))

    def deny(self, index: MessageIndex, *, caller: Address) -> None:
        self._execute_or_raise(Call(CallType.DENY, caller, ResolvePayload(index=index)))

    def verify(self, call: Call) -> TransitionResult:
        with self._lock:
            return verify_call(self._state, call)

    def fund(self, account: Address, amount: int) -> None:
        """Credit `account` from outside the ledger (genesis allocation)."""
        with self._lock:
            working = deepcopy(self._state)
            AccountBook(working).credit(account, amount)
            self._state = working

    # --- reads ---
    #
    # Each read runs under the state lock, so it sees one committed state and
    # never a writer's half-built working copy.

    @property
    def state(self) -> LedgerState:
        return self.snapshot()

    def snapshot(self) -> LedgerState:
        with self._lock:
            return deepcopy(self._state)

    @property
    def escrow_balance(self) -> int:
        with self._lock:
            return self._state.escrow_balance

    def balance_of(self, account: Address) -> int:
        with self._lock:
            return AccountBook(self._state).balance_of(account)

    def list_sent(self, account: Address) -> list[Message]:
        with self._lock:
            return views.list_sent(self._state, account)

    def list_received(self, account: Address) -> list[Message]:
        with self._lock:
            return views.list_received(self._state, account)

    def get_own_messages(self, caller: Address) -> list[Message]:
        with self._lock:
            return views.get_own_messages(self._state, caller)

    def get_message(self, index: MessageIndex) -> Message:
        with self._lock:
            return views.get_message(self._state, index)

    def __len__(self) -> int:
        with self._lock:
            return len(self._state.messages)


def _short(address: object) -> str:
    if isinstance(address, bytes):
        return "0x" + address.hex()[:8]
    return repr(address)
