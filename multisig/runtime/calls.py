"""
multisig.runtime.calls — the external call boundary used by execute.

The wallet forwards an authorized transaction to a `CallBoundary`:

    call(sender, destination, value, payload) -> CallResult

A boundary reports failure through ``CallResult.success`` instead of raising; the
wallet turns a failed result into ExternalCallFailed and reverts the whole operation.
A boundary must leave no effect of its own behind when it reports failure.

`InMemoryValueHost` is the in-process boundary used by tooling and tests: it keeps
integer balances, moves value from sender to destination, then runs an optional
per-destination handler with the payload. Insufficient balance or a raising handler
is a failed call, and every balance change made during the call (including nested
calls made by the handler) is undone.

A boundary that also implements `ReversibleBoundary` (snapshot/restore) has its
effects recorded in the wallet journal, so an operation that fails after a
successful call, e.g. because its events could not be published, undoes the
transfer as well.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import (Any, Callable, Dict, List, Optional, Protocol, Tuple,
                    runtime_checkable)

from ..types.address import Address

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallResult:
    success: bool
    return_data: bytes = b""
    reason: Optional[str] = None

    @classmethod
    def ok(cls, return_data: bytes = b"") -> "CallResult":
        return cls(True, return_data)

    @classmethod
    def failed(cls, reason: str, return_data: bytes = b"") -> "CallResult":
        return cls(False, return_data, reason)


@runtime_checkable
class CallBoundary(Protocol):
    def call(self, sender: Address, destination: Address, value: int, payload: bytes) -> CallResult:
        """Transfer ``value`` and deliver ``payload`` to ``destination``."""
        ...

    def balance_of(self, address: Address) -> int:
        ...

    def credit(self, address: Address, amount: int) -> int:
        """Add incoming value to ``address``; returns the new balance."""
        ...


# handler(payload, value, host) -> optional return data; raising means failure
CallHandler = Callable[[bytes, int, "InMemoryValueHost"], Optional[bytes]]

HostState = Tuple[Dict[Address, int], int]


@runtime_checkable
class ReversibleBoundary(Protocol):
    """A boundary whose effects the wallet can roll back with its own journal."""

    def snapshot(self) -> Any:
        ...

    def restore(self, state: Any) -> None:
        ...


class InMemoryValueHost(CallBoundary):
    """Balances and destination handlers kept in process memory."""

    def __init__(self, balances: Optional[Dict[Address, int]] = None) -> None:
        self._balances: Dict[Address, int] = dict(balances or {})
        self._handlers: Dict[Address, CallHandler] = {}
        self.calls: List[Tuple[Address, Address, int, bytes]] = []

    # -- accounts -------------------------------------------------------------

    def balance_of(self, address: Address) -> int:
        return self._balances.get(address, 0)

    def credit(self, address: Address, amount: int) -> int:
        if amount < 0:
            raise ValueError(f"amount must be >= 0, got {amount}")
        self._balances[address] = self._balances.get(address, 0) + amount
        return self._balances[address]

    def register(self, destination: Address, handler: CallHandler) -> None:
        """Attach a handler run (after the value transfer) for calls to ``destination``."""
        self._handlers[destination] = handler

    # -- ReversibleBoundary ---------------------------------------------------

    def snapshot(self) -> HostState:
        return dict(self._balances), len(self.calls)

    def restore(self, state: HostState) -> None:
        balances, calls_before = state
        self._balances = dict(balances)
        del self.calls[calls_before:]

    # -- CallBoundary ---------------------------------------------------------

    def call(self, sender: Address, destination: Address, value: int, payload: bytes) -> CallResult:
        saved = self.snapshot()
        self.calls.append((sender, destination, value, payload))

        available = self._balances.get(sender, 0)
        if available < value:
            self.restore(saved)
            return CallResult.failed(f"insufficient balance: have {available}, need {value}")
        self._balances[sender] = available - value
        self._balances[destination] = self._balances.get(destination, 0) + value

        handler = self._handlers.get(destination)
        if handler is None:
            return CallResult.ok()
        try:
            out = handler(payload, value, self)
        except Exception as e:
            self.restore(saved)
            log.debug("destination handler raised: %r", e)
            return CallResult.failed(f"{type(e).__name__}: {e}")
        return CallResult.ok(bytes(out or b""))


__all__ = [
    "CallResult",
    "CallBoundary",
    "CallHandler",
    "ReversibleBoundary",
    "InMemoryValueHost",
]
