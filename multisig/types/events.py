"""
multisig.types.events — events emitted for external observers.

`WalletEvent` is a compact, immutable (name, args) pair. Argument values are kept
as native Python values (bytes for identities and payloads, ints for indices and
amounts); `to_dict()` renders a JSON-friendly form.

Event names
-----------
OwnerAddition(owner)
OwnerRemoval(owner)
TransactionSubmitted(owner, index, destination, value, payload)
TransactionApproval(owner, index)
Revocation(owner, index)
TransactionExecuted(owner, index, destination, value, payload)
Deposit(sender, value, balance)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

OWNER_ADDITION = "OwnerAddition"
OWNER_REMOVAL = "OwnerRemoval"
TRANSACTION_SUBMITTED = "TransactionSubmitted"
TRANSACTION_APPROVAL = "TransactionApproval"
REVOCATION = "Revocation"
TRANSACTION_EXECUTED = "TransactionExecuted"
DEPOSIT = "Deposit"

EVENT_NAMES = frozenset(
    (
        OWNER_ADDITION,
        OWNER_REMOVAL,
        TRANSACTION_SUBMITTED,
        TRANSACTION_APPROVAL,
        REVOCATION,
        TRANSACTION_EXECUTED,
        DEPOSIT,
    )
)


def _jsonable(v: Any) -> Any:
    if isinstance(v, (bytes, bytearray, memoryview)):
        return "0x" + bytes(v).hex()
    return v


def _from_jsonable(v: Any) -> Any:
    if isinstance(v, str) and v.startswith("0x"):
        return bytes.fromhex(v[2:])
    return v


@dataclass(frozen=True)
class WalletEvent:
    name: str
    args: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.name not in EVENT_NAMES:
            raise ValueError(f"unknown event name {self.name!r}")

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "args": {k: _jsonable(v) for k, v in self.args.items()}}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "WalletEvent":
        args = d.get("args") or {}
        return cls(name=str(d["name"]), args={k: _from_jsonable(v) for k, v in args.items()})


__all__ = [
    "OWNER_ADDITION",
    "OWNER_REMOVAL",
    "TRANSACTION_SUBMITTED",
    "TRANSACTION_APPROVAL",
    "REVOCATION",
    "TRANSACTION_EXECUTED",
    "DEPOSIT",
    "EVENT_NAMES",
    "WalletEvent",
]
