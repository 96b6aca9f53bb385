"""
multisig.types.transaction — a proposed action and its execution status.

A `Transaction` is created by submit with ``executed=False`` and
``approvals_count=0``. The ledger owns it exclusively: approvals_count moves with
approve/revoke and ``executed`` flips once, on a successful execute. Records are
never deleted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from .address import Address, to_checksum_address

UINT256_MAX = (1 << 256) - 1


@dataclass
class Transaction:
    destination: Address
    value: int
    payload: bytes
    executed: bool = False
    approvals_count: int = 0

    def copy(self) -> "Transaction":
        return Transaction(
            destination=self.destination,
            value=self.value,
            payload=self.payload,
            executed=self.executed,
            approvals_count=self.approvals_count,
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly projection (hex for bytes)."""
        return {
            "destination": to_checksum_address(self.destination),
            "value": self.value,
            "payload": "0x" + self.payload.hex(),
            "executed": self.executed,
            "approvals_count": self.approvals_count,
        }


__all__ = ["UINT256_MAX", "Transaction"]
