"""
multisig.state.ledger — append-only, index-addressed store of proposed actions.

Indices are allocated monotonically from 0 and never reused; records are never
deleted. Only indices strictly below the current length are valid.
"""

from __future__ import annotations

from typing import Iterator, List

from ..errors import InvalidInput, InvalidTransaction
from ..types.address import Address
from ..types.events import TRANSACTION_SUBMITTED, WalletEvent
from ..types.transaction import UINT256_MAX, Transaction
from .journal import Journal


def _check_value(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput("value must be an integer", data={"type": type(value).__name__})
    if not (0 <= value <= UINT256_MAX):
        raise InvalidInput("value outside the uint256 range")
    return value


class TransactionLedger:
    def __init__(self, journal: Journal, *, max_payload_bytes: int = 128 * 1024) -> None:
        self._journal = journal
        self._max_payload = int(max_payload_bytes)
        self._txs: List[Transaction] = []

    def __len__(self) -> int:
        return len(self._txs)

    def __iter__(self) -> Iterator[Transaction]:
        return (tx.copy() for tx in self._txs)

    def submit(self, submitter: Address, destination: Address, value: int, payload: bytes) -> int:
        """Allocate the next index for a new, unexecuted, unapproved transaction."""
        value = _check_value(value)
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise InvalidInput("payload must be bytes")
        payload = bytes(payload)
        if len(payload) > self._max_payload:
            raise InvalidInput(
                "payload exceeds the configured maximum",
                data={"size": len(payload), "max": self._max_payload},
            )
        index = len(self._txs)
        self._txs.append(Transaction(destination=destination, value=value, payload=payload))
        self._journal.record(self._txs.pop)
        self._journal.emit(
            WalletEvent(
                TRANSACTION_SUBMITTED,
                {
                    "owner": submitter,
                    "index": index,
                    "destination": destination,
                    "value": value,
                    "payload": payload,
                },
            )
        )
        return index

    def get(self, index: int) -> Transaction:
        """The live record at ``index``; raises InvalidTransaction unless 0 <= index < length."""
        if isinstance(index, bool) or not isinstance(index, int) or not (0 <= index < len(self._txs)):
            raise InvalidTransaction(index if isinstance(index, int) else None, length=len(self._txs))
        return self._txs[index]

    def mark_executed(self, index: int) -> None:
        tx = self.get(index)
        tx.executed = True

        def undo() -> None:
            tx.executed = False

        self._journal.record(undo)


__all__ = ["TransactionLedger"]
