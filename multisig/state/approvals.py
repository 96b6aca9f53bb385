"""
multisig.state.approvals — per-(transaction, owner) approval bits.

Records are created lazily (absent == False). The book keeps each transaction's
``approvals_count`` in step with its bits: approve sets a bit and increments, revoke
clears it and decrements. Bits are independent of current membership: removing an
owner leaves their bits (and the counts) untouched.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

from ..errors import TransactionAlreadyApproved, TransactionNotApproved
from ..types.address import Address
from ..types.events import REVOCATION, TRANSACTION_APPROVAL, WalletEvent
from .journal import Journal
from .ledger import TransactionLedger

_Key = Tuple[int, Address]


class ApprovalBook:
    def __init__(self, ledger: TransactionLedger, journal: Journal) -> None:
        self._ledger = ledger
        self._journal = journal
        self._bits: Dict[_Key, bool] = {}

    def approved(self, index: int, owner: Address) -> bool:
        return self._bits.get((index, owner), False)

    def approvers(self, index: int) -> List[Address]:
        """Every identity holding a true bit for ``index`` (members or not), in first-approval order."""
        return [o for (i, o), bit in self._bits.items() if i == index and bit]

    def approve(self, index: int, owner: Address) -> None:
        if self.approved(index, owner):
            raise TransactionAlreadyApproved(index, owner)
        self._set(index, owner, True, +1)
        self._journal.emit(WalletEvent(TRANSACTION_APPROVAL, {"owner": owner, "index": index}))

    def revoke(self, index: int, owner: Address) -> None:
        if not self.approved(index, owner):
            raise TransactionNotApproved(index, owner)
        self._set(index, owner, False, -1)
        self._journal.emit(WalletEvent(REVOCATION, {"owner": owner, "index": index}))

    def _set(self, index: int, owner: Address, bit: bool, delta: int) -> None:
        tx = self._ledger.get(index)
        key = (index, owner)
        had = key in self._bits
        prev = self._bits.get(key, False)
        self._bits[key] = bit
        tx.approvals_count += delta

        def undo() -> None:
            tx.approvals_count -= delta
            if had:
                self._bits[key] = prev
            else:
                del self._bits[key]

        self._journal.record(undo)


__all__ = ["ApprovalBook"]
