"""
multisig.runtime.guards — composable preconditions for wallet operations.

Each factory returns a zero-argument check that raises a typed MultisigError when
its condition does not hold. `require()` runs checks left to right and stops at the
first failure, so the order a caller lists them in decides which error is reported:

    require(
        only_owner(registry, caller),
        tx_exists(ledger, index),
        not_executed(ledger, index),
        not_approved(approvals, index, caller),
    )
"""

from __future__ import annotations

from typing import Callable

from ..errors import (NotAdministrator, NotOwner, TransactionAlreadyApproved,
                      TransactionAlreadyExecuted, TransactionNotApproved)
from ..state.approvals import ApprovalBook
from ..state.ledger import TransactionLedger
from ..state.owners import OwnerRegistry
from ..types.address import Address

Guard = Callable[[], None]


def require(*guards: Guard) -> None:
    for guard in guards:
        guard()


def only_administrator(registry: OwnerRegistry, caller: Address) -> Guard:
    def check() -> None:
        if caller != registry.administrator:
            raise NotAdministrator(caller)

    return check


def only_owner(registry: OwnerRegistry, caller: Address) -> Guard:
    def check() -> None:
        if not registry.is_owner(caller):
            raise NotOwner(caller)

    return check


def tx_exists(ledger: TransactionLedger, index: int) -> Guard:
    def check() -> None:
        ledger.get(index)

    return check


def not_executed(ledger: TransactionLedger, index: int) -> Guard:
    def check() -> None:
        if ledger.get(index).executed:
            raise TransactionAlreadyExecuted(index)

    return check


def not_approved(approvals: ApprovalBook, index: int, caller: Address) -> Guard:
    def check() -> None:
        if approvals.approved(index, caller):
            raise TransactionAlreadyApproved(index, caller)

    return check


def approved_by(approvals: ApprovalBook, index: int, caller: Address) -> Guard:
    def check() -> None:
        if not approvals.approved(index, caller):
            raise TransactionNotApproved(index, caller)

    return check


__all__ = [
    "Guard",
    "require",
    "only_administrator",
    "only_owner",
    "tx_exists",
    "not_executed",
    "not_approved",
    "approved_by",
]
