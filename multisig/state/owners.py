"""
multisig.state.owners — the owner set, its ordered list and the fixed threshold.

Owners are kept in a dense list plus an index map (identity → position), giving O(1)
membership tests and O(1) removal by swapping the last entry into the freed slot.
Consumers must not rely on owner ordering: removal does not preserve it.

The threshold is validated once, at construction, and never changes afterwards.
Mutations here assume the caller has already been authorized (see runtime.guards);
they only check set membership and emit OwnerAddition / OwnerRemoval.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Tuple

from ..errors import (InvalidConfiguration, OwnerAlreadyExists,
                      OwnerDoesntExist, QuorumUnreachable)
from ..types.address import Address, AddressLike, to_address
from ..types.events import OWNER_ADDITION, OWNER_REMOVAL, WalletEvent
from .journal import Journal


class OwnerRegistry:
    """
    Owner set with swap-with-last removal.

    Invariant: ``set(self._owners) == set(self._index)`` and
    ``self._owners[self._index[o]] == o`` for every member ``o``.
    """

    def __init__(
        self,
        owners: Iterable[AddressLike],
        threshold: int,
        administrator: AddressLike,
        journal: Journal,
    ) -> None:
        self._journal = journal
        self._administrator = to_address(administrator)
        self._owners: List[Address] = []
        self._index: Dict[Address, int] = {}
        for raw in owners:
            o = to_address(raw)
            if o in self._index:
                raise OwnerAlreadyExists(o)
            self._index[o] = len(self._owners)
            self._owners.append(o)
        if isinstance(threshold, bool) or not isinstance(threshold, int):
            raise InvalidConfiguration("threshold must be an integer")
        if not (1 <= threshold <= len(self._owners)):
            raise InvalidConfiguration(
                "threshold must satisfy 1 <= threshold <= owner count",
                data={"threshold": threshold, "owners": len(self._owners)},
            )
        self._threshold = threshold

    # ------------------------------------------------------------------ views

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def administrator(self) -> Address:
        return self._administrator

    def is_owner(self, identity: Address) -> bool:
        return identity in self._index

    def owners(self) -> Tuple[Address, ...]:
        return tuple(self._owners)

    def __len__(self) -> int:
        return len(self._owners)

    def __contains__(self, identity: object) -> bool:
        return identity in self._index

    # -------------------------------------------------------------- mutations

    def add(self, owner: Address) -> None:
        if owner in self._index:
            raise OwnerAlreadyExists(owner)
        self._append(owner)
        self._journal.emit(WalletEvent(OWNER_ADDITION, {"owner": owner}))

    def remove(self, owner: Address, *, enforce_quorum: bool = False) -> None:
        if owner not in self._index:
            raise OwnerDoesntExist(owner)
        if enforce_quorum and len(self._owners) - 1 < self._threshold:
            raise QuorumUnreachable(len(self._owners) - 1, self._threshold)
        self._swap_remove(owner)
        self._journal.emit(WalletEvent(OWNER_REMOVAL, {"owner": owner}))

    def replace(self, old: Address, new: Address) -> None:
        if old not in self._index:
            raise OwnerDoesntExist(old)
        if new in self._index:
            raise OwnerAlreadyExists(new)
        pos = self._index.pop(old)
        self._owners[pos] = new
        self._index[new] = pos

        def undo() -> None:
            del self._index[new]
            self._owners[pos] = old
            self._index[old] = pos

        self._journal.record(undo)
        self._journal.emit(WalletEvent(OWNER_REMOVAL, {"owner": old}))
        self._journal.emit(WalletEvent(OWNER_ADDITION, {"owner": new}))

    # ---------------------------------------------------------------- helpers

    def _append(self, owner: Address) -> None:
        self._index[owner] = len(self._owners)
        self._owners.append(owner)

        def undo() -> None:
            self._owners.pop()
            del self._index[owner]

        self._journal.record(undo)

    def _swap_remove(self, owner: Address) -> None:
        pos = self._index.pop(owner)
        last = self._owners.pop()
        if last != owner:
            self._owners[pos] = last
            self._index[last] = pos

        def undo() -> None:
            if last != owner:
                self._owners[pos] = owner
                self._owners.append(last)
                self._index[last] = len(self._owners) - 1
            else:
                self._owners.append(owner)
            self._index[owner] = pos

        self._journal.record(undo)


__all__ = ["OwnerRegistry"]
