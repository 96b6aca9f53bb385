"""
multisig.runtime.wallet — the M-of-N wallet facade.

`MultisigWallet` owns one instance of every state component and exposes the public
operations. Every mutating call takes the acting identity explicitly as ``caller``
and runs inside a journal checkpoint: it either completes (and its events reach the
sink) or raises a MultisigError with no effect on state or events.

    wallet = MultisigWallet([a, b, c], 2, administrator=admin)
    i = wallet.submit_transaction(a, dest, 10, b"")
    wallet.approve_transaction(a, i)
    wallet.approve_transaction(b, i)
    d = wallet.digest(i)
    wallet.execute_transaction(a, i, [sign_a(d), sign_b(d)])

Owner-set mutation is reserved to the administrator, a single identity that need
not be an owner. The threshold is fixed at construction.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import (Any, Dict, Iterable, Iterator, List, Optional, Sequence,
                    Tuple)

from ..config import WalletConfig, get_config
from ..crypto.hashing import keccak256
from ..crypto.oracle import Secp256k1Oracle, SignatureOracle
from ..errors import EventPublishFailed, InvalidInput, MultisigError
from ..logging import get_logger, with_fields
from ..state.approvals import ApprovalBook
from ..state.events import EventSink, InMemoryEventSink, JsonlEventSink
from ..state.journal import Journal
from ..state.ledger import TransactionLedger
from ..state.owners import OwnerRegistry
from ..types.address import (Address, AddressLike, short, to_address,
                             to_checksum_address)
from ..types.events import DEPOSIT, WalletEvent
from ..types.signature import SignatureLike
from ..types.transaction import UINT256_MAX, Transaction
from .calls import (CallBoundary, CallResult, InMemoryValueHost,
                    ReversibleBoundary)
from .gate import ExecutionGate
from .guards import (approved_by, not_approved, not_executed,
                     only_administrator, only_owner, require, tx_exists)


def _addr(value: AddressLike, field: str) -> Address:
    try:
        return to_address(value)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"{field}: {e}") from e


def derive_wallet_address(administrator: Address, owners: Sequence[Address], threshold: int) -> Address:
    """Deterministic identity for a wallet created without an explicit address."""
    return keccak256(
        b"multisig-wallet|" + administrator + b"".join(owners) + threshold.to_bytes(32, "big")
    )[12:]


class MultisigWallet:
    def __init__(
        self,
        owners: Iterable[AddressLike],
        threshold: int,
        *,
        administrator: AddressLike,
        address: Optional[AddressLike] = None,
        oracle: Optional[SignatureOracle] = None,
        host: Optional[CallBoundary] = None,
        sink: Optional[EventSink] = None,
        config: Optional[WalletConfig] = None,
    ) -> None:
        self._config = config or get_config()
        owner_list = [_addr(o, "owner") for o in owners]
        admin = _addr(administrator, "administrator")

        self._journal = Journal(publish=self._publish)
        self._registry = OwnerRegistry(owner_list, threshold, admin, self._journal)
        self.address: Address = (
            _addr(address, "address")
            if address is not None
            else derive_wallet_address(admin, owner_list, threshold)
        )
        if sink is None:
            path = self._config.events_path
            sink = JsonlEventSink(str(path)) if path else InMemoryEventSink()
        self._sink = sink
        self._host = host if host is not None else InMemoryValueHost()
        self._ledger = TransactionLedger(
            self._journal, max_payload_bytes=self._config.limits.max_payload_bytes
        )
        self._approvals = ApprovalBook(self._ledger, self._journal)
        self._gate = ExecutionGate(
            wallet=self.address,
            registry=self._registry,
            ledger=self._ledger,
            approvals=self._approvals,
            oracle=oracle if oracle is not None else Secp256k1Oracle(),
            boundary=self._host,
            journal=self._journal,
            config=self._config,
        )
        self._log = with_fields(
            get_logger("multisig.wallet"), wallet=to_checksum_address(self.address)
        )
        self._log.info(
            "wallet created owners=%d threshold=%d", len(owner_list), threshold
        )

    # ------------------------------------------------------------------ plumbing

    def _publish(self, events: Sequence[WalletEvent]) -> None:
        for ev in events:
            try:
                self._sink.append(ev, wallet=self.address)
            except Exception as e:
                raise EventPublishFailed(ev.name, reason=f"{type(e).__name__}: {e}") from e

    def _journal_host(self) -> None:
        host = self._host
        if isinstance(host, ReversibleBoundary):
            state = host.snapshot()
            self._journal.record(lambda: host.restore(state))

    @contextmanager
    def _operation(self, name: str, caller: Optional[Address] = None) -> Iterator[None]:
        try:
            with self._journal.atomic():
                yield
        except MultisigError as e:
            self._log.debug(
                "%s rejected: %s",
                name,
                e.code,
                extra={"op": name, "code": e.code, "caller": short(caller) if caller else None},
            )
            raise

    # --------------------------------------------------------- owner management

    def add_owner(self, caller: AddressLike, owner: AddressLike) -> None:
        caller_b = _addr(caller, "caller")
        owner_b = _addr(owner, "owner")
        with self._operation("add_owner", caller_b):
            require(only_administrator(self._registry, caller_b))
            self._registry.add(owner_b)
        self._log.info("owner added %s", short(owner_b))

    def remove_owner(self, caller: AddressLike, owner: AddressLike) -> None:
        caller_b = _addr(caller, "caller")
        owner_b = _addr(owner, "owner")
        with self._operation("remove_owner", caller_b):
            require(only_administrator(self._registry, caller_b))
            self._registry.remove(
                owner_b, enforce_quorum=self._config.features.enforce_quorum_on_removal
            )
        self._log.info("owner removed %s", short(owner_b))
        if len(self._registry) < self._registry.threshold:
            self._log.warning(
                "owner count %d is below threshold %d; no transaction can execute",
                len(self._registry),
                self._registry.threshold,
            )

    def replace_owner(self, caller: AddressLike, old: AddressLike, new: AddressLike) -> None:
        caller_b = _addr(caller, "caller")
        old_b = _addr(old, "old owner")
        new_b = _addr(new, "new owner")
        with self._operation("replace_owner", caller_b):
            require(only_administrator(self._registry, caller_b))
            self._registry.replace(old_b, new_b)
        self._log.info("owner replaced %s -> %s", short(old_b), short(new_b))

    # ------------------------------------------------------------- transactions

    def submit_transaction(
        self,
        caller: AddressLike,
        destination: AddressLike,
        value: int,
        payload: bytes = b"",
    ) -> int:
        caller_b = _addr(caller, "caller")
        dest_b = _addr(destination, "destination")
        with self._operation("submit_transaction", caller_b):
            require(only_owner(self._registry, caller_b))
            index = self._ledger.submit(caller_b, dest_b, value, payload)
        self._log.info("tx %d submitted to %s value=%d", index, short(dest_b), value)
        return index

    def approve_transaction(self, caller: AddressLike, index: int) -> None:
        caller_b = _addr(caller, "caller")
        with self._operation("approve_transaction", caller_b):
            require(
                only_owner(self._registry, caller_b),
                tx_exists(self._ledger, index),
                not_executed(self._ledger, index),
                not_approved(self._approvals, index, caller_b),
            )
            self._approvals.approve(index, caller_b)
        self._log.info(
            "tx %d approved by %s (%d/%d)",
            index,
            short(caller_b),
            self._ledger.get(index).approvals_count,
            self._registry.threshold,
        )

    def revoke_approval(self, caller: AddressLike, index: int) -> None:
        caller_b = _addr(caller, "caller")
        with self._operation("revoke_approval", caller_b):
            require(
                only_owner(self._registry, caller_b),
                tx_exists(self._ledger, index),
                not_executed(self._ledger, index),
                approved_by(self._approvals, index, caller_b),
            )
            self._approvals.revoke(index, caller_b)
        self._log.info("tx %d approval revoked by %s", index, short(caller_b))

    def execute_transaction(
        self, caller: AddressLike, index: int, signatures: Sequence[SignatureLike]
    ) -> CallResult:
        caller_b = _addr(caller, "caller")
        with self._operation("execute_transaction", caller_b):
            self._journal_host()
            result = self._gate.execute(caller_b, index, signatures)
        self._log.info("tx %d executed by %s", index, short(caller_b))
        return result

    def deposit(self, sender: AddressLike, value: int) -> int:
        """Credit incoming value to the wallet; returns the new balance."""
        sender_b = _addr(sender, "sender")
        if isinstance(value, bool) or not isinstance(value, int) or not (0 <= value <= UINT256_MAX):
            raise InvalidInput("deposit value must be an integer in the uint256 range")
        if value == 0:
            return self.balance()
        with self._operation("deposit", sender_b):
            self._journal_host()
            balance = self._host.credit(self.address, value)
            self._journal.emit(
                WalletEvent(DEPOSIT, {"sender": sender_b, "value": value, "balance": balance})
            )
        self._log.info("deposit of %d from %s", value, short(sender_b))
        return balance

    # -------------------------------------------------------------------- views

    @property
    def threshold(self) -> int:
        return self._registry.threshold

    @property
    def administrator(self) -> Address:
        return self._registry.administrator

    @property
    def config(self) -> WalletConfig:
        return self._config

    @property
    def events(self) -> EventSink:
        return self._sink

    @property
    def host(self) -> CallBoundary:
        return self._host

    def is_owner(self, identity: AddressLike) -> bool:
        return self._registry.is_owner(_addr(identity, "identity"))

    def owners(self) -> Tuple[Address, ...]:
        """Current owners. Order is not stable across removals."""
        return self._registry.owners()

    def approved(self, index: int, owner: AddressLike) -> bool:
        return self._approvals.approved(index, _addr(owner, "owner"))

    def get_transaction(self, index: int) -> Transaction:
        """A detached copy of the record at ``index``."""
        return self._ledger.get(index).copy()

    def transaction_count(self) -> int:
        return len(self._ledger)

    def approvers(self, index: int) -> List[Address]:
        """Current owners holding an approval bit on ``index``."""
        self._ledger.get(index)
        return [o for o in self._approvals.approvers(index) if self._registry.is_owner(o)]

    def is_approved(self, index: int) -> bool:
        return self._ledger.get(index).approvals_count >= self._registry.threshold

    def digest(self, index: int) -> bytes:
        return self._gate.digest(index)

    def balance(self) -> int:
        return self._host.balance_of(self.address)

    def close(self) -> None:
        self._sink.close()

    def __repr__(self) -> str:  # pragma: no cover - debug aid
        return (
            f"MultisigWallet(address={to_checksum_address(self.address)}, "
            f"owners={len(self._registry)}, threshold={self._registry.threshold}, "
            f"txs={len(self._ledger)})"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": to_checksum_address(self.address),
            "administrator": to_checksum_address(self.administrator),
            "threshold": self.threshold,
            "owners": [to_checksum_address(o) for o in self.owners()],
            "transactions": [tx.to_dict() for tx in self._ledger],
            "balance": self.balance(),
        }


__all__ = ["MultisigWallet", "derive_wallet_address"]
