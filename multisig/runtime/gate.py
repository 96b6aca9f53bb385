"""
multisig.runtime.gate — the dual-gate execution check.

A transaction executes only when both gates pass:

1. on-record approvals:  approvals_count >= threshold
2. signature bundle:     at least ``threshold`` signatures over the transaction digest
                         that recover to current owners holding an approval bit

The bundle is walked in the order supplied. A signer equal to the *immediately
preceding* recovered signer is rejected (SigManipulationDetected); a repeat that is
not adjacent, e.g. [A, B, A], is not detected and A counts twice. The executed flag
is set before the external call so a reentrant execute observes it and fails.

The gate performs writes through the state components only; the caller wraps
`execute()` in a journal checkpoint so any failure, including a failed call, undoes
the executed flag.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..config import WalletConfig
from ..crypto.oracle import SignatureOracle
from ..errors import (ExternalCallFailed, InsufficientNumApprovals,
                      InsufficientSignatureCount,
                      InsufficientValidSignatureCount, InvalidInput,
                      MalformedSignature, SigManipulationDetected)
from ..state.approvals import ApprovalBook
from ..state.journal import Journal
from ..state.ledger import TransactionLedger
from ..state.owners import OwnerRegistry
from ..types.address import Address, short
from ..types.events import TRANSACTION_EXECUTED, WalletEvent
from ..types.signature import SignatureLike
from .calls import CallBoundary, CallResult
from .digest import digest_for
from .guards import not_executed, only_owner, require, tx_exists

log = logging.getLogger(__name__)


class ExecutionGate:
    def __init__(
        self,
        *,
        wallet: Address,
        registry: OwnerRegistry,
        ledger: TransactionLedger,
        approvals: ApprovalBook,
        oracle: SignatureOracle,
        boundary: CallBoundary,
        journal: Journal,
        config: WalletConfig,
    ) -> None:
        self._wallet = wallet
        self._registry = registry
        self._ledger = ledger
        self._approvals = approvals
        self._oracle = oracle
        self._boundary = boundary
        self._journal = journal
        self._config = config

    def digest(self, index: int) -> bytes:
        """Digest owners sign for ``index`` (raises InvalidTransaction for unknown indices)."""
        tx = self._ledger.get(index)
        return digest_for(
            self._wallet, index, tx, prefixed=self._config.features.signed_message_prefix
        )

    def count_valid_signatures(self, index: int, digest: bytes, signatures: Sequence[SignatureLike]) -> int:
        """
        Walk the bundle and count signatures from approving owners.

        Raises MalformedSignature (with the bundle position) if any entry fails to
        recover, and SigManipulationDetected on an adjacent repeated signer.
        """
        previous: Optional[Address] = None
        valid = 0
        for position, sig in enumerate(signatures):
            try:
                signer = self._oracle.recover(digest, sig)
            except MalformedSignature as e:
                raise MalformedSignature(e.message, position=position) from e
            if signer == previous:
                raise SigManipulationDetected(signer, position=position)
            previous = signer
            if self._registry.is_owner(signer) and self._approvals.approved(index, signer):
                valid += 1
        return valid

    def execute(self, caller: Address, index: int, signatures: Sequence[SignatureLike]) -> CallResult:
        require(
            only_owner(self._registry, caller),
            tx_exists(self._ledger, index),
            not_executed(self._ledger, index),
        )
        tx = self._ledger.get(index)
        threshold = self._registry.threshold

        if tx.approvals_count < threshold:
            raise InsufficientNumApprovals(tx.approvals_count, threshold)

        bundle: List[SignatureLike] = list(signatures)
        if len(bundle) < threshold:
            raise InsufficientSignatureCount(len(bundle), threshold)
        max_sigs = self._config.limits.max_signatures
        if len(bundle) > max_sigs:
            raise InvalidInput(
                "signature bundle exceeds the configured maximum",
                data={"supplied": len(bundle), "max": max_sigs},
            )

        digest = self.digest(index)
        valid = self.count_valid_signatures(index, digest, bundle)
        if valid < threshold:
            raise InsufficientValidSignatureCount(valid, threshold)

        self._ledger.mark_executed(index)
        log.debug(
            "forwarding tx %d to %s value=%d payload=%dB",
            index, short(tx.destination), tx.value, len(tx.payload),
        )
        result = self._boundary.call(self._wallet, tx.destination, tx.value, tx.payload)
        if not result.success:
            raise ExternalCallFailed(index, reason=result.reason, return_data=result.return_data or None)

        self._journal.emit(
            WalletEvent(
                TRANSACTION_EXECUTED,
                {
                    "owner": caller,
                    "index": index,
                    "destination": tx.destination,
                    "value": tx.value,
                    "payload": tx.payload,
                },
            )
        )
        return result


__all__ = ["ExecutionGate"]
