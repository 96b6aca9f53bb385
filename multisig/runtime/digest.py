"""
multisig.runtime.digest — canonical transaction digest signed by owners.

    digest = keccak256(wallet[20] || uint256(index) || uint256(value) || payload || destination[20])

Integers are 32-byte big-endian words; fields are concatenated without length
prefixes. With the ``signed_message_prefix`` feature on, owners sign the
personal-message form instead:

    keccak256(b"\\x19Ethereum Signed Message:\\n32" || digest)
"""

from __future__ import annotations

from ..crypto.hashing import hash_concat_keccak256, keccak256
from ..types.address import Address
from ..types.transaction import UINT256_MAX, Transaction

SIGNED_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n32"


def _u256(n: int) -> bytes:
    if not (0 <= n <= UINT256_MAX):
        raise ValueError("integer outside the uint256 range")
    return n.to_bytes(32, "big")


def transaction_digest(
    wallet: Address,
    index: int,
    value: int,
    payload: bytes,
    destination: Address,
    *,
    prefixed: bool = False,
) -> bytes:
    h = hash_concat_keccak256(wallet, _u256(index), _u256(value), payload, destination)
    if prefixed:
        return keccak256(SIGNED_MESSAGE_PREFIX + h)
    return h


def digest_for(wallet: Address, index: int, tx: Transaction, *, prefixed: bool = False) -> bytes:
    return transaction_digest(wallet, index, tx.value, tx.payload, tx.destination, prefixed=prefixed)


__all__ = ["SIGNED_MESSAGE_PREFIX", "transaction_digest", "digest_for"]
