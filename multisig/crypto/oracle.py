"""
multisig.crypto.oracle — recover the identity that produced a signature.

The execution gate treats signer recovery as a black box:

    recover(digest, signature) -> identity      (raises MalformedSignature)

`Secp256k1Oracle` is the production implementation: secp256k1 public-key recovery
over a 32-byte digest (python-ecdsa), identity = last 20 bytes of
keccak256(uncompressed public key x||y). It is a pure function with no state.

`PrivateKeySigner` is the matching producer used by tooling and tests: it signs a
digest deterministically (RFC 6979) and appends the recovery discriminant (27/28)
so the result round-trips through the oracle.
"""

from __future__ import annotations

import hashlib
from typing import Protocol, runtime_checkable

from ecdsa import SECP256k1, SigningKey, VerifyingKey
from ecdsa.ecdsa import InvalidPointError
from ecdsa.keys import MalformedPointError
from ecdsa.numbertheory import SquareRootError
from ecdsa.util import sigdecode_string, sigencode_string

from ..errors import MalformedSignature
from ..types.signature import Signature, SignatureLike
from .hashing import keccak256

DIGEST_LENGTH = 32
_ORDER = SECP256k1.order

# RFC 6979 nonce derivation hash; digests are passed in precomputed.
_NONCE_HASH = hashlib.sha256


def public_key_to_address(public_key_xy: bytes) -> bytes:
    """Identity of an uncompressed public key given as raw 64-byte x||y."""
    if len(public_key_xy) != 64:
        raise ValueError("public key must be 64 raw bytes (x||y)")
    return keccak256(public_key_xy)[12:]


@runtime_checkable
class SignatureOracle(Protocol):
    def recover(self, digest: bytes, signature: SignatureLike) -> bytes:
        """Return the 20-byte identity that signed ``digest``; raise MalformedSignature."""
        ...


class Secp256k1Oracle:
    """secp256k1 recovering oracle (Ethereum-compatible identities)."""

    def recover(self, digest: bytes, signature: SignatureLike) -> bytes:
        if len(digest) != DIGEST_LENGTH:
            raise MalformedSignature(f"digest must be {DIGEST_LENGTH} bytes")
        sig = Signature.from_bytes(signature)
        if sig.v not in (27, 28):
            raise MalformedSignature(f"invalid recovery discriminant v={sig.v}")
        if not (1 <= sig.r < _ORDER) or not (1 <= sig.s < _ORDER):
            raise MalformedSignature("signature scalar out of range")
        try:
            candidates = VerifyingKey.from_public_key_recovery_with_digest(
                sig.rs_bytes(),
                bytes(digest),
                SECP256k1,
                hashfunc=_NONCE_HASH,
                sigdecode=sigdecode_string,
            )
        except (SquareRootError, InvalidPointError, MalformedPointError, ArithmeticError) as e:
            raise MalformedSignature("signature does not recover to a public key") from e
        # candidates are ordered [even-y R, odd-y R], matching v=27 / v=28
        return public_key_to_address(candidates[sig.recovery_id].to_string())


class PrivateKeySigner:
    """
    Deterministic secp256k1 signer over precomputed digests.

    Usage:
        signer = PrivateKeySigner(bytes.fromhex("…32 bytes…"))
        sig = signer.sign_digest(digest)         # 65 bytes r||s||v
        assert Secp256k1Oracle().recover(digest, sig) == signer.address
    """

    def __init__(self, private_key: bytes) -> None:
        if len(private_key) != 32:
            raise ValueError("private key must be 32 bytes")
        if not (1 <= int.from_bytes(private_key, "big") < _ORDER):
            raise ValueError("private key must be in [1, n) for secp256k1")
        self._sk = SigningKey.from_string(bytes(private_key), curve=SECP256k1)
        self._vk_raw = self._sk.get_verifying_key().to_string()
        self.address = public_key_to_address(self._vk_raw)

    @classmethod
    def from_hex(cls, private_key_hex: str) -> "PrivateKeySigner":
        s = private_key_hex.strip()
        if s.startswith(("0x", "0X")):
            s = s[2:]
        return cls(bytes.fromhex(s))

    def sign_digest(self, digest: bytes) -> bytes:
        if len(digest) != DIGEST_LENGTH:
            raise ValueError(f"digest must be {DIGEST_LENGTH} bytes")
        rs = self._sk.sign_digest_deterministic(
            bytes(digest), hashfunc=_NONCE_HASH, sigencode=sigencode_string
        )
        candidates = VerifyingKey.from_public_key_recovery_with_digest(
            rs, bytes(digest), SECP256k1, hashfunc=_NONCE_HASH, sigdecode=sigdecode_string
        )
        for recovery_id, vk in enumerate(candidates):
            if vk.to_string() == self._vk_raw:
                return rs + bytes([27 + recovery_id])
        raise RuntimeError("signature does not recover to the signing key")  # pragma: no cover


__all__ = [
    "DIGEST_LENGTH",
    "SignatureOracle",
    "Secp256k1Oracle",
    "PrivateKeySigner",
    "public_key_to_address",
]
