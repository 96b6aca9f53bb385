"""
multisig.crypto.hashing — Keccak-256 wrappers.

Strictly bytes-in, bytes-out. Keccak-256 here is the pre-standard variant used by
Ethereum-style identities and signatures (it differs from hashlib.sha3_256 in padding).
"""

from __future__ import annotations

from Crypto.Hash import keccak as _keccak

BytesLike = bytes | bytearray | memoryview


def _ensure_bytes(buf: object, name: str) -> bytes:
    if isinstance(buf, (bytes, bytearray, memoryview)):
        return bytes(buf)
    raise TypeError(f"{name} must be bytes-like (got {type(buf).__name__})")


def keccak256(data: BytesLike) -> bytes:
    h = _keccak.new(digest_bits=256)
    h.update(_ensure_bytes(data, "data"))
    return h.digest()


def keccak256_hex(data: BytesLike) -> str:
    return keccak256(data).hex()


def hash_concat_keccak256(*chunks: BytesLike) -> bytes:
    """Hash the tight concatenation of ``chunks`` (no separators, no length prefixes)."""
    h = _keccak.new(digest_bits=256)
    for i, c in enumerate(chunks):
        h.update(_ensure_bytes(c, f"chunk[{i}]"))
    return h.digest()


__all__ = ["keccak256", "keccak256_hex", "hash_concat_keccak256"]
