"""
multisig.types.signature — the 65-byte recoverable signature layout.

Layout (tight, no length prefixes):

    r (32 bytes, big-endian) || s (32 bytes, big-endian) || v (1 byte)

A recovery discriminant supplied as 0/1 is normalized to 27/28. Any other ``v`` is
kept as-is and rejected later by the oracle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union

from ..errors import MalformedSignature

SIGNATURE_LENGTH = 65

SignatureLike = Union[bytes, bytearray, memoryview, str]
SignatureBundle = Sequence[SignatureLike]


@dataclass(frozen=True)
class Signature:
    r: int
    s: int
    v: int

    @classmethod
    def from_bytes(cls, raw: SignatureLike) -> "Signature":
        b = signature_bytes(raw)
        if len(b) != SIGNATURE_LENGTH:
            raise MalformedSignature(
                f"signature must be {SIGNATURE_LENGTH} bytes (got {len(b)})"
            )
        v = b[64]
        if v in (0, 1):
            v += 27
        return cls(
            r=int.from_bytes(b[0:32], "big"),
            s=int.from_bytes(b[32:64], "big"),
            v=v,
        )

    def to_bytes(self) -> bytes:
        return self.r.to_bytes(32, "big") + self.s.to_bytes(32, "big") + bytes([self.v])

    @property
    def recovery_id(self) -> int:
        return self.v - 27

    def rs_bytes(self) -> bytes:
        return self.r.to_bytes(32, "big") + self.s.to_bytes(32, "big")


def signature_bytes(raw: SignatureLike) -> bytes:
    """Accept raw bytes or 0x-hex text for a single signature."""
    if isinstance(raw, (bytes, bytearray, memoryview)):
        return bytes(raw)
    if isinstance(raw, str):
        s = raw.strip()
        if s.startswith(("0x", "0X")):
            s = s[2:]
        try:
            return bytes.fromhex(s)
        except ValueError as e:
            raise MalformedSignature("signature is not valid hex") from e
    raise MalformedSignature(f"unsupported signature type {type(raw).__name__}")


__all__ = [
    "SIGNATURE_LENGTH",
    "Signature",
    "SignatureLike",
    "SignatureBundle",
    "signature_bytes",
]
