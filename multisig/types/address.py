"""
multisig.types.address — 20-byte identity values.

Owners, the administrator, destinations and the wallet itself are all identified by
opaque, comparable 20-byte values. Internally they are plain ``bytes``; callers may
pass 0x-prefixed hex strings at the API boundary and they are normalized here.

Helpers
-------
* `to_address()` normalizes hex/bytes input and enforces the length.
* `to_checksum_address()` renders mixed-case (EIP-55) hex for display.
"""

from __future__ import annotations

from typing import Union

from ..crypto.hashing import keccak256

ADDRESS_LENGTH = 20
ZERO_ADDRESS = b"\x00" * ADDRESS_LENGTH

Address = bytes
AddressLike = Union[str, bytes, bytearray, memoryview]


def _hex_to_bytes(v: str) -> bytes:
    s = v.strip()
    if s.startswith(("0x", "0X")):
        s = s[2:]
    try:
        return bytes.fromhex(s)
    except ValueError as e:
        raise ValueError(f"invalid hex string: {v!r}") from e


def to_address(value: AddressLike) -> Address:
    """
    Normalize ``value`` to a 20-byte identity.

    Raises:
        TypeError if the value is not hex-like; ValueError on a bad length or bad hex.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        b = bytes(value)
    elif isinstance(value, str):
        b = _hex_to_bytes(value)
    else:
        raise TypeError(f"expected address-like value, got {type(value).__name__}")
    if len(b) != ADDRESS_LENGTH:
        raise ValueError(f"address must be {ADDRESS_LENGTH} bytes (got {len(b)})")
    return b


def to_checksum_address(addr: AddressLike) -> str:
    """EIP-55 mixed-case hex rendering of a 20-byte identity."""
    lower = to_address(addr).hex()
    digest = keccak256(lower.encode("ascii")).hex()
    out = "".join(
        c.upper() if c.isalpha() and int(digest[i], 16) >= 8 else c
        for i, c in enumerate(lower)
    )
    return "0x" + out


def short(addr: Address) -> str:
    """Abbreviated 0x1234…abcd form for logs and tables."""
    h = addr.hex()
    return f"0x{h[:4]}…{h[-4:]}"


__all__ = [
    "ADDRESS_LENGTH",
    "ZERO_ADDRESS",
    "Address",
    "AddressLike",
    "to_address",
    "to_checksum_address",
    "short",
]
